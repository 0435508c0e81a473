"""
Steps executados como workloads de container único no cluster.

- config        → StepConfiguration, JobIdentity, ResourceConfiguration e parsers
- spec_builder  → build_workload_spec (puro, determinístico)
- watcher       → CompletionWatcher (máquina de estados de conclusão)
- step          → WorkloadStep (contrato de Step)
"""

from .config import (
    DEFAULT_SECRET_MOUNT_PATH,
    JobIdentity,
    ResourceConfiguration,
    StepConfiguration,
    job_identity_from_dict,
    resource_configuration_from_dict,
    step_configuration_from_dict,
)
from .spec_builder import build_workload_spec
from .step import WorkloadStep
from .watcher import CompletionWatcher, WatcherState, WatchOutcome

__all__ = [
    "CompletionWatcher",
    "DEFAULT_SECRET_MOUNT_PATH",
    "JobIdentity",
    "ResourceConfiguration",
    "StepConfiguration",
    "WatchOutcome",
    "WatcherState",
    "WorkloadStep",
    "build_workload_spec",
    "job_identity_from_dict",
    "resource_configuration_from_dict",
    "step_configuration_from_dict",
]
