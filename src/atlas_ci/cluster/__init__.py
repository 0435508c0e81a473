"""
Camada de cluster do Atlas CI.

- types       → modelo de objetos de workload (spec, status, eventos)
- client      → contrato `WorkloadClient` e `WatchSubscription`
- fake        → `InMemoryWorkloadClient` para testes e execuções locais
- kubernetes  → `KubernetesWorkloadClient` (importado explicitamente, depende do client oficial)
"""

from .client import NamespacedWorkloads, WatchSubscription, WorkloadClient
from .fake import InMemoryWorkloadClient
from .types import (
    EventType,
    WatchEvent,
    WorkloadObject,
    WorkloadPhase,
    WorkloadSpec,
    WorkloadStatus,
)

__all__ = [
    "EventType",
    "InMemoryWorkloadClient",
    "NamespacedWorkloads",
    "WatchEvent",
    "WatchSubscription",
    "WorkloadClient",
    "WorkloadObject",
    "WorkloadPhase",
    "WorkloadSpec",
    "WorkloadStatus",
]
