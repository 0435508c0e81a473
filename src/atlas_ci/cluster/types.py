"""
Modelo de objetos de workload consumido e produzido pelo Atlas CI.

Estas estruturas representam, de forma independente de biblioteca, o
subconjunto do objeto de cluster (um pod de container único) que o Step
escreve (`WorkloadSpec`) e o que o control plane devolve (`WorkloadObject`,
com `WorkloadStatus` mutado de forma assíncrona pela plataforma).

Princípios fundamentais:
    - Tudo é imutável (frozen dataclasses); atualizações usam `dataclasses.replace`
    - Coleções opcionais são sempre coleções vazias, nunca None
    - `to_dict()` é canônico: a mesma spec produz o mesmo dicionário e o mesmo hash

Limites explícitos:
    - Não conversa com o cluster (ver `cluster.client` e adapters)
    - Não decide como uma spec é construída (ver `steps.workload.spec_builder`)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from atlas_ci.core.config.hashing import canonical_hash


RESTART_POLICY_NEVER = "Never"
TERMINATION_MESSAGE_FALLBACK_TO_LOGS_ON_ERROR = "FallbackToLogsOnError"


class WorkloadPhase(str, Enum):
    """Fases de ciclo de vida reportadas pela plataforma."""
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @property
    def terminal(self) -> bool:
        return self in (WorkloadPhase.SUCCEEDED, WorkloadPhase.FAILED)


class EventType(str, Enum):
    """Tipos de evento entregues por uma subscription de watch."""
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


# ---------------------------------------------------------------------------
# Spec (escrita pelo Step)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VolumeMount:
    name: str
    mount_path: str
    sub_path: str = ""
    read_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mountPath": self.mount_path,
            "subPath": self.sub_path,
            "readOnly": self.read_only,
        }


@dataclass(frozen=True)
class Volume:
    """Volume de pod; apenas a fonte `secret` é suportada."""
    name: str
    secret_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "secret": {"secretName": self.secret_name}}


@dataclass(frozen=True)
class ResourceRequirements:
    requests: Dict[str, str] = field(default_factory=dict)
    limits: Dict[str, str] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.requests and not self.limits

    def to_dict(self) -> Dict[str, Any]:
        return {"requests": dict(self.requests), "limits": dict(self.limits)}


@dataclass(frozen=True)
class Container:
    name: str
    image: str
    command: Tuple[str, ...] = ()
    termination_message_policy: str = TERMINATION_MESSAGE_FALLBACK_TO_LOGS_ON_ERROR
    volume_mounts: Tuple[VolumeMount, ...] = ()
    resources: ResourceRequirements = field(default_factory=ResourceRequirements)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "image": self.image,
            "command": list(self.command),
            "terminationMessagePolicy": self.termination_message_policy,
            "volumeMounts": [m.to_dict() for m in self.volume_mounts],
            "resources": self.resources.to_dict(),
        }


@dataclass(frozen=True)
class WorkloadSpec:
    """
    Especificação completa de um workload de container único.

    Invariantes:
        - `containers` contém exatamente um container quando produzido pelo builder
        - `volumes` e `container.volume_mounts` são tuplas, possivelmente vazias
        - `restart_policy` é sempre "Never" para workloads de Step
    """
    name: str
    namespace: str
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    containers: Tuple[Container, ...] = ()
    volumes: Tuple[Volume, ...] = ()
    restart_policy: str = RESTART_POLICY_NEVER
    service_account_name: str = ""

    @property
    def container(self) -> Container:
        return self.containers[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
                "annotations": dict(self.annotations),
            },
            "spec": {
                "containers": [c.to_dict() for c in self.containers],
                "volumes": [v.to_dict() for v in self.volumes],
                "restartPolicy": self.restart_policy,
                "serviceAccountName": self.service_account_name,
            },
        }

    def spec_hash(self) -> str:
        return canonical_hash(self.to_dict())


# ---------------------------------------------------------------------------
# Status (mutado pela plataforma)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ContainerState:
    """Estado de término de um container; `exit_code` é None enquanto não terminou."""
    name: str
    exit_code: Optional[int] = None
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class WorkloadStatus:
    phase: WorkloadPhase = WorkloadPhase.PENDING
    message: str = ""
    reason: str = ""
    container_states: Tuple[ContainerState, ...] = ()

    def failed_containers(self) -> Tuple[ContainerState, ...]:
        return tuple(
            s for s in self.container_states
            if s.exit_code is not None and s.exit_code != 0
        )


@dataclass(frozen=True)
class WorkloadObject:
    """Objeto de workload como visto no cluster: spec escrita pelo Step + status."""
    spec: WorkloadSpec
    status: WorkloadStatus = field(default_factory=WorkloadStatus)
    resource_version: str = ""

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def namespace(self) -> str:
        return self.spec.namespace

    @property
    def phase(self) -> WorkloadPhase:
        return self.status.phase


@dataclass(frozen=True)
class WatchEvent:
    """Par (tipo, objeto) entregue por uma subscription; `object` é None em ERROR sem objeto."""
    type: EventType
    object: Optional[WorkloadObject] = None
    message: str = ""
