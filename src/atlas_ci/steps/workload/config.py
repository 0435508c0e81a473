"""
Configuração imutável de um WorkloadStep.

Estruturas:
    - StepConfiguration     → o que executar (imagem, comandos, secret, ...)
    - JobIdentity           → a qual run do pipeline o workload pertence
    - ResourceConfiguration → requests/limits por Step, com fallback "*"

Todas são construídas uma única vez, na montagem do pipeline, e não mudam
durante a vida do Step. A configuração chega já resolvida; os parsers
`*_from_dict` apenas convertem mapas pré-carregados (YAML/JSON) nos tipos
abaixo, validando formato, nunca semântica de cluster.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from atlas_ci.cluster.types import ResourceRequirements
from atlas_ci.core.exceptions import ConfigurationError
from atlas_ci.core.pipeline.links import ImageStreamTagReference


DEFAULT_SECRET_MOUNT_PATH = "/usr/test-secrets"
DEFAULT_RESOURCES_KEY = "*"


@dataclass(frozen=True)
class StepConfiguration:
    """
    Configuração de um Step executado como workload.

    Campos:
        - as_: nome do workload (e do Step perante o scheduler)
        - from_: imagem de origem
        - commands: texto de shell executado no container
        - artifact_dir: diretório de artefatos (exposto no resultado, não montado)
        - service_account_name: service account do workload
        - secret_name: secret montado no container (vazio = nenhum volume)
        - secret_mount_path: caminho de montagem (vazio = DEFAULT_SECRET_MOUNT_PATH)
        - publishes: nome de artefato anunciado via `artifact_link` ao concluir
    """

    as_: str
    from_: ImageStreamTagReference
    commands: str
    artifact_dir: str = ""
    service_account_name: str = ""
    secret_name: str = ""
    secret_mount_path: str = ""
    publishes: str = ""

    @property
    def effective_secret_mount_path(self) -> str:
        return self.secret_mount_path or DEFAULT_SECRET_MOUNT_PATH


@dataclass(frozen=True)
class JobIdentity:
    """Identidade da run: fornecida uma vez por execução do pipeline, somente leitura."""

    job: str
    build_id: str
    prow_job_id: str
    namespace: str
    raw_spec: str = ""


@dataclass(frozen=True)
class ResourceConfiguration:
    """Requests/limits por nome de Step; a entrada "*" vale para os demais."""

    entries: Dict[str, ResourceRequirements] = field(default_factory=dict)

    def for_step(self, step_name: str) -> ResourceRequirements:
        if step_name in self.entries:
            return self.entries[step_name]
        return self.entries.get(DEFAULT_RESOURCES_KEY, ResourceRequirements())


# ---------------------------------------------------------------------------
# Parsers de mapas pré-carregados
# ---------------------------------------------------------------------------

def _require_mapping(data: Any, *, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            message=f"{what} deve ser um mapa",
            details={"received": type(data).__name__},
        )
    return data


def _string(data: Mapping[str, Any], key: str, *, what: str, required: bool = False) -> str:
    if key not in data or data[key] is None:
        if required:
            raise ConfigurationError(
                message=f"{what}: chave obrigatória ausente '{key}'",
                details={"key": key},
                hint=f"Declare '{key}' na configuração do Step.",
            )
        return ""
    value = data[key]
    if not isinstance(value, str):
        raise ConfigurationError(
            message=f"{what}: '{key}' deve ser texto",
            details={"key": key, "received": type(value).__name__},
        )
    return value


def image_reference_from_dict(data: Any) -> ImageStreamTagReference:
    data = _require_mapping(data, what="from")
    return ImageStreamTagReference(
        name=_string(data, "name", what="from", required=True),
        tag=_string(data, "tag", what="from", required=True),
        cluster=_string(data, "cluster", what="from"),
        namespace=_string(data, "namespace", what="from"),
        as_=_string(data, "as", what="from"),
    )


def step_configuration_from_dict(data: Any) -> StepConfiguration:
    data = _require_mapping(data, what="step")
    what = "step"
    return StepConfiguration(
        as_=_string(data, "as", what=what, required=True),
        from_=image_reference_from_dict(data.get("from")),
        commands=_string(data, "commands", what=what),
        artifact_dir=_string(data, "artifact_dir", what=what),
        service_account_name=_string(data, "service_account_name", what=what),
        secret_name=_string(data, "secret_name", what=what),
        secret_mount_path=_string(data, "secret_mount_path", what=what),
        publishes=_string(data, "publishes", what=what),
    )


def job_identity_from_dict(data: Any) -> JobIdentity:
    data = _require_mapping(data, what="job")
    return JobIdentity(
        job=_string(data, "job", what="job", required=True),
        build_id=_string(data, "build_id", what="job", required=True),
        prow_job_id=_string(data, "prow_job_id", what="job"),
        namespace=_string(data, "namespace", what="job", required=True),
        raw_spec=_string(data, "raw_spec", what="job"),
    )


def _quantities(data: Any, *, step: str, key: str) -> Dict[str, str]:
    if data is None:
        return {}
    data = _require_mapping(data, what=f"resources.{step}.{key}")
    return {str(k): str(v) for k, v in data.items()}


def resource_configuration_from_dict(data: Optional[Any]) -> ResourceConfiguration:
    if data is None:
        return ResourceConfiguration()
    data = _require_mapping(data, what="resources")
    entries: Dict[str, ResourceRequirements] = {}
    for step, entry in data.items():
        entry = _require_mapping(entry, what=f"resources.{step}")
        entries[str(step)] = ResourceRequirements(
            requests=_quantities(entry.get("requests"), step=step, key="requests"),
            limits=_quantities(entry.get("limits"), step=step, key="limits"),
        )
    return ResourceConfiguration(entries=entries)
