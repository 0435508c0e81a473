"""
Builder canônico de WorkloadSpec.

Transforma (nome do Step, StepConfiguration, JobIdentity) em uma
`WorkloadSpec` completa, pronta para `client.create`.

Decisões arquiteturais:
    - Função pura: sem rede, sem aleatoriedade, sem relógio
    - As mesmas entradas produzem a mesma spec (e o mesmo `spec_hash`),
      o que permite ao scheduler comparar tentativas
    - Sem secret, volumes e mounts são tuplas vazias, nunca None

Política de secret:
    - `secret_name` vazio → nenhum volume e nenhum mount, qualquer que seja o path
    - path vazio → DEFAULT_SECRET_MOUNT_PATH
    - `sub_path` é sempre o último segmento do path efetivo; mount read-only

Limites explícitos:
    - Não valida existência da imagem nem do secret no cluster
"""

from __future__ import annotations

import posixpath
from typing import Dict, Optional, Tuple

from atlas_ci.cluster.types import (
    Container,
    ResourceRequirements,
    Volume,
    VolumeMount,
    WorkloadSpec,
)
from atlas_ci.core.exceptions import ConfigurationError

from .config import JobIdentity, ResourceConfiguration, StepConfiguration


LABEL_BUILD_ID = "build-id"
LABEL_JOB = "job"
LABEL_PROW_JOB_ID = "prow.k8s.io/id"
LABEL_CREATED_BY_CI = "created-by-ci"
LABEL_PERSISTS_BETWEEN_BUILDS = "persists-between-builds"

ANNOTATION_JOB_SPEC = "ci.openshift.io/job-spec"
ANNOTATION_CONTAINER_SUB_TESTS = "ci-operator.openshift.io/container-sub-tests"

SHELL_PREAMBLE = "#!/bin/sh\nset -eu\n"


def wrap_commands(commands: str) -> Tuple[str, ...]:
    """Envolve os comandos em `/bin/sh -c` com `set -eu` (falha no primeiro erro)."""
    return ("/bin/sh", "-c", SHELL_PREAMBLE + commands)


def _validate(step_name: str, config: StepConfiguration) -> None:
    missing = []
    if not step_name:
        missing.append("step_name")
    if not config.as_:
        missing.append("as")
    if not config.from_.name:
        missing.append("from.name")
    if not config.from_.tag:
        missing.append("from.tag")
    if missing:
        raise ConfigurationError(
            message="Configuração do Step incompleta",
            details={"step": step_name, "missing": missing},
            hint="Preencha os campos obrigatórios antes de montar o pipeline.",
        )


def secret_volumes(config: StepConfiguration) -> Tuple[Tuple[Volume, ...], Tuple[VolumeMount, ...]]:
    if not config.secret_name:
        return (), ()
    path = config.effective_secret_mount_path
    mount = VolumeMount(
        name=config.secret_name,
        mount_path=path,
        sub_path=posixpath.basename(path.rstrip("/")),
        read_only=True,
    )
    volume = Volume(name=config.secret_name, secret_name=config.secret_name)
    return (volume,), (mount,)


def build_labels(job: JobIdentity) -> Dict[str, str]:
    return {
        LABEL_BUILD_ID: job.build_id,
        LABEL_JOB: job.job,
        LABEL_PROW_JOB_ID: job.prow_job_id,
        LABEL_CREATED_BY_CI: "true",
        LABEL_PERSISTS_BETWEEN_BUILDS: "false",
    }


def build_workload_spec(
    step_name: str,
    config: StepConfiguration,
    job: JobIdentity,
    resources: Optional[ResourceConfiguration] = None,
) -> WorkloadSpec:
    """
    Constrói a WorkloadSpec do Step.

    Raises:
        ConfigurationError: nome do Step, `as`, nome ou tag da imagem vazios.
    """
    _validate(step_name, config)

    volumes, mounts = secret_volumes(config)
    requirements = resources.for_step(step_name) if resources is not None else ResourceRequirements()

    container = Container(
        name=step_name,
        image=config.from_.pull_spec,
        command=wrap_commands(config.commands),
        volume_mounts=mounts,
        resources=requirements,
    )

    return WorkloadSpec(
        name=config.as_,
        namespace=job.namespace,
        labels=build_labels(job),
        annotations={
            ANNOTATION_JOB_SPEC: job.raw_spec,
            ANNOTATION_CONTAINER_SUB_TESTS: step_name,
        },
        containers=(container,),
        volumes=volumes,
        service_account_name=config.service_account_name,
    )
