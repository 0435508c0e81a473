"""
Atlas CI: Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do Atlas CI.
Erros são considerados artefatos de domínio e fazem parte do contrato operacional
do sistema, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Um workload que termina em `Failed` não é um bug: é um resultado esperado do
pipeline e viaja como payload dentro de um StepResult FAILED.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional

from .exceptions import (
    AtlasException,
    ConfigurationError,
    ExecutionCancelled,
    ExecutionTimeout,
    WorkloadClientError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AtlasErrorPayload:
    """
    Payload canônico de erro do Atlas CI.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - decision_required: indica se o pipeline está bloqueado aguardando decisão humana
    """

    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

CONFIGURATION_INVALID = "CONFIGURATION_INVALID"

# Workload / Execução
WORKLOAD_FAILED = "WORKLOAD_FAILED"
WORKLOAD_WATCH_CLOSED = "WORKLOAD_WATCH_CLOSED"
WORKLOAD_DELETED = "WORKLOAD_DELETED"
WORKLOAD_CLIENT_ERROR = "WORKLOAD_CLIENT_ERROR"
EXECUTION_CANCELLED = "EXECUTION_CANCELLED"
EXECUTION_TIMEOUT = "EXECUTION_TIMEOUT"



# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def workload_failed(
    *,
    workload: str,
    namespace: str,
    status_message: Optional[str] = None,
    reason: Optional[str] = None,
    step: Optional[str] = None,
    hint: str = "Inspecione os logs do container; a mensagem de término vem dos logs em caso de erro.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=WORKLOAD_FAILED,
        message=status_message or "Workload terminou na fase Failed",
        details={
            "workload": workload,
            "namespace": namespace,
            "reason": reason,
            "step": step,
        },
        hint=hint,
    )


def workload_watch_closed(
    *,
    workload: str,
    namespace: str,
    step: Optional[str] = None,
    hint: str = "O stream de eventos terminou sem fase terminal; verifique o workload diretamente no cluster.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=WORKLOAD_WATCH_CLOSED,
        message="watch closed unexpectedly",
        details={"workload": workload, "namespace": namespace, "step": step},
        hint=hint,
    )


def workload_deleted(
    *,
    workload: str,
    namespace: str,
    phase: Optional[str] = None,
    step: Optional[str] = None,
    hint: str = "O workload foi removido antes de terminar; verifique os eventos do namespace para saber quem o apagou.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=WORKLOAD_DELETED,
        message="workload deleted before reaching a terminal phase",
        details={"workload": workload, "namespace": namespace, "last_phase": phase, "step": step},
        hint=hint,
    )


def exception_to_error(exc: Exception, *, step: Optional[str] = None) -> AtlasErrorPayload:
    """Converte exceções em AtlasErrorPayload (serializável, acionável).

    Regras:
    - AtlasException: código estável conforme a classe, preservando details/hint.
    - Outras exceções: encapsular como WORKLOAD_CLIENT_ERROR sem expor stack trace.

    Usado pelo scheduler externo para serializar exceções que escapam de
    `Step.run` (ConfigurationError, ExecutionTimeout, WorkloadStepError) no
    relatório da run; o próprio Step só produz payloads de falha de workload.
    """
    if isinstance(exc, AtlasException):
        if isinstance(exc, ConfigurationError):
            code = CONFIGURATION_INVALID
        elif isinstance(exc, ExecutionTimeout):
            code = EXECUTION_TIMEOUT
        elif isinstance(exc, ExecutionCancelled):
            code = EXECUTION_CANCELLED
        elif isinstance(exc, WorkloadClientError):
            code = WORKLOAD_CLIENT_ERROR
        else:
            code = exc.__class__.__name__

        details = dict(exc.details or {})
        if step is not None:
            details.setdefault("step", step)
        return AtlasErrorPayload(
            type=code,
            message=str(exc) or "Erro de execução",
            details=details,
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return AtlasErrorPayload(
        type=WORKLOAD_CLIENT_ERROR,
        message=str(exc) or "Erro inesperado durante execução",
        details={"step": step, "exception_class": exc.__class__.__name__},
        hint="Verifique conectividade e credenciais do client de cluster. Nenhum retry é aplicado automaticamente.",
    )
