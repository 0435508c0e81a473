"""
Atlas CI: Canonical Exceptions (v1)

Este módulo define exceções tipadas internas do Atlas CI.

Objetivo:
- Permitir que Steps e clients de cluster levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para AtlasErrorPayload
- Distinguir "o workload falhou" de "paramos de esperar"

Regras:
- Não contém lógica de cluster específica.
- Exceções devem carregar apenas dados estruturados (serializáveis).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AtlasException(Exception):
    """Base class para exceções internas do Atlas.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Configuração
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConfigurationError(AtlasException):
    """Configuração do Step estruturalmente inválida (ex.: nome vazio)."""


# ---------------------------------------------------------------------------
# Client de workloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkloadClientError(AtlasException):
    """Falha do client de cluster (rede, autenticação, API)."""


@dataclass(frozen=True)
class WorkloadAlreadyExists(WorkloadClientError):
    """Já existe um workload com o mesmo nome no namespace."""


@dataclass(frozen=True)
class WorkloadNotFound(WorkloadClientError):
    """O workload solicitado não existe no namespace."""


@dataclass(frozen=True)
class TransientWatchError(WorkloadClientError):
    """Evento de erro no stream de watch; não encerra a observação."""


# ---------------------------------------------------------------------------
# Execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkloadStepError(AtlasException):
    """Erro do client encapsulado com o nome do Step e a fase da execução."""


@dataclass(frozen=True)
class ExecutionCancelled(AtlasException):
    """Execução interrompida por sinal externo de cancelamento."""


@dataclass(frozen=True)
class ExecutionTimeout(ExecutionCancelled):
    """Deadline de execução atingido antes de uma fase terminal."""
