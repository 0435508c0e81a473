"""
Opções de execução de workloads lidas da configuração efetiva.

Seção consumida:

    workload:
      timeout_seconds: null        # deadline para uma fase terminal (null = sem deadline)
      poll_interval_seconds: 1.0   # granularidade da checagem de cancelamento

Chaves ausentes assumem os defaults acima. Valores inválidos são erro de
configuração, nunca corrigidos silenciosamente.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from atlas_ci.core.exceptions import ConfigurationError


DEFAULT_POLL_INTERVAL_SECONDS = 1.0


def _positive_number(value: Any, *, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(
            message=f"workload.{key} deve ser um número positivo",
            details={"key": f"workload.{key}", "value": value},
        )
    return float(value)


@dataclass(frozen=True)
class WorkloadSettings:
    """Opções de espera do watcher: deadline e intervalo de polling."""

    timeout_seconds: Optional[float] = None
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "WorkloadSettings":
        section = (config or {}).get("workload") or {}
        if not isinstance(section, dict):
            raise ConfigurationError(
                message="Seção 'workload' deve ser um mapa",
                details={"key": "workload", "received": type(section).__name__},
            )

        timeout = section.get("timeout_seconds")
        if timeout is not None:
            timeout = _positive_number(timeout, key="timeout_seconds")

        poll = section.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)
        poll = _positive_number(poll, key="poll_interval_seconds")

        return cls(timeout_seconds=timeout, poll_interval_seconds=poll)
