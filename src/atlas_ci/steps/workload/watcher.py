"""
Watcher de conclusão de workloads (máquina de estados explícita).

Estados:

    NOT_STARTED → CREATED → WATCHING → TERMINAL(SUCCEEDED | FAILED)

    - NOT_STARTED → CREATED: o Step criou o workload
    - NOT_STARTED → WATCHING: o workload já existia e foi adotado
    - CREATED → WATCHING: a subscription está aberta e o objeto atual foi lido
    - WATCHING → TERMINAL: fase Succeeded/Failed observada, workload removido
      ou stream encerrado

Regras de observação:
    - Eventos são consumidos um por vez, na ordem de entrega
    - Eventos ERROR e eventos de outros objetos são registrados e ignorados
    - Succeeded com algum container saindo com código != 0 resolve como FAILED
    - Stream encerrado sem fase terminal resolve como FAILED ("watch closed unexpectedly")
    - DELETED do workload observado sem fase terminal resolve como FAILED
    - TERMINAL é absorvente: observações posteriores não mudam o resultado

O watcher não conversa com o cluster nem bloqueia; quem consome a
subscription e controla cancelamento/deadline é o `WorkloadStep`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from atlas_ci.cluster.client import LogFn
from atlas_ci.cluster.types import EventType, WatchEvent, WorkloadObject, WorkloadPhase
from atlas_ci.core.exceptions import TransientWatchError


WATCH_CLOSED_REASON = "watch closed unexpectedly"
WORKLOAD_DELETED_REASON = "workload deleted before reaching a terminal phase"


class WatcherState(str, Enum):
    NOT_STARTED = "not_started"
    CREATED = "created"
    WATCHING = "watching"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class WatchOutcome:
    """Resultado terminal: fase final, motivo e o objeto que a determinou."""

    phase: WorkloadPhase
    reason: str = ""
    watch_closed: bool = False
    deleted: bool = False
    object: Optional[WorkloadObject] = None

    @property
    def succeeded(self) -> bool:
        return self.phase == WorkloadPhase.SUCCEEDED


class CompletionWatcher:
    """
    Máquina de estados que traduz eventos de watch em um `WatchOutcome`.

    Transições inválidas (ex.: observar antes de WATCHING) são erro de
    programação e levantam RuntimeError.
    """

    def __init__(self, name: str, *, log: Optional[LogFn] = None) -> None:
        self.name = name
        self._log = log
        self._state = WatcherState.NOT_STARTED
        self._outcome: Optional[WatchOutcome] = None
        self.transient_errors: List[TransientWatchError] = []

    # -----------------------------
    # Estado
    # -----------------------------
    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def terminal(self) -> bool:
        return self._state == WatcherState.TERMINAL

    @property
    def outcome(self) -> Optional[WatchOutcome]:
        return self._outcome

    def _emit(self, level: str, message: str, **extra: Any) -> None:
        if self._log is not None:
            self._log(level=level, message=message, workload=self.name, **extra)

    def _transition(self, target: WatcherState) -> None:
        self._emit("info", "watcher state transition", previous=self._state.value, state=target.value)
        self._state = target

    # -----------------------------
    # Transições
    # -----------------------------
    def mark_created(self) -> None:
        if self._state != WatcherState.NOT_STARTED:
            raise RuntimeError(f"cannot mark created from state {self._state.value}")
        self._transition(WatcherState.CREATED)

    def mark_watching(self) -> None:
        if self._state not in (WatcherState.NOT_STARTED, WatcherState.CREATED):
            raise RuntimeError(f"cannot start watching from state {self._state.value}")
        self._transition(WatcherState.WATCHING)

    def observe_object(self, obj: WorkloadObject) -> Optional[WatchOutcome]:
        """Avalia um objeto lido diretamente (ex.: `get` logo após subscrever)."""
        return self.observe(WatchEvent(EventType.MODIFIED, obj))

    def observe(self, event: WatchEvent) -> Optional[WatchOutcome]:
        if self._state == WatcherState.TERMINAL:
            self._emit("debug", "event ignored after terminal state", event_type=event.type.value)
            return self._outcome
        if self._state != WatcherState.WATCHING:
            raise RuntimeError(f"cannot observe events in state {self._state.value}")

        if event.type == EventType.ERROR:
            error = TransientWatchError(
                message=event.message or "watch error",
                details={"workload": self.name, "state": self._state.value},
            )
            self.transient_errors.append(error)
            self._emit(
                "warning",
                "transient watch error ignored",
                error_type=error.__class__.__name__,
                error_message=error.message,
            )
            return None

        obj = event.object
        if obj is None or obj.name != self.name:
            self._emit(
                "debug",
                "event for unrelated object ignored",
                event_type=event.type.value,
                object_name=obj.name if obj is not None else None,
            )
            return None

        outcome = self._evaluate(obj)
        if outcome is None and event.type == EventType.DELETED:
            self._emit("warning", WORKLOAD_DELETED_REASON, phase=obj.phase.value)
            outcome = WatchOutcome(
                phase=WorkloadPhase.FAILED,
                reason=WORKLOAD_DELETED_REASON,
                deleted=True,
                object=obj,
            )
        if outcome is None:
            self._emit("debug", "non-terminal phase observed", phase=obj.phase.value)
            return None

        self._outcome = outcome
        self._transition(WatcherState.TERMINAL)
        return outcome

    def close_stream(self) -> WatchOutcome:
        """Encerramento do stream: sem fase terminal observada, falha fechado."""
        if self._state == WatcherState.TERMINAL:
            assert self._outcome is not None
            return self._outcome
        self._emit("warning", WATCH_CLOSED_REASON, state=self._state.value)
        self._outcome = WatchOutcome(
            phase=WorkloadPhase.FAILED,
            reason=WATCH_CLOSED_REASON,
            watch_closed=True,
        )
        self._transition(WatcherState.TERMINAL)
        return self._outcome

    # -----------------------------
    # Avaliação de fase
    # -----------------------------
    @staticmethod
    def _evaluate(obj: WorkloadObject) -> Optional[WatchOutcome]:
        status = obj.status
        failed = status.failed_containers()

        if status.phase == WorkloadPhase.FAILED:
            return WatchOutcome(
                phase=WorkloadPhase.FAILED,
                reason=status.message or status.reason,
                object=obj,
            )

        if status.phase == WorkloadPhase.SUCCEEDED:
            if failed:
                first = failed[0]
                reason = f"container {first.name} exited with code {first.exit_code}"
                if first.message:
                    reason = f"{reason}: {first.message}"
                return WatchOutcome(phase=WorkloadPhase.FAILED, reason=reason, object=obj)
            return WatchOutcome(phase=WorkloadPhase.SUCCEEDED, reason=status.message, object=obj)

        return None
