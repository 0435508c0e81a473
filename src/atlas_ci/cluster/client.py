"""
Contrato do client de workloads consumido pelo Atlas CI.

O client é um colaborador externo: em produção é apoiado pela API do
cluster (`cluster.kubernetes`), em testes por um fake em memória
(`cluster.fake`). O Step recebe uma instância explícita no construtor;
não existe client global.

Operações, sempre escopadas por namespace (`client.workloads(namespace)`):
    - create(spec)        → WorkloadObject | WorkloadAlreadyExists
    - get(name)           → WorkloadObject | WorkloadNotFound
    - watch(name=None)    → WatchSubscription (ordenada, interrompível)
    - update_status(obj)  → WorkloadObject (apenas simuladores de control plane)
    - delete(name)        → None | WorkloadNotFound

Eventos de watch chegam por uma fila dedicada produzida pelo client; o
consumidor lê um evento por vez, na ordem de entrega.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Iterator, Optional, Protocol, runtime_checkable

from .types import WatchEvent, WorkloadObject, WorkloadSpec


# Mesma assinatura de RunContext.log (sem step_id, preenchido pelo chamador)
LogFn = Callable[..., None]

_END_OF_STREAM = object()


class WatchSubscription:
    """
    Stream de eventos de watch apoiado por uma fila.

    O lado produtor (client) chama `publish(event)` e, ao fim do stream,
    `close()`. O lado consumidor chama `next_event(timeout)`, que retorna
    o próximo evento, ou None quando o timeout expira ou o stream terminou
    (distinguíveis por `closed`).

    `stop()` libera o recurso do lado consumidor; é idempotente e seguro
    em qualquer caminho de saída. Também funciona como context manager.
    """

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        on_stop: Optional[Callable[["WatchSubscription"], None]] = None,
    ) -> None:
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._on_stop = on_stop
        self._stopped = threading.Event()
        self._closed = False

    # -----------------------------
    # Produtor
    # -----------------------------
    def matches(self, obj: Optional[WorkloadObject]) -> bool:
        if self.name is None or obj is None:
            return True
        return obj.name == self.name

    def publish(self, event: WatchEvent) -> None:
        if not self._stopped.is_set():
            self._queue.put(event)

    def close(self) -> None:
        self._queue.put(_END_OF_STREAM)

    # -----------------------------
    # Consumidor
    # -----------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def next_event(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        if self._closed:
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _END_OF_STREAM:
            self._closed = True
            return None
        return item

    def __iter__(self) -> Iterator[WatchEvent]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self._on_stop is not None:
            self._on_stop(self)
        self.close()

    def __enter__(self) -> "WatchSubscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()


@runtime_checkable
class NamespacedWorkloads(Protocol):
    """Operações de workload escopadas a um namespace."""

    namespace: str

    def create(self, spec: WorkloadSpec) -> WorkloadObject:
        ...

    def get(self, name: str) -> WorkloadObject:
        ...

    def watch(self, name: Optional[str] = None) -> WatchSubscription:
        ...

    def update_status(self, obj: WorkloadObject) -> WorkloadObject:
        ...

    def delete(self, name: str) -> None:
        ...


@runtime_checkable
class WorkloadClient(Protocol):
    """Handle de client de cluster; a segurança de concorrência é do adapter."""

    def workloads(self, namespace: str) -> NamespacedWorkloads:
        ...
