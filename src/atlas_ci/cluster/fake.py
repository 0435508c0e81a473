"""
Client de workloads em memória.

Substitui o cluster em testes e execuções locais. Mantém objetos por
(namespace, nome), entrega eventos de watch a todas as subscriptions
abertas na ordem em que as mutações acontecem e permite simular o
control plane avançando o status (`update_status`) de forma independente
do Step.

Cada instância é isolada: não existe estado global entre clients.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from atlas_ci.core.exceptions import (
    WorkloadAlreadyExists,
    WorkloadClientError,
    WorkloadNotFound,
)

from .client import WatchSubscription
from .types import (
    EventType,
    WatchEvent,
    WorkloadObject,
    WorkloadSpec,
    WorkloadStatus,
)


class InMemoryWorkloadClient:
    """
    Implementação thread-safe de `WorkloadClient` sobre dicionários.

    Recursos para testes:
        - `actions`: lista ordenada de (verbo, namespace, nome) executados
        - `fail_on(verb, exc)`: a próxima chamada do verbo levanta `exc`
        - `close_watches()`: encerra os streams abertos (watch derrubado)
        - `emit_error()`: entrega um evento ERROR às subscriptions
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: Dict[Tuple[str, str], WorkloadObject] = {}
        self._subscriptions: Dict[str, List[WatchSubscription]] = {}
        self._failures: Dict[str, WorkloadClientError] = {}
        self._version = 0
        self.actions: List[Tuple[str, str, str]] = []

    def workloads(self, namespace: str) -> "InMemoryNamespacedWorkloads":
        return InMemoryNamespacedWorkloads(self, namespace)

    # -----------------------------
    # Hooks de simulação
    # -----------------------------
    def fail_on(self, verb: str, exc: WorkloadClientError) -> None:
        with self._lock:
            self._failures[verb] = exc

    def close_watches(self, namespace: Optional[str] = None) -> None:
        with self._lock:
            for ns, subs in self._subscriptions.items():
                if namespace is None or ns == namespace:
                    for sub in subs:
                        sub.close()
                    subs.clear()

    def emit_error(self, namespace: str, message: str) -> None:
        with self._lock:
            self._emit(namespace, WatchEvent(EventType.ERROR, None, message))

    def subscription_count(self, namespace: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(namespace, []))

    # -----------------------------
    # Internos (chamados com _lock adquirido)
    # -----------------------------
    def _record(self, verb: str, namespace: str, name: str) -> None:
        self.actions.append((verb, namespace, name))
        exc = self._failures.pop(verb, None)
        if exc is not None:
            raise exc

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _emit(self, namespace: str, event: WatchEvent) -> None:
        for sub in list(self._subscriptions.get(namespace, [])):
            if sub.matches(event.object):
                sub.publish(event)

    def _unsubscribe(self, namespace: str, sub: WatchSubscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(namespace, [])
            if sub in subs:
                subs.remove(sub)

    # -----------------------------
    # Operações
    # -----------------------------
    def _create(self, namespace: str, spec: WorkloadSpec) -> WorkloadObject:
        with self._lock:
            self._record("create", namespace, spec.name)
            key = (namespace, spec.name)
            if key in self._objects:
                raise WorkloadAlreadyExists(
                    message=f"workload '{spec.name}' already exists",
                    details={"namespace": namespace, "name": spec.name},
                )
            obj = WorkloadObject(
                spec=replace(spec, namespace=namespace),
                status=WorkloadStatus(),
                resource_version=self._next_version(),
            )
            self._objects[key] = obj
            self._emit(namespace, WatchEvent(EventType.ADDED, obj))
            return obj

    def _get(self, namespace: str, name: str) -> WorkloadObject:
        with self._lock:
            self._record("get", namespace, name)
            try:
                return self._objects[(namespace, name)]
            except KeyError:
                raise WorkloadNotFound(
                    message=f"workload '{name}' not found",
                    details={"namespace": namespace, "name": name},
                ) from None

    def _update_status(self, namespace: str, obj: WorkloadObject) -> WorkloadObject:
        with self._lock:
            self._record("update_status", namespace, obj.name)
            key = (namespace, obj.name)
            current = self._objects.get(key)
            if current is None:
                raise WorkloadNotFound(
                    message=f"workload '{obj.name}' not found",
                    details={"namespace": namespace, "name": obj.name},
                )
            updated = replace(current, status=obj.status, resource_version=self._next_version())
            self._objects[key] = updated
            self._emit(namespace, WatchEvent(EventType.MODIFIED, updated))
            return updated

    def _delete(self, namespace: str, name: str) -> None:
        with self._lock:
            self._record("delete", namespace, name)
            obj = self._objects.pop((namespace, name), None)
            if obj is None:
                raise WorkloadNotFound(
                    message=f"workload '{name}' not found",
                    details={"namespace": namespace, "name": name},
                )
            self._emit(namespace, WatchEvent(EventType.DELETED, obj))

    def _watch(self, namespace: str, name: Optional[str]) -> WatchSubscription:
        with self._lock:
            self._record("watch", namespace, name or "")
            sub = WatchSubscription(
                name=name,
                on_stop=lambda s: self._unsubscribe(namespace, s),
            )
            self._subscriptions.setdefault(namespace, []).append(sub)
            return sub


class InMemoryNamespacedWorkloads:
    """Visão de um namespace sobre um `InMemoryWorkloadClient`."""

    def __init__(self, client: InMemoryWorkloadClient, namespace: str) -> None:
        self._client = client
        self.namespace = namespace

    def create(self, spec: WorkloadSpec) -> WorkloadObject:
        return self._client._create(self.namespace, spec)

    def get(self, name: str) -> WorkloadObject:
        return self._client._get(self.namespace, name)

    def watch(self, name: Optional[str] = None) -> WatchSubscription:
        return self._client._watch(self.namespace, name)

    def update_status(self, obj: WorkloadObject) -> WorkloadObject:
        return self._client._update_status(self.namespace, obj)

    def delete(self, name: str) -> None:
        self._client._delete(self.namespace, name)
