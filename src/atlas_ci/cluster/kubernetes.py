"""
Adapter de `WorkloadClient` sobre o client oficial `kubernetes`.

Responsabilidades do módulo:
    - Converter `WorkloadSpec` em `V1Pod` e `V1Pod` em `WorkloadObject`
    - Mapear respostas HTTP 409/404 para `WorkloadAlreadyExists`/`WorkloadNotFound`
    - Bombear `kubernetes.watch.Watch` para a fila de uma `WatchSubscription`
      a partir de uma thread dedicada, escopada por `metadata.name`
    - Limitar cada stream de watch no servidor (`timeout_seconds`) e no
      client (`_request_timeout`), reabrindo-o enquanto a subscription
      estiver ativa; parar a subscription encerra a thread em no máximo
      um intervalo de timeout

Limites explícitos:
    - Não carrega credenciais: recebe um `CoreV1Api` já configurado
    - Não faz retry de erros; qualquer outra `ApiException` vira `WorkloadClientError`
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from kubernetes import client as k8s
from kubernetes import watch as k8s_watch
from kubernetes.client.rest import ApiException

from atlas_ci.core.exceptions import (
    WorkloadAlreadyExists,
    WorkloadClientError,
    WorkloadNotFound,
)

from .client import LogFn, WatchSubscription
from .types import (
    Container,
    ContainerState,
    EventType,
    ResourceRequirements,
    Volume,
    VolumeMount,
    WatchEvent,
    WorkloadObject,
    WorkloadPhase,
    WorkloadSpec,
    WorkloadStatus,
)


# O servidor encerra cada stream; o client aborta a leitura logo depois
DEFAULT_WATCH_TIMEOUT_SECONDS = 60
WATCH_REQUEST_GRACE_SECONDS = 10


# ---------------------------------------------------------------------------
# Conversões
# ---------------------------------------------------------------------------

def to_v1_pod(spec: WorkloadSpec) -> k8s.V1Pod:
    containers = []
    for c in spec.containers:
        resources = None
        if not c.resources.empty:
            resources = k8s.V1ResourceRequirements(
                requests=dict(c.resources.requests) or None,
                limits=dict(c.resources.limits) or None,
            )
        containers.append(
            k8s.V1Container(
                name=c.name,
                image=c.image,
                command=list(c.command),
                termination_message_policy=c.termination_message_policy,
                volume_mounts=[
                    k8s.V1VolumeMount(
                        name=m.name,
                        mount_path=m.mount_path,
                        sub_path=m.sub_path or None,
                        read_only=m.read_only,
                    )
                    for m in c.volume_mounts
                ],
                resources=resources,
            )
        )

    return k8s.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=k8s.V1ObjectMeta(
            name=spec.name,
            namespace=spec.namespace,
            labels=dict(spec.labels),
            annotations=dict(spec.annotations),
        ),
        spec=k8s.V1PodSpec(
            containers=containers,
            volumes=[
                k8s.V1Volume(
                    name=v.name,
                    secret=k8s.V1SecretVolumeSource(secret_name=v.secret_name),
                )
                for v in spec.volumes
            ],
            restart_policy=spec.restart_policy,
            service_account_name=spec.service_account_name or None,
        ),
    )


def _phase(value: Optional[str]) -> WorkloadPhase:
    if value is None:
        return WorkloadPhase.PENDING
    try:
        return WorkloadPhase(value)
    except ValueError:
        return WorkloadPhase.UNKNOWN


def _container_from_v1(c: Any) -> Container:
    res = c.resources
    return Container(
        name=c.name,
        image=c.image or "",
        command=tuple(c.command or ()),
        termination_message_policy=c.termination_message_policy or "",
        volume_mounts=tuple(
            VolumeMount(
                name=m.name,
                mount_path=m.mount_path,
                sub_path=m.sub_path or "",
                read_only=bool(m.read_only),
            )
            for m in (c.volume_mounts or [])
        ),
        resources=ResourceRequirements(
            requests=dict((res.requests or {}) if res else {}),
            limits=dict((res.limits or {}) if res else {}),
        ),
    )


def from_v1_pod(pod: Any) -> WorkloadObject:
    meta = pod.metadata
    pod_spec = pod.spec
    spec = WorkloadSpec(
        name=meta.name,
        namespace=meta.namespace or "",
        labels=dict(meta.labels or {}),
        annotations=dict(meta.annotations or {}),
        containers=tuple(_container_from_v1(c) for c in (pod_spec.containers or [])),
        volumes=tuple(
            Volume(name=v.name, secret_name=v.secret.secret_name)
            for v in (pod_spec.volumes or [])
            if v.secret is not None
        ),
        restart_policy=pod_spec.restart_policy or "",
        service_account_name=pod_spec.service_account_name or "",
    )

    status = pod.status
    states = []
    for cs in (getattr(status, "container_statuses", None) or []):
        terminated = cs.state.terminated if cs.state is not None else None
        states.append(
            ContainerState(
                name=cs.name,
                exit_code=terminated.exit_code if terminated is not None else None,
                reason=(terminated.reason or "") if terminated is not None else "",
                message=(terminated.message or "") if terminated is not None else "",
            )
        )

    return WorkloadObject(
        spec=spec,
        status=WorkloadStatus(
            phase=_phase(getattr(status, "phase", None)),
            message=getattr(status, "message", None) or "",
            reason=getattr(status, "reason", None) or "",
            container_states=tuple(states),
        ),
        resource_version=meta.resource_version or "",
    )


def _translate(exc: ApiException, *, namespace: str, name: str) -> WorkloadClientError:
    details: Dict[str, Any] = {"namespace": namespace, "name": name, "status": exc.status}
    if exc.status == 409:
        return WorkloadAlreadyExists(message=f"workload '{name}' already exists", details=details)
    if exc.status == 404:
        return WorkloadNotFound(message=f"workload '{name}' not found", details=details)
    return WorkloadClientError(message=exc.reason or "cluster API error", details=details)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class KubernetesWorkloadClient:
    """
    `WorkloadClient` apoiado em `kubernetes.client.CoreV1Api`.

    A segurança de concorrência da conexão é delegada ao client oficial;
    cada subscription de watch usa sua própria thread e seu próprio `Watch`.
    """

    def __init__(
        self,
        core_api: k8s.CoreV1Api,
        *,
        watch_timeout_seconds: int = DEFAULT_WATCH_TIMEOUT_SECONDS,
        log: Optional[LogFn] = None,
    ) -> None:
        self.core_api = core_api
        self.watch_timeout_seconds = watch_timeout_seconds
        self._log = log

    def workloads(self, namespace: str) -> "KubernetesNamespacedWorkloads":
        return KubernetesNamespacedWorkloads(self, namespace)

    def log(self, *, level: str, message: str, **extra: Any) -> None:
        if self._log is not None:
            self._log(level=level, message=message, **extra)


class KubernetesNamespacedWorkloads:
    def __init__(self, client: KubernetesWorkloadClient, namespace: str) -> None:
        self._client = client
        self._api = client.core_api
        self.namespace = namespace

    def create(self, spec: WorkloadSpec) -> WorkloadObject:
        try:
            pod = self._api.create_namespaced_pod(self.namespace, to_v1_pod(spec))
        except ApiException as exc:
            raise _translate(exc, namespace=self.namespace, name=spec.name) from exc
        return from_v1_pod(pod)

    def get(self, name: str) -> WorkloadObject:
        try:
            pod = self._api.read_namespaced_pod(name, self.namespace)
        except ApiException as exc:
            raise _translate(exc, namespace=self.namespace, name=name) from exc
        return from_v1_pod(pod)

    def update_status(self, obj: WorkloadObject) -> WorkloadObject:
        body = to_v1_pod(obj.spec)
        body.metadata.resource_version = obj.resource_version or None
        body.status = k8s.V1PodStatus(
            phase=obj.status.phase.value,
            message=obj.status.message or None,
            reason=obj.status.reason or None,
        )
        try:
            pod = self._api.replace_namespaced_pod_status(obj.name, self.namespace, body)
        except ApiException as exc:
            raise _translate(exc, namespace=self.namespace, name=obj.name) from exc
        return from_v1_pod(pod)

    def delete(self, name: str) -> None:
        try:
            self._api.delete_namespaced_pod(name, self.namespace)
        except ApiException as exc:
            raise _translate(exc, namespace=self.namespace, name=name) from exc

    def watch(self, name: Optional[str] = None) -> WatchSubscription:
        watcher = k8s_watch.Watch()
        sub = WatchSubscription(name=name, on_stop=lambda _s: watcher.stop())

        timeout = self._client.watch_timeout_seconds
        kwargs: Dict[str, Any] = {
            "timeout_seconds": timeout,
            "_request_timeout": timeout + WATCH_REQUEST_GRACE_SECONDS,
        }
        if name:
            kwargs["field_selector"] = f"metadata.name={name}"

        thread = threading.Thread(
            target=self._pump,
            args=(watcher, sub, kwargs),
            name=f"atlas-ci-watch-{self.namespace}-{name or '*'}",
            daemon=True,
        )
        thread.start()
        return sub

    def _pump(self, watcher: Any, sub: WatchSubscription, kwargs: Dict[str, Any]) -> None:
        """
        Bombeia eventos até a subscription ser parada.

        Cada stream termina em `timeout_seconds`; enquanto a subscription
        estiver ativa, o watch é reaberto a partir do último resourceVersion.
        """
        resource_version: Optional[str] = None
        try:
            while not sub.stopped:
                stream_kwargs = dict(kwargs)
                if resource_version:
                    stream_kwargs["resource_version"] = resource_version
                for raw in watcher.stream(self._api.list_namespaced_pod, self.namespace, **stream_kwargs):
                    if sub.stopped:
                        break
                    event_type = raw.get("type")
                    if event_type == EventType.ERROR.value:
                        resource_version = None
                        sub.publish(WatchEvent(EventType.ERROR, None, str(raw.get("raw_object") or "")))
                        continue
                    if event_type not in EventType.__members__:
                        continue
                    obj = from_v1_pod(raw["object"])
                    resource_version = obj.resource_version or resource_version
                    sub.publish(WatchEvent(EventType(event_type), obj))
        except Exception as exc:  # ApiException, erros de conexão do urllib3
            self._client.log(
                level="warning",
                message="watch stream interrupted",
                namespace=self.namespace,
                error_type=exc.__class__.__name__,
                error_message=str(exc),
            )
            sub.publish(WatchEvent(EventType.ERROR, None, str(exc)))
        finally:
            sub.close()
