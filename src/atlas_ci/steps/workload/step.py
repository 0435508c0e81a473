"""
Step canônico: execução de comandos em um workload do cluster.

Responsabilidades:
- construir a WorkloadSpec do Step (`spec_builder`)
- criar o workload e observar seu ciclo de vida via watch (`watcher`)
- traduzir a fase terminal em StepResult SUCCESS/FAILED
- retomar execuções: workload existente em fase terminal não é recriado

Protocolo de `run`:
    1. `get(name)`: objeto terminal → resultado direto (retomada)
    2. abrir a subscription ANTES de criar (nenhuma transição perdida)
    3. `create(spec)`; `WorkloadAlreadyExists` → adotar o objeto existente
    4. `get(name)` uma vez e alimentar o watcher (objeto já terminal resolve sem eventos)
    5. consumir eventos em fatias de `poll_interval_seconds`, checando
       cancelamento e deadline
    6. liberar a subscription em qualquer caminho de saída

Falhas:
- ConfigurationError → propaga antes de qualquer chamada ao cluster
- workload Failed, removido ou stream encerrado → StepResult FAILED (payload["error"])
- cancelamento / deadline → ExecutionCancelled / ExecutionTimeout (workload permanece)
- outros erros do client → WorkloadStepError com step, fase e causa

Limites explícitos:
- NÃO apaga o workload (limpeza é do scheduler/operador)
- NÃO coleta logs nem artefatos
- NÃO faz retry
"""

from __future__ import annotations

import functools
import time
from typing import Any, Dict, List, Optional, Tuple

from atlas_ci.cluster.client import NamespacedWorkloads, WatchSubscription, WorkloadClient
from atlas_ci.cluster.types import WorkloadObject, WorkloadSpec
from atlas_ci.core.config.settings import WorkloadSettings
from atlas_ci.core.errors import workload_deleted, workload_failed, workload_watch_closed
from atlas_ci.core.exceptions import (
    ConfigurationError,
    ExecutionCancelled,
    ExecutionTimeout,
    WorkloadAlreadyExists,
    WorkloadClientError,
    WorkloadNotFound,
    WorkloadStepError,
)
from atlas_ci.core.pipeline.context import RunContext
from atlas_ci.core.pipeline.links import StepLink, artifact_link, images_ready_link
from atlas_ci.core.pipeline.types import StepKind, StepResult, StepStatus

from .config import JobIdentity, ResourceConfiguration, StepConfiguration
from .spec_builder import build_workload_spec
from .watcher import CompletionWatcher, WatchOutcome


def spec_drift(expected: WorkloadSpec, actual: WorkloadSpec) -> List[str]:
    """
    Campos escritos pelo Step que diferem entre a spec nova e a existente.

    Labels e annotations são comparadas apenas nas chaves que o builder
    escreve; chaves extras (admission, mutating webhooks) não são drift.
    """
    drift = []
    if any(actual.labels.get(k) != v for k, v in expected.labels.items()):
        drift.append("labels")
    if any(actual.annotations.get(k) != v for k, v in expected.annotations.items()):
        drift.append("annotations")
    if expected.volumes != actual.volumes:
        drift.append("volumes")
    if len(expected.containers) != len(actual.containers):
        drift.append("containers")
    else:
        for want, got in zip(expected.containers, actual.containers):
            if (want.name, want.image, want.command) != (got.name, got.image, got.command):
                drift.append("containers")
                break
    return drift


class WorkloadStep:
    """
    Step que executa `commands` em um pod de container único e aguarda sua conclusão.

    Args:
        step_name: nome do container e da anotação de sub-teste
        config: configuração imutável do Step
        client: client de workloads (fake em testes, Kubernetes em produção)
        job: identidade da run do pipeline
        resources: requests/limits por Step (opcional)
        settings: deadline e intervalo de polling; quando None, lidos de `ctx.config`
    """

    kind = StepKind.TEST

    def __init__(
        self,
        step_name: str,
        config: StepConfiguration,
        client: WorkloadClient,
        job: JobIdentity,
        *,
        resources: Optional[ResourceConfiguration] = None,
        settings: Optional[WorkloadSettings] = None,
    ) -> None:
        self.step_name = step_name
        self.config = config
        self.client = client
        self.job = job
        self.resources = resources
        self.settings = settings

    # -----------------------------
    # Contrato de Step
    # -----------------------------
    def name(self) -> str:
        return self.config.as_

    def requires(self) -> List[StepLink]:
        return [images_ready_link()]

    def creates(self) -> List[StepLink]:
        if self.config.publishes:
            return [artifact_link(self.config.publishes)]
        return []

    def provides(self) -> Tuple[Dict[str, Any], Optional[StepLink]]:
        return {}, None

    def provided_parameters(self) -> Dict[str, Any]:
        params, _ = self.provides()
        return params

    def inputs(self) -> Dict[str, Any]:
        ref = self.config.from_
        problems = []
        if not ref.name or any(ch.isspace() for ch in ref.name):
            problems.append("from.name")
        if not ref.tag or any(ch.isspace() or ch in ":/@" for ch in ref.tag):
            problems.append("from.tag")
        if problems:
            raise ConfigurationError(
                message="Referência de imagem inválida",
                details={"step": self.name(), "invalid": problems, "image": ref.pull_spec},
                hint="Use 'name' e 'tag' não vazios, sem espaços; a tag não pode conter ':', '/' ou '@'.",
            )
        return {}

    def done(self) -> bool:
        try:
            obj = self._workloads().get(self.name())
        except WorkloadNotFound:
            return False
        except WorkloadClientError as exc:
            raise self._wrap(exc, phase="done") from exc
        return obj.phase.terminal

    # -----------------------------
    # Execução
    # -----------------------------
    def _workloads(self) -> NamespacedWorkloads:
        return self.client.workloads(self.job.namespace)

    def _wrap(self, exc: WorkloadClientError, *, phase: str) -> WorkloadStepError:
        return WorkloadStepError(
            message=f"step {self.name()}: {exc.message}",
            details={**exc.details, "step": self.name(), "phase": phase, "cause": exc.__class__.__name__},
            hint=exc.hint,
        )

    def run(self, ctx: RunContext) -> StepResult:
        spec = build_workload_spec(self.step_name, self.config, self.job, self.resources)
        settings = self.settings or WorkloadSettings.from_config(ctx.config)
        step_id = self.name()
        log = functools.partial(ctx.log, step_id=step_id)
        workloads = self._workloads()
        watcher = CompletionWatcher(spec.name, log=log)
        adopted = False
        started = time.monotonic()

        try:
            existing = self._get_or_none(workloads, spec.name)
            if existing is not None and existing.phase.terminal:
                log(level="info", message="workload already terminal, resuming", phase=existing.phase.value)
                watcher.mark_watching()
                outcome = watcher.observe_object(existing)
                assert outcome is not None
                return self._result(
                    ctx, spec, outcome, resumed=True, adopted=False, started=started, transient_errors=0
                )

            with workloads.watch(spec.name) as subscription:
                if existing is None:
                    try:
                        workloads.create(spec)
                        log(level="info", message="workload created", workload=spec.name, namespace=spec.namespace)
                        watcher.mark_created()
                    except WorkloadAlreadyExists:
                        adopted = True
                else:
                    adopted = True

                watcher.mark_watching()
                current = workloads.get(spec.name)
                if adopted:
                    self._warn_adopted(ctx, spec, current)
                watcher.observe_object(current)

                outcome = self._wait(ctx, subscription, watcher, settings)

        except WorkloadClientError as exc:
            log(
                level="error",
                message="workload client error",
                phase=watcher.state.value,
                error_type=exc.__class__.__name__,
                error_message=exc.message,
            )
            raise self._wrap(exc, phase=watcher.state.value) from exc

        return self._result(
            ctx,
            spec,
            outcome,
            resumed=False,
            adopted=adopted,
            started=started,
            transient_errors=len(watcher.transient_errors),
        )

    def _get_or_none(self, workloads: NamespacedWorkloads, name: str) -> Optional[WorkloadObject]:
        try:
            return workloads.get(name)
        except WorkloadNotFound:
            return None

    def _warn_adopted(self, ctx: RunContext, spec: WorkloadSpec, current: WorkloadObject) -> None:
        step_id = self.name()
        ctx.add_warning(
            step_id=step_id,
            message=f"workload '{spec.name}' already existed; watching the existing object",
        )
        drift = spec_drift(spec, current.spec)
        if drift:
            ctx.add_warning(
                step_id=step_id,
                message=f"existing workload '{spec.name}' differs from the expected spec: {', '.join(drift)}",
            )
        ctx.log(
            step_id=step_id,
            level="warning",
            message="adopted existing workload",
            workload=spec.name,
            phase=current.phase.value,
            drift=drift,
        )

    def _wait(
        self,
        ctx: RunContext,
        subscription: WatchSubscription,
        watcher: CompletionWatcher,
        settings: WorkloadSettings,
    ) -> WatchOutcome:
        deadline = None
        if settings.timeout_seconds is not None:
            deadline = time.monotonic() + settings.timeout_seconds

        while not watcher.terminal:
            details = {"step": self.name(), "workload": watcher.name, "state": watcher.state.value}
            if ctx.cancelled:
                ctx.log(step_id=self.name(), level="warning", message="execution cancelled", **details)
                raise ExecutionCancelled(message="execution cancelled while watching workload", details=details)

            timeout = settings.poll_interval_seconds
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    ctx.log(step_id=self.name(), level="warning", message="execution timed out", **details)
                    raise ExecutionTimeout(
                        message="timed out waiting for workload to reach a terminal phase",
                        details={**details, "timeout_seconds": settings.timeout_seconds},
                    )
                timeout = min(timeout, remaining)

            event = subscription.next_event(timeout=timeout)
            if event is not None:
                watcher.observe(event)
            elif subscription.closed:
                watcher.close_stream()

        assert watcher.outcome is not None
        return watcher.outcome

    def _result(
        self,
        ctx: RunContext,
        spec: WorkloadSpec,
        outcome: WatchOutcome,
        *,
        resumed: bool,
        adopted: bool,
        started: float,
        transient_errors: int,
    ) -> StepResult:
        step_id = self.name()
        artifacts = {"workload": spec.name, "namespace": spec.namespace}
        if self.config.artifact_dir:
            artifacts["artifact_dir"] = self.config.artifact_dir

        payload: Dict[str, Any] = {
            "phase": outcome.phase.value,
            "spec_hash": spec.spec_hash(),
            "resumed": resumed,
            "adopted_existing": adopted,
        }
        metrics = {
            "duration_seconds": round(time.monotonic() - started, 3),
            "transient_watch_errors": transient_errors,
        }

        if outcome.succeeded:
            ctx.log(step_id=step_id, level="info", message="workload succeeded", workload=spec.name)
            return StepResult(
                step_id=step_id,
                kind=self.kind,
                status=StepStatus.SUCCESS,
                summary=f"workload {spec.name} succeeded",
                metrics=metrics,
                warnings=ctx.warnings_for(step_id),
                artifacts=artifacts,
                payload=payload,
            )

        if outcome.watch_closed:
            error = workload_watch_closed(workload=spec.name, namespace=spec.namespace, step=step_id)
        elif outcome.deleted:
            error = workload_deleted(
                workload=spec.name,
                namespace=spec.namespace,
                phase=outcome.object.phase.value if outcome.object is not None else None,
                step=step_id,
            )
        else:
            error = workload_failed(
                workload=spec.name,
                namespace=spec.namespace,
                status_message=outcome.reason or None,
                reason=outcome.object.status.reason if outcome.object is not None else None,
                step=step_id,
            )
        payload["error"] = error.to_dict()

        ctx.log(
            step_id=step_id,
            level="error",
            message="workload failed",
            workload=spec.name,
            error_type=error.type,
            error_message=error.message,
        )
        return StepResult(
            step_id=step_id,
            kind=self.kind,
            status=StepStatus.FAILED,
            summary=f"workload {spec.name} failed: {error.message}",
            metrics=metrics,
            warnings=ctx.warnings_for(step_id),
            artifacts=artifacts,
            payload=payload,
        )
