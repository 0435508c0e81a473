# tests/steps/workload/test_workload_step_execution.py
"""
Testes de execução do WorkloadStep contra o cluster em memória.

O control plane é simulado por uma thread (`simulated_cluster`) que
observa a criação do workload e avança seu status, de forma independente
do Step, como a plataforma real faria.
"""

import threading
from dataclasses import replace

import pytest

from atlas_ci.cluster.types import (
    ContainerState,
    WorkloadPhase,
    WorkloadStatus,
)
from atlas_ci.core.config.settings import WorkloadSettings
from atlas_ci.core.errors import WORKLOAD_DELETED, WORKLOAD_FAILED, WORKLOAD_WATCH_CLOSED
from atlas_ci.core.exceptions import (
    ConfigurationError,
    ExecutionCancelled,
    ExecutionTimeout,
    WorkloadClientError,
    WorkloadNotFound,
    WorkloadStepError,
)
from atlas_ci.core.pipeline.types import StepStatus
from atlas_ci.steps.workload.spec_builder import build_workload_spec
from atlas_ci.steps.workload.step import WorkloadStep, spec_drift


NAMESPACE = "TestNamespace"


def _create_existing(fake_client, spec, status=None):
    ns = fake_client.workloads(NAMESPACE)
    obj = ns.create(spec)
    if status is not None:
        obj = ns.update_status(replace(obj, status=status))
    return obj


def _not_found():
    return WorkloadNotFound(message="workload 'TestName' not found")


@pytest.mark.parametrize(
    "phase, expected",
    [
        (WorkloadPhase.SUCCEEDED, StepStatus.SUCCESS),
        (WorkloadPhase.FAILED, StepStatus.FAILED),
    ],
)
def test_execution_follows_workload_phase(
    workload_step, fake_client, dummy_ctx, simulated_cluster, step_configuration, job_identity, phase, expected
):
    assert workload_step.done() is False
    cluster = simulated_cluster(NAMESPACE, WorkloadStatus(phase=phase, message="finished"))

    result = workload_step.run(dummy_ctx)

    assert cluster.join()
    assert cluster.errors == []
    assert result.status == expected
    assert workload_step.done() is True

    creates = [a for a in fake_client.actions if a[0] == "create"]
    assert creates == [("create", NAMESPACE, "TestName")]

    pod = fake_client.workloads(NAMESPACE).get("TestName")
    assert pod.spec == build_workload_spec("StepName", step_configuration, job_identity)
    assert pod.phase == phase


def test_watch_is_opened_before_create(workload_step, fake_client, dummy_ctx, simulated_cluster):
    simulated_cluster(NAMESPACE, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))

    workload_step.run(dummy_ctx)

    verbs = [(verb, name) for verb, _, name in fake_client.actions]
    assert verbs.index(("watch", "TestName")) < verbs.index(("create", "TestName"))


def test_success_result_shape(workload_step, dummy_ctx, simulated_cluster, step_configuration, job_identity):
    simulated_cluster(NAMESPACE, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))

    result = workload_step.run(dummy_ctx)

    assert result.succeeded
    assert result.step_id == "TestName"
    assert result.artifacts == {"workload": "TestName", "namespace": NAMESPACE}
    assert result.payload["phase"] == "Succeeded"
    assert result.payload["resumed"] is False
    assert result.payload["adopted_existing"] is False
    assert result.payload["spec_hash"] == build_workload_spec(
        "StepName", step_configuration, job_identity
    ).spec_hash()
    assert "error" not in result.payload
    assert result.warnings == []


def test_failed_result_carries_status_message(workload_step, dummy_ctx, simulated_cluster):
    simulated_cluster(NAMESPACE, WorkloadStatus(phase=WorkloadPhase.FAILED, message="tests failed", reason="Error"))

    result = workload_step.run(dummy_ctx)

    assert result.failed
    error = result.payload["error"]
    assert error["type"] == WORKLOAD_FAILED
    assert error["message"] == "tests failed"
    assert error["details"]["reason"] == "Error"
    assert dummy_ctx.events_for("TestName", level="error")


def test_succeeded_with_nonzero_exit_code_fails(workload_step, dummy_ctx, simulated_cluster):
    status = WorkloadStatus(
        phase=WorkloadPhase.SUCCEEDED,
        container_states=(ContainerState(name="StepName", exit_code=1),),
    )
    simulated_cluster(NAMESPACE, status)

    result = workload_step.run(dummy_ctx)

    assert result.failed
    assert "exited with code 1" in result.payload["error"]["message"]


def test_artifact_dir_is_exposed(step_configuration, job_identity, fake_client, fast_settings, dummy_ctx, simulated_cluster):
    step = WorkloadStep(
        "StepName",
        replace(step_configuration, artifact_dir="/tmp/artifacts"),
        fake_client,
        job_identity,
        settings=fast_settings,
    )
    simulated_cluster(NAMESPACE, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))

    result = step.run(dummy_ctx)

    assert result.artifacts["artifact_dir"] == "/tmp/artifacts"


def test_watch_closed_without_terminal_phase_fails(workload_step, fake_client, dummy_ctx):
    def _drop_watch():
        # espera o Step subscrever e criar, então derruba o stream
        while not any(a[0] == "get" for a in fake_client.actions[1:]):
            threading.Event().wait(0.005)
        fake_client.close_watches(NAMESPACE)

    dropper = threading.Thread(target=_drop_watch, daemon=True)
    dropper.start()

    result = workload_step.run(dummy_ctx)
    dropper.join(5.0)

    assert result.failed
    assert result.payload["error"]["type"] == WORKLOAD_WATCH_CLOSED
    assert result.payload["error"]["message"] == "watch closed unexpectedly"


def test_transient_error_events_do_not_fail(workload_step, fake_client, dummy_ctx):
    def _behave():
        # o Step faz dois gets: antes de subscrever e logo após criar
        while len([a for a in fake_client.actions if a[0] == "get"]) < 2:
            threading.Event().wait(0.005)
        ns = fake_client.workloads(NAMESPACE)
        obj = ns.get("TestName")
        fake_client.emit_error(NAMESPACE, "too old resource version")
        ns.update_status(replace(obj, status=WorkloadStatus(phase=WorkloadPhase.SUCCEEDED)))

    thread = threading.Thread(target=_behave, daemon=True)
    thread.start()

    result = workload_step.run(dummy_ctx)
    thread.join(5.0)

    assert result.succeeded
    assert result.metrics["transient_watch_errors"] == 1


def test_resumes_when_workload_already_terminal(workload_step, fake_client, dummy_ctx, step_configuration, job_identity):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    _create_existing(fake_client, spec, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))
    fake_client.actions.clear()

    result = workload_step.run(dummy_ctx)

    assert result.succeeded
    assert result.payload["resumed"] is True
    assert [a[0] for a in fake_client.actions] == ["get"]


def test_second_run_reports_existing_result(workload_step, fake_client, dummy_ctx, simulated_cluster):
    simulated_cluster(NAMESPACE, WorkloadStatus(phase=WorkloadPhase.FAILED, message="boom"))
    first = workload_step.run(dummy_ctx)

    second = workload_step.run(dummy_ctx)

    assert first.failed and second.failed
    assert second.payload["resumed"] is True
    assert len([a for a in fake_client.actions if a[0] == "create"]) == 1


def test_adopts_existing_running_workload(workload_step, fake_client, dummy_ctx, step_configuration, job_identity):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    obj = _create_existing(fake_client, spec, WorkloadStatus(phase=WorkloadPhase.RUNNING))

    def _finish():
        while fake_client.subscription_count(NAMESPACE) == 0:
            threading.Event().wait(0.005)
        fake_client.workloads(NAMESPACE).update_status(
            replace(obj, status=WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))
        )

    thread = threading.Thread(target=_finish, daemon=True)
    thread.start()

    result = workload_step.run(dummy_ctx)
    thread.join(5.0)

    assert result.succeeded
    assert result.payload["adopted_existing"] is True
    assert any("already existed" in w for w in result.warnings)
    assert not any("differs" in w for w in result.warnings)
    assert len([a for a in fake_client.actions if a[0] == "create"]) == 1


def test_adoption_reports_spec_drift(workload_step, fake_client, dummy_ctx, step_configuration, job_identity):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    drifted = replace(spec, containers=(replace(spec.container, image="other:tag"),))
    _create_existing(fake_client, drifted, WorkloadStatus(phase=WorkloadPhase.RUNNING))
    # create falha com AlreadyExists quando o get inicial não enxerga o objeto
    fake_client.fail_on("get", _not_found())

    def _finish():
        while fake_client.subscription_count(NAMESPACE) == 0:
            threading.Event().wait(0.005)
        ns = fake_client.workloads(NAMESPACE)
        obj = ns.get("TestName")
        ns.update_status(replace(obj, status=WorkloadStatus(phase=WorkloadPhase.FAILED, message="x")))

    thread = threading.Thread(target=_finish, daemon=True)
    thread.start()

    result = workload_step.run(dummy_ctx)
    thread.join(5.0)

    assert result.failed
    assert result.payload["adopted_existing"] is True
    assert any("differs from the expected spec: containers" in w for w in result.warnings)


def test_adoption_ignores_keys_added_by_admission(
    workload_step, fake_client, dummy_ctx, step_configuration, job_identity
):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    admitted = replace(
        spec,
        labels={**spec.labels, "app": "ci"},
        annotations={**spec.annotations, "openshift.io/scc": "restricted"},
    )
    _create_existing(fake_client, admitted, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))
    fake_client.fail_on("get", _not_found())

    result = workload_step.run(dummy_ctx)

    assert result.succeeded
    assert result.payload["adopted_existing"] is True
    assert not any("differs" in w for w in result.warnings)


def test_spec_drift_compares_only_written_keys(step_configuration, job_identity):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    extra = replace(spec, annotations={**spec.annotations, "openshift.io/scc": "restricted"})
    changed = replace(spec, annotations={**spec.annotations, "ci.openshift.io/job-spec": "other"})
    missing_label = replace(spec, labels={k: v for k, v in spec.labels.items() if k != "job"})

    assert spec_drift(spec, extra) == []
    assert spec_drift(spec, changed) == ["annotations"]
    assert spec_drift(spec, missing_label) == ["labels"]


def test_workload_deleted_while_watching_fails(step_configuration, job_identity, fake_client, dummy_ctx):
    step = WorkloadStep(
        "StepName",
        step_configuration,
        fake_client,
        job_identity,
        settings=WorkloadSettings(timeout_seconds=5.0, poll_interval_seconds=0.01),
    )

    def _delete():
        # o Step faz dois gets: antes de subscrever e logo após criar
        while len([a for a in fake_client.actions if a[0] == "get"]) < 2:
            threading.Event().wait(0.005)
        fake_client.workloads(NAMESPACE).delete("TestName")

    thread = threading.Thread(target=_delete, daemon=True)
    thread.start()

    result = step.run(dummy_ctx)
    thread.join(5.0)

    assert result.status == StepStatus.FAILED
    error = result.payload["error"]
    assert error["type"] == WORKLOAD_DELETED
    assert error["details"]["last_phase"] == WorkloadPhase.PENDING.value
    assert result.payload["phase"] == WorkloadPhase.FAILED.value


def test_already_terminal_after_subscribe_resolves_without_events(
    workload_step, fake_client, dummy_ctx, step_configuration, job_identity
):
    spec = build_workload_spec("StepName", step_configuration, job_identity)
    _create_existing(fake_client, spec, WorkloadStatus(phase=WorkloadPhase.SUCCEEDED))
    fake_client.fail_on("get", _not_found())

    result = workload_step.run(dummy_ctx)

    assert result.succeeded
    assert result.payload["adopted_existing"] is True


def test_cancellation_stops_watch_and_leaves_workload(workload_step, fake_client, dummy_ctx):
    timer = threading.Timer(0.05, dummy_ctx.cancel)
    timer.start()

    with pytest.raises(ExecutionCancelled) as exc:
        workload_step.run(dummy_ctx)
    timer.join()

    assert not isinstance(exc.value, ExecutionTimeout)
    assert exc.value.details["state"] == "watching"
    assert fake_client.subscription_count(NAMESPACE) == 0
    assert fake_client.workloads(NAMESPACE).get("TestName").phase == WorkloadPhase.PENDING
    assert not any(a[0] == "delete" for a in fake_client.actions)


def test_timeout_raises_execution_timeout(step_configuration, job_identity, fake_client, dummy_ctx):
    step = WorkloadStep(
        "StepName",
        step_configuration,
        fake_client,
        job_identity,
        settings=WorkloadSettings(timeout_seconds=0.05, poll_interval_seconds=0.01),
    )

    with pytest.raises(ExecutionTimeout) as exc:
        step.run(dummy_ctx)

    assert exc.value.details["timeout_seconds"] == 0.05
    assert fake_client.subscription_count(NAMESPACE) == 0
    assert fake_client.workloads(NAMESPACE).get("TestName")


def test_settings_are_read_from_context_config(step_configuration, job_identity, fake_client, dummy_ctx):
    step = WorkloadStep("StepName", step_configuration, fake_client, job_identity)
    dummy_ctx.config = {"workload": {"timeout_seconds": 0.05, "poll_interval_seconds": 0.01}}

    with pytest.raises(ExecutionTimeout):
        step.run(dummy_ctx)


def test_configuration_error_before_any_cluster_call(step_configuration, job_identity, fake_client, dummy_ctx):
    step = WorkloadStep("", step_configuration, fake_client, job_identity)

    with pytest.raises(ConfigurationError):
        step.run(dummy_ctx)

    assert fake_client.actions == []


def test_client_errors_are_wrapped_with_step_and_phase(workload_step, fake_client, dummy_ctx):
    fake_client.fail_on("create", WorkloadClientError(message="forbidden", details={"status": 403}))

    with pytest.raises(WorkloadStepError) as exc:
        workload_step.run(dummy_ctx)

    details = exc.value.details
    assert details["step"] == "TestName"
    assert details["phase"] == "not_started"
    assert details["cause"] == "WorkloadClientError"
    assert details["status"] == 403
    assert isinstance(exc.value.__cause__, WorkloadClientError)
    assert fake_client.subscription_count(NAMESPACE) == 0

