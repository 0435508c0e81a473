# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas CI.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas (YAML como string)
- configuração e identidade de um WorkloadStep (cenário de referência)
- client de workloads em memória (sem cluster real)
- contexto de execução controlado (RunContext)
- simulador de control plane em thread dedicada

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - O simulador de cluster consome sua própria subscription,
      como o control plane real faria

Invariantes:
    - Nenhuma fixture acessa rede ou cluster
    - Cada teste recebe um client isolado (sem estado global)
    - Threads de simulação são sempre finalizadas no teardown

Limites explícitos:
    - Não substituir testes de integração contra um cluster real
"""

import threading
from datetime import datetime, timezone

import pytest


# =====================================================
# Config Loader fixtures
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """
    YAML de configuração padrão (defaults), base do deep-merge.

    Returns:
        str: Conteúdo YAML representando `config.defaults.yaml`.
    """
    return """\
workload:
  timeout_seconds: null
  poll_interval_seconds: 1.0
pipeline:
  namespace: ci-op-default
  fail_fast: true
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """
    YAML de configuração local (override) aplicado sobre os defaults.

    Returns:
        str: Conteúdo YAML representando `config.local.yaml`.
    """
    return """\
workload:
  timeout_seconds: 600
pipeline:
  namespace: ci-op-local
"""


# =====================================================
# WorkloadStep fixtures
# =====================================================

@pytest.fixture
def step_configuration():
    """
    Configuração de referência: `TestName` a partir de `somename:sometag`
    executando `launch-tests`, sem secret.
    """
    from atlas_ci.core.pipeline.links import ImageStreamTagReference
    from atlas_ci.steps.workload.config import StepConfiguration

    return StepConfiguration(
        as_="TestName",
        from_=ImageStreamTagReference(
            cluster="kluster",
            name="somename",
            tag="sometag",
            as_="FromName",
        ),
        commands="launch-tests",
    )


@pytest.fixture
def job_identity():
    """Identidade da run usada pelos cenários end-to-end."""
    from atlas_ci.steps.workload.config import JobIdentity

    return JobIdentity(
        job="very-cool-prow-job",
        build_id="test-build-id",
        prow_job_id="prow-job-id",
        namespace="TestNamespace",
    )


@pytest.fixture
def fake_client():
    """Client de workloads em memória, isolado por teste."""
    from atlas_ci.cluster.fake import InMemoryWorkloadClient

    return InMemoryWorkloadClient()


@pytest.fixture
def fast_settings():
    """Polling curto para manter os testes rápidos; sem deadline."""
    from atlas_ci.core.config.settings import WorkloadSettings

    return WorkloadSettings(timeout_seconds=None, poll_interval_seconds=0.01)


@pytest.fixture
def workload_step(step_configuration, job_identity, fake_client, fast_settings):
    from atlas_ci.steps.workload.step import WorkloadStep

    return WorkloadStep(
        "StepName",
        step_configuration,
        fake_client,
        job_identity,
        settings=fast_settings,
    )


@pytest.fixture
def dummy_ctx():
    """
    RunContext determinístico: `run_id` e `created_at` fixos, config vazia.

    Returns:
        RunContext: Contexto de execução isolado e previsível para testes.
    """
    from atlas_ci.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config={},
        meta={"source": "pytest"},
    )


# =====================================================
# Simulador de control plane
# =====================================================

@pytest.fixture
def simulated_cluster(fake_client):
    """
    Factory que inicia um control plane simulado em uma thread.

    O simulador abre sua própria subscription no namespace, aguarda o
    primeiro evento ADDED do workload e então chama `update_status` com
    o status informado, encerrando em seguida.

    Uso:
        cluster = simulated_cluster("TestNamespace", WorkloadStatus(phase=...))
        ... executar o Step ...
        cluster.join()
    """
    from atlas_ci.cluster.types import EventType

    started = []

    class _Cluster:
        def __init__(self, namespace, status):
            self.namespace = namespace
            self.status = status
            self.seen = []
            self.errors = []
            self.subscription = fake_client.workloads(namespace).watch()
            self.thread = threading.Thread(target=self._behave, daemon=True)

        def _behave(self):
            from dataclasses import replace

            for event in self.subscription:
                self.seen.append(event)
                if event.type == EventType.ADDED and event.object is not None:
                    updated = replace(event.object, status=self.status)
                    try:
                        fake_client.workloads(self.namespace).update_status(updated)
                    except Exception as exc:  # reportado pelo teste
                        self.errors.append(exc)
                    break

        def start(self):
            self.thread.start()
            return self

        def join(self, timeout=5.0):
            self.thread.join(timeout)
            return not self.thread.is_alive()

        def stop(self):
            self.subscription.stop()
            self.thread.join(1.0)

    def _factory(namespace, status):
        cluster = _Cluster(namespace, status).start()
        started.append(cluster)
        return cluster

    yield _factory

    for cluster in started:
        cluster.stop()
