"""
Atlas CI: Steps de pipeline executados como workloads em um cluster.

Um `WorkloadStep` materializa um único pod de execução no cluster, observa
seu ciclo de vida por um stream de eventos (watch) e traduz a fase terminal
em sucesso ou falha para o pipeline.

Arquitetura em alto nível:
    - core.config        → configuração efetiva e opções de workload
    - core.pipeline      → contrato de Step, StepLinks e RunContext
    - cluster            → modelo de objetos, client (Protocol), fake e adapter Kubernetes
    - steps.workload     → builder de spec, watcher de conclusão e o Step

Limites explícitos:
    - Não escalona Steps (o scheduler do grafo é externo)
    - Não constrói imagens nem coleta logs/artefatos
    - Não reimplementa o control plane do cluster
"""

from .steps.workload import WorkloadStep

__all__ = ["WorkloadStep"]
