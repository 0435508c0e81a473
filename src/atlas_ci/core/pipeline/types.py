"""
Tipos canônicos do pipeline do Atlas CI.

Componentes principais:
    - StepStatus → enum de estados finais (SUCCESS, FAILED)
    - StepKind   → enum de classificação semântica de Steps
    - StepResult → estrutura imutável de resultado de execução

Princípios fundamentais:
    - Tipos são estáveis e serializáveis
    - Nenhuma lógica de execução vive neste módulo
    - Um StepResult é derivado uma única vez por execução e nunca reaproveitado
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class StepKind(str, Enum):
    """
    Tipos semânticos de Steps no pipeline.

    Tipos definidos:
        - SOURCE: clonagem ou preparação de código-fonte
        - BUILD: construção de imagens
        - TEST: execução de comandos em um workload no cluster
        - RELEASE: promoção ou publicação de artefatos

    O tipo é puramente informativo: o scheduler não o utiliza para decidir
    ordem de execução (isso é papel dos StepLinks).

    Apenas TEST tem implementação neste pacote; SOURCE, BUILD e RELEASE
    classificam os Steps externos que o scheduler mistura no mesmo grafo.
    """
    SOURCE = "source"
    BUILD = "build"
    TEST = "test"
    RELEASE = "release"


class StepStatus(str, Enum):
    """
    Estados finais possíveis da execução de um Step.

    Estados definidos:
        - SUCCESS: o workload terminou na fase Succeeded
        - FAILED: o workload terminou na fase Failed, ou o stream de
          eventos terminou sem fase terminal (fail-closed)

    Cancelamento e timeout não são estados: são exceções
    (`ExecutionCancelled`, `ExecutionTimeout`).
    """
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """
    Resultado imutável da execução de um Step.

    Campos:
        - step_id: nome do Step
        - kind: tipo semântico do Step
        - status: estado final da execução do Step
        - summary: resumo textual da execução
        - metrics: métricas numéricas produzidas pelo Step
        - warnings: avisos não fatais gerados durante a execução
        - artifacts: referências produzidas (ex.: nome/namespace do workload)
        - payload: dados adicionais; `payload["error"]` quando FAILED
    """
    step_id: str
    kind: StepKind
    status: StepStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    artifacts: Dict[str, str] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED
