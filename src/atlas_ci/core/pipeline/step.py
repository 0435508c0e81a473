"""
Contrato canônico de Step do Atlas CI.

Um Step é a menor unidade executável do pipeline. O scheduler externo
mantém uma coleção de objetos que satisfazem este protocolo e nunca
inspeciona tipos concretos: a ordem de execução é derivada apenas dos
StepLinks declarados (`requires` / `creates`).

Princípios fundamentais:
    - Steps não conhecem o scheduler
    - Steps não controlam ordem de execução
    - Conformidade é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `name()` é estável e único no pipeline
    - `requires()` e `creates()` não mudam durante a vida do Step
    - `run` nunca reaproveita um StepResult anterior; o estado vem do cluster
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .context import RunContext
from .links import StepLink
from .types import StepResult


@runtime_checkable
class Step(Protocol):
    """
    Contrato canônico de um Step do Atlas CI.

    Métodos obrigatórios:
        - name(): identificador do Step
        - requires(): links dos quais o Step depende
        - creates(): links que o Step disponibiliza ao concluir
        - provides(): parâmetros publicados e o link que os protege
        - provided_parameters(): apenas os parâmetros de `provides()`
        - inputs(): valida entradas e retorna seus valores resolvidos
        - run(ctx): executa o Step e retorna um StepResult
        - done(): indica se o trabalho do Step já foi concluído

    Limites explícitos:
        - Não define lógica de retry (responsabilidade do scheduler)
        - Não decide políticas de execução (fail-fast, paralelismo)
    """

    def name(self) -> str:
        ...

    def requires(self) -> List[StepLink]:
        ...

    def creates(self) -> List[StepLink]:
        ...

    def provides(self) -> Tuple[Dict[str, Any], Optional[StepLink]]:
        ...

    def provided_parameters(self) -> Dict[str, Any]:
        ...

    def inputs(self) -> Dict[str, Any]:
        ...

    def run(self, ctx: RunContext) -> StepResult:
        """Executa o Step; falhas esperadas viram StepResult FAILED."""
        ...

    def done(self) -> bool:
        ...
