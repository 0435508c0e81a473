"""
# Pipeline Core do Atlas CI

Este pacote define os **contratos canônicos** que permitem a um Step compor
com outros Steps dentro de um grafo de dependências maior.

## Componentes

- **types**: `StepStatus`, `StepKind`, `StepResult`
- **links**: `StepLink` e construtores de arestas (`images_ready_link`, ...)
- **step**: `Step` (Protocol), contrato mínimo exposto ao scheduler
- **context**: `RunContext` (logs, warnings, cancelamento, artefatos)

## Limites Explícitos

- Não planeja execução (o scheduler é um colaborador externo)
- Não conhece clusters nem workloads
"""

from .context import RunContext
from .links import StepLink, images_ready_link, links_satisfied
from .step import Step
from .types import StepKind, StepResult, StepStatus

__all__ = [
    "RunContext",
    "Step",
    "StepKind",
    "StepLink",
    "StepResult",
    "StepStatus",
    "images_ready_link",
    "links_satisfied",
]
