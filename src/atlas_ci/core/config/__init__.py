"""
Camada de configuração do Atlas CI.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar, identificar e interpretar configurações de execução do Atlas CI.

A configuração chega ao Step já resolvida: o core não lê flags de CLI nem
variáveis de ambiente. Este pacote oferece apenas:
    - carregamento de arquivos (defaults + overrides locais)
    - deep-merge determinístico
    - hashing canônico para rastreabilidade
    - leitura tipada das opções de execução de workloads (`WorkloadSettings`)

Invariantes:
    - A configuração final é um dicionário puro (dict)
    - A mesma entrada sempre produz a mesma configuração final
    - Conflitos estruturais são tratados como erro
"""

from .hashing import canonical_hash, compute_config_hash
from .loader import load_config
from .merge import deep_merge
from .settings import WorkloadSettings

__all__ = [
    "WorkloadSettings",
    "canonical_hash",
    "compute_config_hash",
    "deep_merge",
    "load_config",
]
