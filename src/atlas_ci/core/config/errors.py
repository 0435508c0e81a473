# src/atlas_ci/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Atlas CI.

As exceções aqui definidas representam violações estruturais de arquivos
de configuração (ausentes, formato desconhecido, raiz inválida, conflito de
tipos no merge). Erros de configuração de um Step específico usam
`atlas_ci.core.exceptions.ConfigurationError`.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa erro de execução de Step
"""


class ConfigError(Exception):
    """
    Exceção base para erros de carregamento e resolução de configuração.

    Permite captura genérica de falhas estruturais sem confundi-las com
    falhas de execução do workload.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Arquivo de configuração base (defaults) não encontrado.

    O arquivo de defaults é obrigatório; o loader não tenta inferir nem
    criar defaults automaticamente.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo de configuração não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Conteúdo raiz da configuração não é um dicionário (`dict`).
    """


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"workload": {"timeout_seconds": 600}}
        - override: {"workload": "fast"}

    Nenhum merge parcial é produzido em caso de conflito.
    """
