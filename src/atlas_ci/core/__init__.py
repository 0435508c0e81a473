"""
Core do Atlas CI.

Este pacote reúne as responsabilidades independentes de cluster:

    - config   → carregamento, merge, hashing e opções de workload
    - pipeline → protocolo de Step, StepLinks, contexto de execução
    - errors / exceptions → taxonomia canônica de erros

Limites explícitos:
    - Não contém clients de cluster
    - Não define Steps concretos
"""
