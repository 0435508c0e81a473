# src/atlas_ci/core/config/hashing.py
"""
Hashing canônico do Atlas CI.

O mesmo algoritmo identifica tanto a configuração efetiva quanto a
especificação de um workload: se duas entradas produzem o mesmo hash, o
scheduler pode tratá-las como idênticas (retries, re-diffs, detecção de
drift ao retomar um workload existente).

Política de hashing (v1):
    - Serialização JSON canônica
    - Ordenação estável de chaves
    - Separadores compactos (sem espaços supérfluos)
    - Codificação UTF-8
    - Algoritmo SHA-256
"""

import hashlib
import json
from typing import Any, Dict


def canonical_json(value: Any) -> str:
    """Serializa `value` em JSON canônico (chaves ordenadas, separadores compactos)."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def canonical_hash(value: Any) -> str:
    """
    Calcula o hash SHA-256 da representação JSON canônica de `value`.

    Returns:
        str: String hexadecimal de 64 caracteres.

    Raises:
        TypeError: Se `value` não for serializável em JSON.
    """
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Calcula o hash canônico da configuração efetiva.

    Args:
        config (Dict[str, Any]): Configuração efetiva do pipeline.

    Returns:
        str: Hash SHA-256 hexadecimal da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return canonical_hash(config)
