# tests/core/config/test_merge.py
"""
Testes da política canônica de deep-merge.

Política validada:
    - dict → merge recursivo
    - list → sobrescrita total
    - escalar → sobrescrita direta
    - None → sobrescrita direta em qualquer direção
    - int/float → compatíveis entre si
    - conflito de tipos → ConfigTypeConflictError
"""

import pytest

from atlas_ci.core.config.errors import ConfigTypeConflictError
from atlas_ci.core.config.merge import deep_merge


def test_merge_simple_override():
    base = {"a": 1, "b": 2}
    override = {"b": 3}

    assert deep_merge(base, override) == {"a": 1, "b": 3}


def test_merge_nested_dict():
    base = {"workload": {"timeout_seconds": 600, "poll_interval_seconds": 1.0}}
    override = {"workload": {"poll_interval_seconds": 0.25}}

    out = deep_merge(base, override)
    assert out == {"workload": {"timeout_seconds": 600, "poll_interval_seconds": 0.25}}


def test_merge_does_not_mutate_inputs():
    base = {"workload": {"timeout_seconds": 600}}
    override = {"workload": {"timeout_seconds": 30}}

    deep_merge(base, override)
    assert base == {"workload": {"timeout_seconds": 600}}
    assert override == {"workload": {"timeout_seconds": 30}}


def test_merge_list_override_total():
    base = {"steps": ["unit", "e2e"]}
    override = {"steps": ["lint"]}

    assert deep_merge(base, override) == {"steps": ["lint"]}


def test_merge_none_and_numbers_are_compatible():
    base = {"workload": {"timeout_seconds": None, "poll_interval_seconds": 1}}
    override = {"workload": {"timeout_seconds": 30, "poll_interval_seconds": 0.5}}

    out = deep_merge(base, override)
    assert out["workload"] == {"timeout_seconds": 30, "poll_interval_seconds": 0.5}

    back = deep_merge(out, {"workload": {"timeout_seconds": None}})
    assert back["workload"]["timeout_seconds"] is None


def test_merge_type_conflict_raises():
    base = {"workload": {"timeout_seconds": 600}}
    override = {"workload": "fast"}

    with pytest.raises(ConfigTypeConflictError):
        deep_merge(base, override)


def test_merge_bool_is_not_numeric():
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"fail_fast": True}, {"fail_fast": 1})
