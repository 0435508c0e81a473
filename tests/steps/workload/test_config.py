# tests/steps/workload/test_config.py
"""
Testes dos parsers de configuração do WorkloadStep.
"""

import pytest

from atlas_ci.cluster.types import ResourceRequirements
from atlas_ci.core.exceptions import ConfigurationError
from atlas_ci.core.pipeline.links import ImageStreamTagReference
from atlas_ci.steps.workload.config import (
    DEFAULT_SECRET_MOUNT_PATH,
    JobIdentity,
    StepConfiguration,
    job_identity_from_dict,
    resource_configuration_from_dict,
    step_configuration_from_dict,
)


def test_step_configuration_from_dict():
    cfg = step_configuration_from_dict(
        {
            "as": "unit",
            "from": {"cluster": "kluster", "name": "src", "tag": "latest", "as": "FromName"},
            "commands": "make test",
            "artifact_dir": "/tmp/artifacts",
            "secret_name": "mysecret",
            "publishes": "junit",
        }
    )

    assert cfg == StepConfiguration(
        as_="unit",
        from_=ImageStreamTagReference(name="src", tag="latest", cluster="kluster", as_="FromName"),
        commands="make test",
        artifact_dir="/tmp/artifacts",
        secret_name="mysecret",
        publishes="junit",
    )
    assert cfg.effective_secret_mount_path == DEFAULT_SECRET_MOUNT_PATH


def test_step_configuration_requires_as_and_image():
    with pytest.raises(ConfigurationError) as exc:
        step_configuration_from_dict({"from": {"name": "src", "tag": "latest"}})
    assert exc.value.details["key"] == "as"

    with pytest.raises(ConfigurationError):
        step_configuration_from_dict({"as": "unit"})

    with pytest.raises(ConfigurationError):
        step_configuration_from_dict({"as": "unit", "from": {"name": "src"}})


def test_step_configuration_rejects_non_text_values():
    with pytest.raises(ConfigurationError) as exc:
        step_configuration_from_dict(
            {"as": "unit", "from": {"name": "src", "tag": "latest"}, "commands": ["make"]}
        )
    assert exc.value.details == {"key": "commands", "received": "list"}


def test_step_configuration_must_be_mapping():
    with pytest.raises(ConfigurationError):
        step_configuration_from_dict("unit")


def test_job_identity_from_dict():
    job = job_identity_from_dict(
        {"job": "j", "build_id": "1", "prow_job_id": "p", "namespace": "ns", "raw_spec": "{}"}
    )

    assert job == JobIdentity(job="j", build_id="1", prow_job_id="p", namespace="ns", raw_spec="{}")


def test_job_identity_requires_namespace():
    with pytest.raises(ConfigurationError):
        job_identity_from_dict({"job": "j", "build_id": "1"})


def test_resource_configuration_fallback():
    resources = resource_configuration_from_dict(
        {
            "*": {"requests": {"cpu": "100m"}},
            "unit": {"requests": {"cpu": 2}, "limits": {"memory": "4Gi"}},
        }
    )

    assert resources.for_step("unit") == ResourceRequirements(
        requests={"cpu": "2"}, limits={"memory": "4Gi"}
    )
    assert resources.for_step("e2e") == ResourceRequirements(requests={"cpu": "100m"})


def test_resource_configuration_empty():
    resources = resource_configuration_from_dict(None)

    assert resources.for_step("unit").empty
