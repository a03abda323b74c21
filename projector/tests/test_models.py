"""
Tests for the service binding and mapping models.
"""

import pytest

from projector.errors import MappingDecodeError
from projector.mapping import default_mapping
from projector.models import ClusterWorkloadResourceMappingSpec, ServiceBinding


def test_binding_from_kubernetes_dict():
    binding = ServiceBinding.from_dict({
        "apiVersion": "servicebinding.io/v1",
        "kind": "ServiceBinding",
        "metadata": {"name": "db", "namespace": "default", "uid": "abc"},
        "spec": {
            "name": "db",
            "type": "mysql",
            "workload": {"apiVersion": "apps/v1", "kind": "Deployment", "name": "app", "containers": ["web"]},
            "env": [{"name": "DB_USER", "key": "username"}],
        },
        "status": {"binding": {"name": "db-secret"}},
    })

    assert binding.uid == "abc"
    assert binding.secret_name == "db-secret"
    assert binding.spec.workload.api_version == "apps/v1"
    assert binding.spec.workload.containers == ["web"]
    assert binding.spec.env[0].key == "username"


def test_unbound_binding_has_no_secret():
    binding = ServiceBinding.from_dict({"metadata": {"uid": "abc"}, "status": {}})

    assert binding.secret_name == ""


def test_mapping_json_roundtrip():
    mapping = default_mapping()

    assert ClusterWorkloadResourceMappingSpec.from_json(mapping.to_json()) == mapping


def test_mapping_json_uses_api_field_names():
    data = default_mapping().to_json()

    assert '"volumeMounts":".volumeMounts"' in data
    assert " " not in data


@pytest.mark.parametrize("data", ["not json", '{"versions": "nope"}', '{"versions": [{"annotations": ".a"}]}'])
def test_mapping_decode_error(data):
    with pytest.raises(MappingDecodeError):
        ClusterWorkloadResourceMappingSpec.from_json(data)
