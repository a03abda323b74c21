"""
Tests for mapping version selection and the static mapping source.
"""

import pytest

from projector.context import RequestContext
from projector.errors import ContextCancelledError, MappingLookupError
from projector.mapping import (
    StaticMappingSource,
    default_mapping,
    default_template,
    mapping_name,
    mapping_version,
    split_api_version,
)
from projector.models import ClusterWorkloadResourceMappingSpec, RESTMapping


def _mapping(*versions):
    return ClusterWorkloadResourceMappingSpec.from_dict({"versions": list(versions)})


def test_split_api_version():
    assert split_api_version("apps/v1") == ("apps", "v1")
    assert split_api_version("v1") == ("", "v1")


def test_mapping_name():
    assert mapping_name(RESTMapping(group="batch", version="v1", resource="cronjobs")) == "cronjobs.batch"
    assert mapping_name(RESTMapping(version="v1", resource="pods")) == "pods"


def test_no_mapping_uses_default():
    assert mapping_version("v1", None) == default_template("v1")


def test_exact_version_wins_over_wildcard():
    mapping = _mapping(
        {"version": "*", "volumes": ".spec.wildcard.volumes"},
        {"version": "v2", "volumes": ".spec.v2.volumes"},
    )

    assert mapping_version("v2", mapping).volumes == ".spec.v2.volumes"
    assert mapping_version("v1", mapping).volumes == ".spec.wildcard.volumes"


def test_unmatched_version_uses_default():
    mapping = _mapping({"version": "v2", "volumes": ".spec.v2.volumes"})

    assert mapping_version("v1", mapping) == default_template("v1")


def test_blank_fields_filled_from_default():
    mapping = _mapping({
        "version": "*",
        "containers": [{"path": ".spec.containers[*]", "name": ".name"}],
    })

    template = mapping_version("v1", mapping)

    assert template.annotations == ".spec.template.metadata.annotations"
    assert template.volumes == ".spec.template.spec.volumes"
    assert len(template.containers) == 1
    assert template.containers[0].env == ".env"
    assert template.containers[0].volume_mounts == ".volumeMounts"


def test_static_source_well_known_kind():
    source = StaticMappingSource()
    ctx = RequestContext.background()

    rm = source.lookup_rest_mapping(ctx, {"apiVersion": "apps/v1", "kind": "Deployment"})

    assert rm == RESTMapping(group="apps", version="v1", resource="deployments", kind="Deployment")
    assert source.lookup_workload_mapping(ctx, rm) == default_mapping()


def test_static_source_cronjob_mapping():
    source = StaticMappingSource()
    ctx = RequestContext.background()

    rm = source.lookup_rest_mapping(ctx, {"apiVersion": "batch/v1", "kind": "CronJob"})
    mapping = source.lookup_workload_mapping(ctx, rm)

    assert mapping_version("v1", mapping).volumes == ".spec.jobTemplate.spec.template.spec.volumes"


def test_static_source_unknown_kind():
    with pytest.raises(MappingLookupError):
        StaticMappingSource().lookup_rest_mapping(
            RequestContext.background(), {"apiVersion": "example.com/v1", "kind": "Widget"}
        )


def test_static_source_registered_kind_and_mapping():
    source = StaticMappingSource(default_podspecable=False)
    source.register_kind("example.com", "Widget", "widgets")
    custom = _mapping({"version": "*", "volumes": ".spec.volumes"})
    source.register_mapping("widgets.example.com", custom)
    ctx = RequestContext.background()

    rm = source.lookup_rest_mapping(ctx, {"apiVersion": "example.com/v1", "kind": "Widget"})

    assert source.lookup_workload_mapping(ctx, rm) == custom


def test_static_source_missing_mapping_without_default():
    source = StaticMappingSource(default_podspecable=False)
    rm = RESTMapping(group="apps", version="v1", resource="deployments")

    with pytest.raises(MappingLookupError):
        source.lookup_workload_mapping(RequestContext.background(), rm)


def test_static_source_honors_cancellation():
    ctx = RequestContext.background()
    ctx.cancel()

    with pytest.raises(ContextCancelledError):
        StaticMappingSource().lookup_rest_mapping(ctx, {"apiVersion": "apps/v1", "kind": "Deployment"})
