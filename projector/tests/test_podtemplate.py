"""
Tests for the structured pod template view.
"""

import copy

import pytest

from projector.context import RequestContext
from projector.errors import ContextCancelledError, MappingPathError, WriteBackError
from projector.mapping import default_template
from projector.models import ClusterWorkloadResourceMappingTemplate
from projector.podtemplate import ANY, MetaPodTemplate, find_all, parse_path, set_value


def _deployment():
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "app", "annotations": {"owner": "team-a"}},
        "spec": {
            "template": {
                "metadata": {"annotations": {"prometheus.io/scrape": "true"}},
                "spec": {
                    "initContainers": [{"name": "init", "image": "busybox"}],
                    "containers": [
                        {
                            "name": "web",
                            "image": "web",
                            "env": [{"name": "A", "value": "1"}],
                            "volumeMounts": [{"name": "data", "mountPath": "/data"}],
                        },
                        {"image": "sidecar"},
                    ],
                    "volumes": [{"name": "data", "emptyDir": {}}],
                },
            },
        },
    }


def test_parse_path():
    assert parse_path(".spec.template.spec.containers[*]") == ["spec", "template", "spec", "containers", ANY]
    assert parse_path("$.metadata['annotations'][0]") == ["metadata", "annotations", 0]


@pytest.mark.parametrize("expr", ["", "spec", ".spec..x", ".spec[?(@.name)]"])
def test_parse_path_unsupported(expr):
    with pytest.raises(MappingPathError):
        parse_path(expr)


def test_find_all_wildcard():
    obj = {"items": [{"n": 1}, {"n": 2}, {"m": 3}]}

    assert list(find_all(obj, parse_path(".items[*].n"))) == [1, 2]


def test_set_value_creates_maps_and_prunes_empty():
    obj = {"metadata": {"name": "x"}}

    set_value(obj, parse_path(".spec.template.metadata.annotations"), {"a": "b"})
    assert obj["spec"]["template"]["metadata"]["annotations"] == {"a": "b"}

    set_value(obj, parse_path(".spec.template.metadata.annotations"), {})
    assert obj == {"metadata": {"name": "x"}}


def test_view_reads_fields():
    mpt = MetaPodTemplate(_deployment(), default_template("v1"))

    assert mpt.workload_annotations == {"owner": "team-a"}
    assert mpt.pod_template_annotations == {"prometheus.io/scrape": "true"}
    assert [v["name"] for v in mpt.volumes] == ["data"]
    assert [c.name for c in mpt.containers] == ["web", None, "init"]
    assert mpt.containers[0].env == [{"name": "A", "value": "1"}]
    assert mpt.containers[1].env == []


def test_view_does_not_touch_workload_until_write_back():
    workload = _deployment()
    original = copy.deepcopy(workload)
    mpt = MetaPodTemplate(workload, default_template("v1"))

    mpt.volumes.append({"name": "extra"})
    mpt.containers[0].env.append({"name": "B", "value": "2"})
    mpt.pod_template_annotations["k"] = "v"

    assert workload == original


def test_write_back():
    workload = _deployment()
    mpt = MetaPodTemplate(workload, default_template("v1"))

    mpt.volumes.append({"name": "extra"})
    mpt.containers[1].env.append({"name": "B", "value": "2"})
    mpt.containers[2].volume_mounts.append({"name": "extra", "mountPath": "/extra"})
    mpt.workload_annotations["k"] = "v"
    mpt.write_to_workload(RequestContext.background())

    spec = workload["spec"]["template"]["spec"]
    assert [v["name"] for v in spec["volumes"]] == ["data", "extra"]
    assert spec["containers"][1]["env"] == [{"name": "B", "value": "2"}]
    assert spec["initContainers"][0]["volumeMounts"] == [{"name": "extra", "mountPath": "/extra"}]
    assert workload["metadata"]["annotations"] == {"owner": "team-a", "k": "v"}


def test_write_back_unchanged_is_noop():
    workload = _deployment()
    original = copy.deepcopy(workload)

    MetaPodTemplate(workload, default_template("v1")).write_to_workload(RequestContext.background())

    assert workload == original


def test_write_back_removes_emptied_fields():
    workload = _deployment()
    mpt = MetaPodTemplate(workload, default_template("v1"))

    mpt.volumes.clear()
    mpt.containers[0].volume_mounts.clear()
    mpt.workload_annotations.clear()
    mpt.write_to_workload(RequestContext.background())

    assert "volumes" not in workload["spec"]["template"]["spec"]
    assert "volumeMounts" not in workload["spec"]["template"]["spec"]["containers"][0]
    assert "annotations" not in workload["metadata"]


def test_write_back_keeps_fields_that_were_already_empty():
    workload = _deployment()
    pod = workload["spec"]["template"]["spec"]
    pod["volumes"] = []
    pod["containers"][0]["env"] = []
    pod["containers"][0]["volumeMounts"] = []
    workload["metadata"]["annotations"] = {}
    original = copy.deepcopy(workload)

    MetaPodTemplate(workload, default_template("v1")).write_to_workload(RequestContext.background())

    assert workload == original


def test_set_value_without_prune_leaves_path():
    obj = {"spec": {"env": []}}

    set_value(obj, parse_path(".spec.env"), [], prune=False)
    assert obj == {"spec": {"env": []}}

    set_value(obj, parse_path(".spec.volumes"), [], prune=False)
    assert obj == {"spec": {"env": []}}


def test_write_back_error_leaves_workload_untouched():
    workload = _deployment()
    original = copy.deepcopy(workload)
    template = ClusterWorkloadResourceMappingTemplate(
        version="v1",
        annotations=".spec.template.metadata.annotations",
        volumes=".metadata.name.volumes",
    )
    mpt = MetaPodTemplate(workload, template)
    mpt.volumes.append({"name": "extra"})
    mpt.workload_annotations["k"] = "v"

    with pytest.raises(WriteBackError):
        mpt.write_to_workload(RequestContext.background())
    assert workload == original


def test_write_back_cancelled():
    workload = _deployment()
    mpt = MetaPodTemplate(workload, default_template("v1"))
    mpt.volumes.append({"name": "extra"})
    ctx = RequestContext.background()
    ctx.cancel()

    with pytest.raises(ContextCancelledError):
        mpt.write_to_workload(ctx)
    assert len(workload["spec"]["template"]["spec"]["volumes"]) == 1


def test_pod_shares_annotations():
    pod = {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "p"}, "spec": {"containers": [{"name": "c"}]}}
    template = ClusterWorkloadResourceMappingTemplate.model_validate({
        "version": "v1",
        "annotations": ".metadata.annotations",
        "containers": [{"path": ".spec.containers[*]", "name": ".name"}],
        "volumes": ".spec.volumes",
    })
    mpt = MetaPodTemplate(pod, template)

    mpt.pod_template_annotations["a"] = "1"
    mpt.workload_annotations["b"] = "2"
    mpt.write_to_workload(RequestContext.background())

    assert pod["metadata"]["annotations"] == {"a": "1", "b": "2"}
