"""
Mapping sources resolve where pod template fields live for a workload kind.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from ..context import RequestContext
from ..errors import MappingLookupError
from ..models import (
    ClusterWorkloadResourceMappingContainer,
    ClusterWorkloadResourceMappingSpec,
    ClusterWorkloadResourceMappingTemplate,
    RESTMapping,
)
from .version import default_mapping


def split_api_version(api_version: str) -> Tuple[str, str]:
    """Split "apps/v1" into ("apps", "v1"); core "v1" yields ("", "v1")."""
    group, _, version = api_version.rpartition("/")
    return group, version


def mapping_name(resource: RESTMapping) -> str:
    """Name of the ClusterWorkloadResourceMapping for a resource."""
    if resource.group:
        return f"{resource.resource}.{resource.group}"
    return resource.resource


class MappingSource(ABC):
    """Resolves REST and workload resource mappings for workloads."""

    @abstractmethod
    def lookup_rest_mapping(self, ctx: RequestContext, workload: Dict[str, Any]) -> RESTMapping:
        """
        Raises:
            MappingLookupError: If the workload kind is not registered
        """

    @abstractmethod
    def lookup_workload_mapping(
        self, ctx: RequestContext, resource: RESTMapping
    ) -> ClusterWorkloadResourceMappingSpec:
        """
        Raises:
            MappingLookupError: If no mapping can be resolved for the resource
        """


# (group, kind) -> resource
WELL_KNOWN_RESOURCES: Dict[Tuple[str, str], str] = {
    ("apps", "Deployment"): "deployments",
    ("apps", "StatefulSet"): "statefulsets",
    ("apps", "DaemonSet"): "daemonsets",
    ("apps", "ReplicaSet"): "replicasets",
    ("batch", "Job"): "jobs",
    ("batch", "CronJob"): "cronjobs",
    ("", "ReplicationController"): "replicationcontrollers",
}


def _cronjob_mapping() -> ClusterWorkloadResourceMappingSpec:
    return ClusterWorkloadResourceMappingSpec(versions=[
        ClusterWorkloadResourceMappingTemplate(
            version="*",
            annotations=".spec.jobTemplate.spec.template.metadata.annotations",
            containers=[
                ClusterWorkloadResourceMappingContainer(
                    path=".spec.jobTemplate.spec.template.spec.containers[*]",
                    name=".name",
                ),
                ClusterWorkloadResourceMappingContainer(
                    path=".spec.jobTemplate.spec.template.spec.initContainers[*]",
                    name=".name",
                ),
            ],
            volumes=".spec.jobTemplate.spec.template.spec.volumes",
        ),
    ])


WELL_KNOWN_MAPPINGS: Dict[str, ClusterWorkloadResourceMappingSpec] = {
    "cronjobs.batch": _cronjob_mapping(),
}


class StaticMappingSource(MappingSource):
    """
    In-memory mapping source.

    Kinds must be registered (well-known workload kinds are by default).
    Resources without a registered mapping resolve to the PodSpec-able
    default unless default_podspecable is False.
    """

    def __init__(self, default_podspecable: bool = True, well_known: bool = True) -> None:
        self.default_podspecable = default_podspecable
        self._resources: Dict[Tuple[str, str], str] = dict(WELL_KNOWN_RESOURCES) if well_known else {}
        self._mappings: Dict[str, ClusterWorkloadResourceMappingSpec] = (
            copy.deepcopy(WELL_KNOWN_MAPPINGS) if well_known else {}
        )

    def register_kind(self, group: str, kind: str, resource: str) -> None:
        self._resources[(group, kind)] = resource

    def register_mapping(self, name: str, mapping: ClusterWorkloadResourceMappingSpec) -> None:
        """Register a mapping under its resource name, e.g. "cronjobs.batch"."""
        self._mappings[name] = mapping

    def lookup_rest_mapping(self, ctx: RequestContext, workload: Dict[str, Any]) -> RESTMapping:
        ctx.check()
        group, version = split_api_version(workload.get("apiVersion", ""))
        kind = workload.get("kind", "")
        resource = self._resources.get((group, kind))
        if resource is None or not version:
            raise MappingLookupError(
                f"no REST mapping for kind {kind!r} in {workload.get('apiVersion', '')!r}"
            )
        return RESTMapping(group=group, version=version, resource=resource, kind=kind)

    def lookup_workload_mapping(
        self, ctx: RequestContext, resource: RESTMapping
    ) -> ClusterWorkloadResourceMappingSpec:
        ctx.check()
        mapping: Optional[ClusterWorkloadResourceMappingSpec] = self._mappings.get(mapping_name(resource))
        if mapping is not None:
            return mapping
        if self.default_podspecable:
            return default_mapping()
        raise MappingLookupError(f"no workload resource mapping for {mapping_name(resource)!r}")
