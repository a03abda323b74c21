"""
Version selection for workload resource mappings.
"""

from typing import Optional

from ..models import (
    ClusterWorkloadResourceMappingContainer,
    ClusterWorkloadResourceMappingSpec,
    ClusterWorkloadResourceMappingTemplate,
)

WILDCARD_VERSION = "*"


def default_template(version: str = WILDCARD_VERSION) -> ClusterWorkloadResourceMappingTemplate:
    """Mapping for resources embedding a PodTemplateSpec at .spec.template."""
    return ClusterWorkloadResourceMappingTemplate(
        version=version,
        annotations=".spec.template.metadata.annotations",
        containers=[
            ClusterWorkloadResourceMappingContainer(
                path=".spec.template.spec.containers[*]",
                name=".name",
                env=".env",
                volume_mounts=".volumeMounts",
            ),
            ClusterWorkloadResourceMappingContainer(
                path=".spec.template.spec.initContainers[*]",
                name=".name",
                env=".env",
                volume_mounts=".volumeMounts",
            ),
        ],
        volumes=".spec.template.spec.volumes",
    )


def default_mapping() -> ClusterWorkloadResourceMappingSpec:
    return ClusterWorkloadResourceMappingSpec(versions=[default_template()])


def mapping_version(
    version: str,
    mapping: Optional[ClusterWorkloadResourceMappingSpec],
) -> ClusterWorkloadResourceMappingTemplate:
    """
    Select the mapping template for a resource version.

    An exact version entry wins over a wildcard entry; with neither, the
    PodSpec-able default applies. Blank fields of the selected entry are
    filled from the default.
    """
    defaults = default_template(version)
    if mapping is None:
        return defaults

    selected = None
    for template in mapping.versions:
        if template.version == version:
            selected = template
            break
        if template.version == WILDCARD_VERSION and selected is None:
            selected = template
    if selected is None:
        return defaults

    containers = [
        c.model_copy(update={
            "env": c.env or ".env",
            "volume_mounts": c.volume_mounts or ".volumeMounts",
        })
        for c in selected.containers
    ]
    return ClusterWorkloadResourceMappingTemplate(
        version=version,
        annotations=selected.annotations or defaults.annotations,
        containers=containers or defaults.containers,
        volumes=selected.volumes or defaults.volumes,
    )
