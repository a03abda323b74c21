"""
Service binding projector.

Injects service binding artifacts (a projected secret volume, per-container
volume mounts and environment variables) into the pod template of any
workload, and removes them again:
- ServiceBindingProjector: project / unproject / is_projected
- MappingSource: resolves where pod template fields live for a workload kind
- MetaPodTemplate: structured view over a workload's pod template
- RequestContext: cancellation, deadline and request-scoped values
"""

from .binding import (
    GROUP,
    SERVICE_BINDING_ROOT_ENV,
    VOLUME_PREFIX,
    ServiceBindingProjector,
)
from .context import RequestContext
from .errors import (
    ContextCancelledError,
    DeadlineExceededError,
    MappingDecodeError,
    MappingEncodeError,
    MappingLookupError,
    MappingPathError,
    ProjectorError,
    SelectorError,
    WriteBackError,
)
from .mapping import ClusterMappingSource, MappingSource, StaticMappingSource, mapping_version
from .models import ClusterWorkloadResourceMappingSpec, RESTMapping, ServiceBinding
from .podtemplate import MetaContainer, MetaPodTemplate

__version__ = "0.1.0"

__all__ = [
    "GROUP",
    "SERVICE_BINDING_ROOT_ENV",
    "VOLUME_PREFIX",
    "ServiceBindingProjector",
    "RequestContext",
    "ContextCancelledError",
    "DeadlineExceededError",
    "MappingDecodeError",
    "MappingEncodeError",
    "MappingLookupError",
    "MappingPathError",
    "ProjectorError",
    "SelectorError",
    "WriteBackError",
    "MappingSource",
    "ClusterMappingSource",
    "StaticMappingSource",
    "mapping_version",
    "ClusterWorkloadResourceMappingSpec",
    "RESTMapping",
    "ServiceBinding",
    "MetaContainer",
    "MetaPodTemplate",
]
