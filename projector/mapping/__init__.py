"""
Workload resource mapping layer.

- MappingSource: resolves REST and workload resource mappings
- StaticMappingSource: in-memory registry
- ClusterMappingSource: Kubernetes API backed
- mapping_version: selects the template for a resource version
"""

from .cluster import ClusterMappingSource
from .source import MappingSource, StaticMappingSource, mapping_name, split_api_version
from .version import default_mapping, default_template, mapping_version

__all__ = [
    "MappingSource",
    "ClusterMappingSource",
    "StaticMappingSource",
    "mapping_name",
    "split_api_version",
    "default_mapping",
    "default_template",
    "mapping_version",
]
