"""
Data model for service bindings and workload resource mappings.

Models accept Kubernetes-shaped dicts (camelCase keys) as well as Python
field names, and dump back to the camelCase form.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MappingDecodeError, MappingEncodeError


class _KubeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class ObjectMeta(_KubeModel):
    uid: str = ""
    name: str = ""
    namespace: str = ""


class LabelSelectorRequirement(_KubeModel):
    key: str
    operator: str
    values: List[str] = Field(default_factory=list)


class LabelSelectorSpec(_KubeModel):
    match_labels: Dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: List[LabelSelectorRequirement] = Field(
        default_factory=list, alias="matchExpressions"
    )


class ServiceBindingWorkloadReference(_KubeModel):
    api_version: str = Field("", alias="apiVersion")
    kind: str = ""
    name: str = ""
    selector: Optional[LabelSelectorSpec] = None
    containers: List[str] = Field(default_factory=list)


class EnvMapping(_KubeModel):
    name: str
    key: str


class ServiceBindingSpec(_KubeModel):
    name: str = ""
    type: str = ""
    provider: str = ""
    workload: ServiceBindingWorkloadReference = Field(default_factory=ServiceBindingWorkloadReference)
    env: List[EnvMapping] = Field(default_factory=list)


class ServiceBindingSecretReference(_KubeModel):
    name: str = ""


class ServiceBindingStatus(_KubeModel):
    binding: Optional[ServiceBindingSecretReference] = None


class ServiceBinding(_KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ServiceBindingSpec = Field(default_factory=ServiceBindingSpec)
    status: ServiceBindingStatus = Field(default_factory=ServiceBindingStatus)

    @property
    def uid(self) -> str:
        return self.metadata.uid

    @property
    def secret_name(self) -> str:
        """Name of the bound secret, or "" when not yet bound."""
        if self.status.binding is None:
            return ""
        return self.status.binding.name

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ServiceBinding":
        return cls.model_validate(obj)


class ClusterWorkloadResourceMappingContainer(_KubeModel):
    path: str
    name: str = ""
    env: str = ""
    volume_mounts: str = Field("", alias="volumeMounts")


class ClusterWorkloadResourceMappingTemplate(_KubeModel):
    version: str
    annotations: str = ""
    containers: List[ClusterWorkloadResourceMappingContainer] = Field(default_factory=list)
    volumes: str = ""


class ClusterWorkloadResourceMappingSpec(_KubeModel):
    versions: List[ClusterWorkloadResourceMappingTemplate] = Field(default_factory=list)

    def to_json(self) -> str:
        """
        Serialize to compact JSON for annotation storage.

        Raises:
            MappingEncodeError: If the model cannot be serialized
        """
        try:
            return self.model_dump_json(by_alias=True, exclude_defaults=True)
        except (ValueError, TypeError) as e:
            raise MappingEncodeError(f"unable to encode workload resource mapping: {e}") from e

    @classmethod
    def from_json(cls, data: str) -> "ClusterWorkloadResourceMappingSpec":
        """
        Raises:
            MappingDecodeError: If data is not a valid mapping document
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise MappingDecodeError(f"unable to decode workload resource mapping: {e}") from e

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ClusterWorkloadResourceMappingSpec":
        return cls.model_validate(obj)


class RESTMapping(BaseModel):
    """Resolved REST coordinates of a workload kind."""

    group: str = ""
    version: str
    resource: str
    kind: str = ""
