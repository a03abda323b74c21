"""
Mapping source backed by the Kubernetes API.

REST mappings come from API discovery; workload resource mappings are read
from cluster scoped ClusterWorkloadResourceMapping resources named
<resource>.<group>.
"""

import logging
import time
from typing import Any, Dict, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError
from pydantic import ValidationError

from ..context import RequestContext
from ..errors import MappingLookupError
from ..models import ClusterWorkloadResourceMappingSpec, RESTMapping
from .source import MappingSource, mapping_name
from .version import default_mapping

logger = logging.getLogger(__name__)

MAPPING_GROUP = "servicebinding.io"
MAPPING_VERSION = "v1"
MAPPING_PLURAL = "clusterworkloadresourcemappings"


def _request_timeout(ctx: RequestContext) -> Optional[float]:
    if ctx.deadline is None:
        return None
    return max(ctx.deadline - time.monotonic(), 0.001)


class ClusterMappingSource(MappingSource):
    """
    Usage:
        source = ClusterMappingSource()  # uses the loaded kube config
        rm = source.lookup_rest_mapping(ctx, workload)
        mapping = source.lookup_workload_mapping(ctx, rm)
    """

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        dynamic_client: Optional[DynamicClient] = None,
        custom_api: Optional[client.CustomObjectsApi] = None,
    ) -> None:
        self._api_client = api_client
        self._dynamic_client = dynamic_client
        self._custom_api = custom_api

    @property
    def api_client(self) -> client.ApiClient:
        if self._api_client is None:
            self._api_client = client.ApiClient()
        return self._api_client

    @property
    def dynamic_client(self) -> DynamicClient:
        # DynamicClient runs discovery on construction
        if self._dynamic_client is None:
            self._dynamic_client = DynamicClient(self.api_client)
        return self._dynamic_client

    @property
    def custom_api(self) -> client.CustomObjectsApi:
        if self._custom_api is None:
            self._custom_api = client.CustomObjectsApi(self.api_client)
        return self._custom_api

    def lookup_rest_mapping(self, ctx: RequestContext, workload: Dict[str, Any]) -> RESTMapping:
        ctx.check()
        api_version = workload.get("apiVersion", "")
        kind = workload.get("kind", "")
        try:
            resource = self.dynamic_client.resources.get(api_version=api_version, kind=kind)
        except ResourceNotFoundError as e:
            raise MappingLookupError(f"no REST mapping for kind {kind!r} in {api_version!r}") from e
        except (ApiException, DynamicApiError) as e:
            raise MappingLookupError(f"discovery failed for {kind!r} in {api_version!r}: {e}") from e
        return RESTMapping(
            group=resource.group or "",
            version=resource.api_version,
            resource=resource.name,
            kind=resource.kind,
        )

    def lookup_workload_mapping(
        self, ctx: RequestContext, resource: RESTMapping
    ) -> ClusterWorkloadResourceMappingSpec:
        ctx.check()
        name = mapping_name(resource)
        kwargs = {}
        timeout = _request_timeout(ctx)
        if timeout is not None:
            kwargs["_request_timeout"] = timeout
        try:
            obj = self.custom_api.get_cluster_custom_object(
                group=MAPPING_GROUP,
                version=MAPPING_VERSION,
                plural=MAPPING_PLURAL,
                name=name,
                **kwargs,
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"No ClusterWorkloadResourceMapping {name}, using PodSpec-able default")
                return default_mapping()
            raise MappingLookupError(f"failed to get ClusterWorkloadResourceMapping {name}: {e}") from e
        try:
            return ClusterWorkloadResourceMappingSpec.from_dict(obj.get("spec") or {})
        except ValidationError as e:
            raise MappingLookupError(f"invalid ClusterWorkloadResourceMapping {name}: {e}") from e
