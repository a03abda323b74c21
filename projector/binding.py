"""
Service binding projector.

Projects a bound secret into any workload with an embedded pod template:
a projected volume, a read-only volume mount per container, and the
environment variables requested by the binding. Every artifact is keyed by
the binding UID so projections of distinct bindings never collide, and the
resource mapping used is stashed on the workload so that a later unproject
removes exactly what was added even if the cluster mapping changes.
"""

import posixpath
from typing import Any, Dict, Optional, Set, Tuple, Union

from .context import RequestContext
from .errors import SelectorError
from .logging_config import get_logger
from .mapping.source import MappingSource
from .mapping.version import mapping_version
from .metrics import track_operation
from .models import ClusterWorkloadResourceMappingSpec, ServiceBinding
from .ordering import name_of, sort_projected_last
from .podtemplate import MetaContainer, MetaPodTemplate
from .selector import LabelSelector

SERVICE_BINDING_ROOT_ENV = "SERVICE_BINDING_ROOT"
DEFAULT_SERVICE_BINDING_ROOT = "/bindings"
GROUP = "projector.servicebinding.io"
VOLUME_PREFIX = "servicebinding-"
SECRET_ANNOTATION_PREFIX = GROUP + "/secret-"
TYPE_ANNOTATION_PREFIX = GROUP + "/type-"
PROVIDER_ANNOTATION_PREFIX = GROUP + "/provider-"
MAPPING_ANNOTATION_PREFIX = GROUP + "/mapping-"

BindingLike = Union[ServiceBinding, Dict[str, Any]]


class _MappingKey:
    """Request context key for the resolved cluster mapping."""


_MAPPING_KEY = _MappingKey()


def annotation_field_path(key: str) -> str:
    return f"metadata.annotations['{key}']"


def join_path(*parts: str) -> str:
    """Join slash separated parts, skipping empty ones, and clean the result."""
    joined = "/".join(p for p in parts if p)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        # normpath keeps a leading double slash
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _as_binding(binding: BindingLike) -> ServiceBinding:
    if isinstance(binding, ServiceBinding):
        return binding
    return ServiceBinding.from_dict(binding)


def volume_name(binding: ServiceBinding) -> str:
    return f"{VOLUME_PREFIX}{binding.uid}"


def secret_annotation_name(binding: ServiceBinding) -> str:
    return f"{SECRET_ANNOTATION_PREFIX}{binding.uid}"


def type_annotation_name(binding: ServiceBinding) -> str:
    return f"{TYPE_ANNOTATION_PREFIX}{binding.uid}"


def provider_annotation_name(binding: ServiceBinding) -> str:
    return f"{PROVIDER_ANNOTATION_PREFIX}{binding.uid}"


def mapping_annotation_name(binding: ServiceBinding) -> str:
    return f"{MAPPING_ANNOTATION_PREFIX}{binding.uid}"


class ServiceBindingProjector:
    """
    Applies and removes service bindings on workloads.

    Created once per mapping source and applied to many workloads. Holds no
    state across calls.

    Usage:
        projector = ServiceBindingProjector(StaticMappingSource())
        projector.project(binding, workload)
        projector.is_projected(binding, workload)  # True
        projector.unproject(binding, workload)
    """

    def __init__(self, mapping_source: MappingSource) -> None:
        self.mapping_source = mapping_source

    def project(
        self,
        binding: BindingLike,
        workload: Dict[str, Any],
        ctx: Optional[RequestContext] = None,
    ) -> None:
        """
        Project the binding onto the workload, replacing any prior projection.

        Args:
            binding: ServiceBinding model or resource dict
            workload: Workload resource dict, updated in place
            ctx: Request context; a background context when omitted

        Raises:
            MappingLookupError: If the workload mapping cannot be resolved
            MappingDecodeError: If the stashed mapping is corrupt
            MappingEncodeError: If the mapping cannot be stashed
            WriteBackError: If the workload cannot be updated
            ContextCancelledError: If ctx is cancelled or past its deadline
        """
        binding = _as_binding(binding)
        ctx = ctx or RequestContext.background()
        logger = get_logger(__name__, trace_id=binding.uid)

        with track_operation("project"):
            try:
                ctx, resource_mapping, version = self._lookup_cluster_mapping(ctx, workload)

                # rather than merge with an existing projection, remove it
                self._unproject_workload(binding, workload, ctx)

                if not self._should_project(binding, workload):
                    logger.debug(f"Binding does not target workload {_describe(workload)}")
                    return

                mpt = MetaPodTemplate(workload, mapping_version(version, resource_mapping))
                self._project(binding, mpt)

                if binding.secret_name:
                    self._stash_local_mapping(binding, mpt, resource_mapping)
                mpt.write_to_workload(ctx)
            except Exception as e:
                logger.error(f"Failed to project binding onto {_describe(workload)}: {e}")
                raise
        logger.info(f"Projected secret {binding.secret_name} onto {_describe(workload)}")

    def unproject(
        self,
        binding: BindingLike,
        workload: Dict[str, Any],
        ctx: Optional[RequestContext] = None,
    ) -> None:
        """
        Remove everything this binding projected onto the workload.

        The mapping stashed at projection time is preferred over the cluster
        mapping; the cluster mapping is used only when nothing was stashed.
        """
        binding = _as_binding(binding)
        ctx = ctx or RequestContext.background()
        logger = get_logger(__name__, trace_id=binding.uid)

        with track_operation("unproject"):
            try:
                self._unproject_workload(binding, workload, ctx)
            except Exception as e:
                logger.error(f"Failed to unproject binding from {_describe(workload)}: {e}")
                raise
        logger.debug(f"Unprojected binding from {_describe(workload)}")

    def _unproject_workload(
        self, binding: ServiceBinding, workload: Dict[str, Any], ctx: RequestContext
    ) -> None:
        resource_mapping = self._retrieve_local_mapping(binding, workload)
        ctx, cluster_mapping, version = self._lookup_cluster_mapping(ctx, workload)
        if resource_mapping is None:
            # the cluster mapping may have changed since the binding was projected
            resource_mapping = cluster_mapping

        mpt = MetaPodTemplate(workload, mapping_version(version, resource_mapping))
        self._unproject(binding, mpt)

        self._stash_local_mapping(binding, mpt, None)
        mpt.write_to_workload(ctx)

    def is_projected(self, binding: BindingLike, workload: Dict[str, Any]) -> bool:
        binding = _as_binding(binding)
        annotations = (workload.get("metadata") or {}).get("annotations") or {}
        return mapping_annotation_name(binding) in annotations

    def _lookup_cluster_mapping(
        self, ctx: RequestContext, workload: Dict[str, Any]
    ) -> Tuple[RequestContext, ClusterWorkloadResourceMappingSpec, str]:
        """
        Resolve the mapping from the context or the mapping source.

        A mapping resolved from the source is stored in a derived context so
        unproject called from project does not resolve it again.
        """
        cached = ctx.value(_MAPPING_KEY)
        if cached is not None:
            rest_mapping, workload_mapping = cached
            return ctx, workload_mapping, rest_mapping.version
        rest_mapping = self.mapping_source.lookup_rest_mapping(ctx, workload)
        workload_mapping = self.mapping_source.lookup_workload_mapping(ctx, rest_mapping)
        ctx = ctx.with_value(_MAPPING_KEY, (rest_mapping, workload_mapping))
        return ctx, workload_mapping, rest_mapping.version

    def _should_project(self, binding: ServiceBinding, workload: Dict[str, Any]) -> bool:
        if not binding.secret_name:
            # no secret to bind
            return False

        metadata = workload.get("metadata") or {}
        ref = binding.spec.workload
        if ref.name:
            return ref.name == metadata.get("name")
        if ref.selector is not None:
            try:
                selector = LabelSelector.from_model(ref.selector)
            except SelectorError:
                # rejected at admission; never matches here
                return False
            return selector.matches(metadata.get("labels"))
        return False

    def _project(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> None:
        self._project_volume(binding, mpt)
        for mc in mpt.containers:
            if not self._is_container_bindable(binding, mc):
                continue
            self._project_volume_mount(binding, mc)
            self._project_env(binding, mpt, mc)

    def _unproject(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> None:
        name = volume_name(binding)
        mpt.volumes = [v for v in mpt.volumes if v.get("name") != name]
        for mc in mpt.containers:
            mc.volume_mounts = [m for m in mc.volume_mounts if m.get("name") != name]
            self._unproject_env(binding, mpt, mc)

        mpt.pod_template_annotations.pop(secret_annotation_name(binding), None)
        mpt.pod_template_annotations.pop(type_annotation_name(binding), None)
        mpt.pod_template_annotations.pop(provider_annotation_name(binding), None)

    def _project_volume(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> None:
        sources = [
            {"secret": {"name": self._secret_annotation(binding, mpt)}},
        ]
        if binding.spec.type:
            sources.append(_downward_api_source("type", self._type_annotation(binding, mpt)))
        if binding.spec.provider:
            sources.append(_downward_api_source("provider", self._provider_annotation(binding, mpt)))

        mpt.volumes.append({
            "name": volume_name(binding),
            "projected": {"sources": sources},
        })
        mpt.volumes = sort_projected_last(mpt.volumes, _has_volume_prefix, name_of)

    def _project_volume_mount(self, binding: ServiceBinding, mc: MetaContainer) -> None:
        mc.volume_mounts.append({
            "name": volume_name(binding),
            "readOnly": True,
            "mountPath": join_path(self._service_binding_root(mc), binding.spec.name),
        })
        mc.volume_mounts = sort_projected_last(mc.volume_mounts, _has_volume_prefix, name_of)

    def _project_env(self, binding: ServiceBinding, mpt: MetaPodTemplate, mc: MetaContainer) -> None:
        for e in binding.spec.env:
            if e.key == "type" and binding.spec.type:
                mc.env.append(_field_ref_env(e.name, self._type_annotation(binding, mpt)))
                continue
            if e.key == "provider" and binding.spec.provider:
                mc.env.append(_field_ref_env(e.name, self._provider_annotation(binding, mpt)))
                continue
            mc.env.append({
                "name": e.name,
                "valueFrom": {
                    "secretKeyRef": {
                        "name": self._secret_annotation(binding, mpt),
                        "key": e.key,
                    },
                },
            })

        secrets = self._known_projected_secrets(mpt)
        mc.env = sort_projected_last(mc.env, lambda env: _is_projected_env(env, secrets), name_of)

    def _unproject_env(self, binding: ServiceBinding, mpt: MetaPodTemplate, mc: MetaContainer) -> None:
        secret = mpt.pod_template_annotations.get(secret_annotation_name(binding))
        field_paths = {
            annotation_field_path(type_annotation_name(binding)),
            annotation_field_path(provider_annotation_name(binding)),
        }

        def owned(env: Dict[str, Any]) -> bool:
            # SERVICE_BINDING_ROOT stays, others may depend on it
            value_from = env.get("valueFrom") or {}
            secret_ref = value_from.get("secretKeyRef")
            if secret_ref and secret is not None and secret_ref.get("name") == secret:
                return True
            field_ref = value_from.get("fieldRef")
            return bool(field_ref) and field_ref.get("fieldPath") in field_paths

        mc.env = [env for env in mc.env if not owned(env)]

    def _is_container_bindable(self, binding: ServiceBinding, mc: MetaContainer) -> bool:
        containers = binding.spec.workload.containers
        if not containers or mc.name is None:
            return True
        return mc.name in containers

    def _service_binding_root(self, mc: MetaContainer) -> str:
        for env in mc.env:
            if env.get("name") == SERVICE_BINDING_ROOT_ENV:
                return env.get("value", "")
        mc.env.append({"name": SERVICE_BINDING_ROOT_ENV, "value": DEFAULT_SERVICE_BINDING_ROOT})
        return DEFAULT_SERVICE_BINDING_ROOT

    def _known_projected_secrets(self, mpt: MetaPodTemplate) -> Set[str]:
        return {
            v for k, v in mpt.pod_template_annotations.items()
            if k.startswith(SECRET_ANNOTATION_PREFIX)
        }

    def _secret_annotation(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> str:
        secret = binding.secret_name
        if not secret:
            return ""
        mpt.pod_template_annotations[secret_annotation_name(binding)] = secret
        return secret

    def _type_annotation(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> str:
        key = type_annotation_name(binding)
        mpt.pod_template_annotations[key] = binding.spec.type
        return key

    def _provider_annotation(self, binding: ServiceBinding, mpt: MetaPodTemplate) -> str:
        key = provider_annotation_name(binding)
        mpt.pod_template_annotations[key] = binding.spec.provider
        return key

    def _retrieve_local_mapping(
        self, binding: ServiceBinding, workload: Dict[str, Any]
    ) -> Optional[ClusterWorkloadResourceMappingSpec]:
        """
        Raises:
            MappingDecodeError: If the stashed mapping is not a valid document
        """
        annotations = (workload.get("metadata") or {}).get("annotations") or {}
        data = annotations.get(mapping_annotation_name(binding))
        if data is None:
            return None
        return ClusterWorkloadResourceMappingSpec.from_json(data)

    def _stash_local_mapping(
        self,
        binding: ServiceBinding,
        mpt: MetaPodTemplate,
        mapping: Optional[ClusterWorkloadResourceMappingSpec],
    ) -> None:
        """
        Raises:
            MappingEncodeError: If the mapping cannot be serialized
        """
        if mapping is None:
            mpt.workload_annotations.pop(mapping_annotation_name(binding), None)
            return
        mpt.workload_annotations[mapping_annotation_name(binding)] = mapping.to_json()


def _has_volume_prefix(item: Dict[str, Any]) -> bool:
    return name_of(item).startswith(VOLUME_PREFIX)


def _is_projected_env(env: Dict[str, Any], secrets: Set[str]) -> bool:
    value_from = env.get("valueFrom") or {}
    secret_ref = value_from.get("secretKeyRef")
    if secret_ref and secret_ref.get("name") in secrets:
        return True
    field_ref = value_from.get("fieldRef")
    if field_ref and (field_ref.get("fieldPath") or "").startswith(f"metadata.annotations['{GROUP}"):
        return True
    return False


def _downward_api_source(path: str, annotation: str) -> Dict[str, Any]:
    return {
        "downwardAPI": {
            "items": [
                {"path": path, "fieldRef": {"fieldPath": annotation_field_path(annotation)}},
            ],
        },
    }


def _field_ref_env(name: str, annotation: str) -> Dict[str, Any]:
    return {"name": name, "valueFrom": {"fieldRef": {"fieldPath": annotation_field_path(annotation)}}}


def _describe(workload: Dict[str, Any]) -> str:
    metadata = workload.get("metadata") or {}
    name = metadata.get("name", "")
    if metadata.get("namespace"):
        name = f"{metadata['namespace']}/{name}"
    return f"{workload.get('kind', 'workload')} {name}"
