"""
Structured view over the pod template embedded in an arbitrary workload.

The workload is an unstructured Kubernetes object (a dict). A resource
mapping template describes where annotations, containers and volumes live;
paths use a restricted JSONPath form: `.field`, `['field']`, `[n]` and `[*]`.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .context import RequestContext
from .errors import MappingPathError, WriteBackError
from .models import ClusterWorkloadResourceMappingTemplate

_TOKEN_RE = re.compile(r"\.([A-Za-z0-9_\-]+)|\[\*\]|\[(\d+)\]|\['([^']*)'\]")

WORKLOAD_ANNOTATIONS_PATH = ".metadata.annotations"


class _Wildcard:
    def __repr__(self) -> str:
        return "[*]"


ANY = _Wildcard()


def parse_path(expr: str) -> List[Any]:
    """
    Parse a restricted JSONPath expression into segments.

    Raises:
        MappingPathError: If the expression uses unsupported syntax
    """
    expr = expr.strip()
    if expr.startswith("$"):
        expr = expr[1:]
    if not expr:
        raise MappingPathError("empty mapping path")
    segments: List[Any] = []
    pos = 0
    while pos < len(expr):
        m = _TOKEN_RE.match(expr, pos)
        if m is None:
            raise MappingPathError(f"unsupported mapping path {expr!r} at offset {pos}")
        if m.group(1) is not None:
            segments.append(m.group(1))
        elif m.group(2) is not None:
            segments.append(int(m.group(2)))
        elif m.group(3) is not None:
            segments.append(m.group(3))
        else:
            segments.append(ANY)
        pos = m.end()
    return segments


def find_all(node: Any, segments: List[Any]) -> Iterator[Any]:
    """Yield every value matched by segments; missing paths match nothing."""
    if not segments:
        yield node
        return
    head, rest = segments[0], segments[1:]
    if head is ANY:
        if isinstance(node, list):
            for item in node:
                yield from find_all(item, rest)
        elif isinstance(node, dict):
            for item in node.values():
                yield from find_all(item, rest)
        return
    if isinstance(head, int):
        if isinstance(node, list) and head < len(node):
            yield from find_all(node[head], rest)
        return
    if isinstance(node, dict) and head in node:
        yield from find_all(node[head], rest)


def get_value(node: Any, segments: List[Any]) -> Any:
    for value in find_all(node, segments):
        return value
    return None


def _check_settable(segments: List[Any]) -> None:
    if not segments:
        raise WriteBackError("cannot write to an empty path")
    if any(s is ANY for s in segments):
        raise WriteBackError("cannot write through a wildcard path")


def set_value(root: Dict[str, Any], segments: List[Any], value: Any, prune: bool = True) -> None:
    """
    Set value at path, creating missing maps. With prune, empty lists and
    maps are removed instead, pruning parent maps left empty; without it an
    empty value leaves the path as it is.

    Raises:
        WriteBackError: If the path cannot be written
    """
    _check_settable(segments)
    if _is_empty(value):
        if prune:
            _delete_value(root, segments)
        return
    node: Any = root
    for seg, nxt in zip(segments[:-1], segments[1:]):
        if isinstance(seg, int):
            if not isinstance(node, list) or seg >= len(node):
                raise WriteBackError(f"index {seg} out of range")
            node = node[seg]
            continue
        if not isinstance(node, dict):
            raise WriteBackError(f"cannot set field {seg!r} on {type(node).__name__}")
        if node.get(seg) is None:
            if isinstance(nxt, int):
                raise WriteBackError(f"index {nxt} out of range")
            node[seg] = {}
        node = node[seg]
    last = segments[-1]
    if isinstance(last, int):
        if not isinstance(node, list) or last >= len(node):
            raise WriteBackError(f"index {last} out of range")
        node[last] = value
    elif isinstance(node, dict):
        node[last] = value
    else:
        raise WriteBackError(f"cannot set field {last!r} on {type(node).__name__}")


def _is_empty(value: Any) -> bool:
    return value is None or value == [] or value == {}


def _delete_value(root: Dict[str, Any], segments: List[Any]) -> None:
    trail = []
    node: Any = root
    for seg in segments[:-1]:
        if isinstance(seg, int):
            if not isinstance(node, list) or seg >= len(node):
                return
        elif not isinstance(node, dict) or seg not in node:
            return
        trail.append((node, seg))
        node = node[seg]
    last = segments[-1]
    if not (isinstance(node, dict) and isinstance(last, str) and last in node):
        return
    del node[last]
    # prune maps emptied by the removal
    while trail:
        parent, seg = trail.pop()
        child = parent[seg]
        if isinstance(seg, str) and child == {}:
            del parent[seg]
        else:
            break


@dataclass
class MetaContainer:
    """Editable view of one container's bindable fields."""
    name: Optional[str]
    env: List[Dict[str, Any]] = field(default_factory=list)
    volume_mounts: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class _ContainerLocation:
    path: List[Any]
    index: int
    env: List[Any]
    volume_mounts: List[Any]
    # fields left empty or absent by the workload are never removed
    had_env: bool = False
    had_volume_mounts: bool = False


class MetaPodTemplate:
    """
    Copies bindable pod template fields out of a workload and writes them
    back on write_to_workload().

    The workload is not modified until write_to_workload() succeeds, at which
    point the updates are applied in place all at once.

    Raises:
        MappingPathError: If the mapping template holds unsupported paths
    """

    def __init__(self, workload: Dict[str, Any], mapping: ClusterWorkloadResourceMappingTemplate) -> None:
        self.workload = workload
        self.mapping = mapping
        self._annotations_path = parse_path(mapping.annotations)
        self._volumes_path = parse_path(mapping.volumes)
        self._workload_annotations_path = parse_path(WORKLOAD_ANNOTATIONS_PATH)

        workload_annotations = get_value(workload, self._workload_annotations_path)
        self._had_workload_annotations = not _is_empty(workload_annotations)
        self.workload_annotations: Dict[str, str] = dict(workload_annotations or {})
        if self._annotations_path == self._workload_annotations_path:
            # bare pods: the template is the workload
            self._had_pod_template_annotations = self._had_workload_annotations
            self.pod_template_annotations = self.workload_annotations
        else:
            annotations = get_value(workload, self._annotations_path)
            self._had_pod_template_annotations = not _is_empty(annotations)
            self.pod_template_annotations = dict(annotations or {})
        volumes = get_value(workload, self._volumes_path)
        self._had_volumes = not _is_empty(volumes)
        self.volumes: List[Dict[str, Any]] = copy.deepcopy(volumes or [])

        self.containers: List[MetaContainer] = []
        self._locations: List[_ContainerLocation] = []
        for cm in mapping.containers:
            path = parse_path(cm.path)
            name_path = parse_path(cm.name) if cm.name else []
            env_path = parse_path(cm.env or ".env")
            mounts_path = parse_path(cm.volume_mounts or ".volumeMounts")
            found = [c for c in find_all(workload, path) if isinstance(c, dict)]
            for index, container in enumerate(found):
                name = get_value(container, name_path) if name_path else None
                env = get_value(container, env_path)
                mounts = get_value(container, mounts_path)
                self.containers.append(MetaContainer(
                    name=name if isinstance(name, str) else None,
                    env=copy.deepcopy(env or []),
                    volume_mounts=copy.deepcopy(mounts or []),
                ))
                self._locations.append(_ContainerLocation(
                    path=path,
                    index=index,
                    env=env_path,
                    volume_mounts=mounts_path,
                    had_env=not _is_empty(env),
                    had_volume_mounts=not _is_empty(mounts),
                ))

    def write_to_workload(self, ctx: RequestContext) -> None:
        """
        Apply the view to the workload.

        Raises:
            WriteBackError: If a mapped path cannot be written
            ContextCancelledError: If ctx is cancelled
        """
        ctx.check()
        updated = copy.deepcopy(self.workload)

        located: Dict[int, List[Any]] = {}
        for loc, mc in zip(self._locations, self.containers):
            key = id(loc.path)
            if key not in located:
                located[key] = [c for c in find_all(updated, loc.path) if isinstance(c, dict)]
            targets = located[key]
            if loc.index >= len(targets):
                raise WriteBackError(f"container {mc.name!r} is no longer present in the workload")
            set_value(targets[loc.index], loc.env, mc.env, prune=loc.had_env)
            set_value(targets[loc.index], loc.volume_mounts, mc.volume_mounts, prune=loc.had_volume_mounts)

        set_value(updated, self._volumes_path, self.volumes, prune=self._had_volumes)
        set_value(
            updated, self._annotations_path, self.pod_template_annotations,
            prune=self._had_pod_template_annotations,
        )
        set_value(
            updated, self._workload_annotations_path, self.workload_annotations,
            prune=self._had_workload_annotations,
        )

        self.workload.clear()
        self.workload.update(updated)
