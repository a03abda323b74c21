"""
Binding commands: project, unproject, is-projected

Manifests are read from YAML or JSON files and projected with a static
mapping source, so no cluster access is needed.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from projector import (
    ClusterWorkloadResourceMappingSpec,
    ProjectorError,
    RequestContext,
    ServiceBindingProjector,
    StaticMappingSource,
)
from projector.config import ProjectorConfig

console = Console()
err_console = Console(stderr=True)

BINDING_OPTION = typer.Option(..., "--binding", "-b", help="ServiceBinding manifest (YAML or JSON)")
WORKLOAD_OPTION = typer.Option(..., "--workload", "-w", help="Workload manifest (YAML or JSON)")
MAPPING_OPTION = typer.Option(
    None, "--mapping", "-m", help="ClusterWorkloadResourceMapping manifest (repeatable)"
)
RESOURCE_OPTION = typer.Option(
    None,
    "--resource",
    "-r",
    help="Register a workload kind as Kind.group=resources, e.g. CronJob.batch=cronjobs (repeatable)",
)
IN_PLACE_OPTION = typer.Option(False, "--in-place", "-i", help="Rewrite the workload file")
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")

# reported as a one line error with exit code 1
INPUT_ERRORS = (ProjectorError, ValidationError, yaml.YAMLError, json.JSONDecodeError, OSError)


def load_manifest(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        text = f.read()
    if path.suffix == ".json":
        obj = json.loads(text)
    else:
        obj = yaml.safe_load(text)
    if not isinstance(obj, dict):
        raise typer.BadParameter(f"{path} does not contain a Kubernetes object")
    return obj


def build_mapping_source(
    mappings: Optional[List[Path]],
    resources: Optional[List[str]],
) -> StaticMappingSource:
    source = StaticMappingSource()
    for spec in resources or []:
        kind_group, sep, resource = spec.partition("=")
        kind, _, group = kind_group.partition(".")
        if not sep or not kind or not resource:
            raise typer.BadParameter(f"expected Kind.group=resources, got {spec!r}")
        source.register_kind(group, kind, resource)
    for path in mappings or []:
        doc = load_manifest(path)
        name = (doc.get("metadata") or {}).get("name")
        if not name:
            raise typer.BadParameter(f"{path}: ClusterWorkloadResourceMapping requires metadata.name")
        source.register_mapping(name, ClusterWorkloadResourceMappingSpec.from_dict(doc.get("spec") or {}))
    return source


def _context() -> RequestContext:
    ctx = RequestContext.background()
    timeout = ProjectorConfig.from_env().lookup_timeout_seconds
    if timeout is not None:
        ctx = ctx.with_timeout(timeout)
    return ctx


def _emit(workload: Dict[str, Any], workload_path: Path, in_place: bool, json_output: bool) -> None:
    if in_place:
        with open(workload_path, "w") as f:
            if workload_path.suffix == ".json":
                json.dump(workload, f, indent=2)
                f.write("\n")
            else:
                yaml.safe_dump(workload, f, sort_keys=False)
        console.print(f"[green]Updated {workload_path}[/green]")
        return
    if json_output:
        print(json.dumps(workload, indent=2))
    else:
        console.print(Syntax(yaml.safe_dump(workload, sort_keys=False), "yaml"))


def _fail(e: Exception) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {escape(str(e))}")
    return typer.Exit(1)


def _run(operation: str, binding_path, workload_path, mapping, resource, in_place, json_output):
    try:
        binding = load_manifest(binding_path)
        workload = load_manifest(workload_path)
        projector = ServiceBindingProjector(build_mapping_source(mapping, resource))
        getattr(projector, operation)(binding, workload, _context())
    except INPUT_ERRORS as e:
        raise _fail(e)
    _emit(workload, workload_path, in_place, json_output)


def project_command(
    binding_path: Path = BINDING_OPTION,
    workload_path: Path = WORKLOAD_OPTION,
    mapping: Optional[List[Path]] = MAPPING_OPTION,
    resource: Optional[List[str]] = RESOURCE_OPTION,
    in_place: bool = IN_PLACE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Project a service binding onto a workload.

    Examples:
        servicebinding-projector project -b binding.yaml -w deployment.yaml
        servicebinding-projector project -b binding.yaml -w cronjob.yaml --json
    """
    _run("project", binding_path, workload_path, mapping, resource, in_place, json_output)


def unproject_command(
    binding_path: Path = BINDING_OPTION,
    workload_path: Path = WORKLOAD_OPTION,
    mapping: Optional[List[Path]] = MAPPING_OPTION,
    resource: Optional[List[str]] = RESOURCE_OPTION,
    in_place: bool = IN_PLACE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Remove a service binding from a workload.

    Examples:
        servicebinding-projector unproject -b binding.yaml -w deployment.yaml --in-place
    """
    _run("unproject", binding_path, workload_path, mapping, resource, in_place, json_output)


def is_projected_command(
    binding_path: Path = BINDING_OPTION,
    workload_path: Path = WORKLOAD_OPTION,
):
    """
    Exit 0 if the binding is projected onto the workload, 1 otherwise.
    """
    try:
        binding = load_manifest(binding_path)
        workload = load_manifest(workload_path)
        projected = ServiceBindingProjector(StaticMappingSource()).is_projected(binding, workload)
    except INPUT_ERRORS as e:
        raise _fail(e)
    console.print("projected" if projected else "not projected")
    raise typer.Exit(0 if projected else 1)
