"""Phase 1: Solution classification and project discovery."""

from __future__ import annotations

import logging
import os

from solscan.config import (
    DescriptorFormat,
    DescriptorKind,
    ResolvedProject,
    SolutionDescriptor,
)
from solscan.dotnet.scan import list_project_files
from solscan.dotnet.slnx import resolve_slnx_projects
from solscan.dotnet.solution import resolve_solution_projects

logger = logging.getLogger(__name__)


def discover_projects(
    descriptor: SolutionDescriptor, log: logging.Logger | None = None,
) -> list[ResolvedProject]:
    """Return the projects that make up the solution, each path once."""
    log = log or logger

    if descriptor.kind == DescriptorKind.FILE and descriptor.format == DescriptorFormat.LEGACY:
        projects = resolve_solution_projects(descriptor.path, log)
    elif descriptor.kind == DescriptorKind.FILE and descriptor.format == DescriptorFormat.MARKUP:
        projects = resolve_slnx_projects(descriptor.path, log)
    else:
        projects = [
            ResolvedProject(
                name=os.path.splitext(os.path.basename(path))[0],
                absolute_path=path,
            )
            for path in list_project_files(descriptor.directory)
        ]

    for project in projects:
        log.debug(f"Solution project: {project.name} -> {project.absolute_path}")
    log.info(f"Found {len(projects)} projects in {descriptor.path}")
    return projects
