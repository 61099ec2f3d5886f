"""Parse .slnx files (XML solution format)."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET

from solscan.config import ProjectReference, ResolvedProject, SOLUTION_SCAN_LIMIT
from solscan.dotnet.resolver import resolve_reference
from solscan.dotnet.scan import walk_project_files
from solscan.dotnet.xmlutil import local_name

logger = logging.getLogger(__name__)

# Attributes that may carry the project locator, first match wins
_LOCATOR_ATTRIBUTES = ("Include", "Path", "File")


def _project_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def parse_slnx(slnx_path: str, log: logging.Logger | None = None) -> list[ProjectReference]:
    """Read the project references declared in a .slnx file.

    Project nodes without a locator attribute are skipped. A malformed
    document yields no references.
    """
    log = log or logger
    try:
        root = ET.parse(slnx_path).getroot()
    except (ET.ParseError, OSError) as e:
        log.warning(f"Failed to parse solution {slnx_path}: {e}")
        return []

    references = []
    for node in root.iter():
        if not isinstance(node.tag, str) or local_name(node.tag) != "Project":
            continue

        locator = None
        for attr in _LOCATOR_ATTRIBUTES:
            if attr in node.attrib:
                locator = node.attrib[attr].strip()
                break

        if locator is None:
            log.warning(f"Skipping <Project> without Include/Path/File in {slnx_path}")
            continue
        if not locator:
            continue

        references.append(ProjectReference(
            declared_name=node.attrib.get("Name", "").strip(),
            raw_locator=locator,
        ))

    return references


def resolve_slnx_projects(
    slnx_path: str, log: logging.Logger | None = None,
) -> list[ResolvedProject]:
    """Return the projects of a .slnx file with absolute paths.

    Locators go through ``resolve_reference``. Paths reached twice keep
    the first declared name. If nothing resolves, the solution directory
    is scanned recursively so that solutions relying on auto-discovered
    projects still yield their projects.
    """
    log = log or logger
    solution_dir = os.path.dirname(os.path.abspath(slnx_path))

    resolved: list[ResolvedProject] = []
    seen: set[str] = set()

    def add(project: ResolvedProject) -> None:
        if project.key in seen:
            return
        seen.add(project.key)
        resolved.append(project)

    for ref in parse_slnx(slnx_path, log):
        paths = resolve_reference(solution_dir, ref.raw_locator, log)
        if not paths:
            log.warning(f"Could not resolve project reference {ref.raw_locator}")
            continue
        for path in paths:
            name = ref.declared_name or _project_name(path)
            add(ResolvedProject(name=name, absolute_path=path))

    if not resolved:
        log.info(f"No projects resolved from {slnx_path}, scanning {solution_dir}")
        for path in walk_project_files(solution_dir, SOLUTION_SCAN_LIMIT):
            add(ResolvedProject(name=_project_name(path), absolute_path=path))

    return resolved
