"""Parse .sln files (custom text format, not XML)."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

from solscan.config import ResolvedProject
from solscan.errors import DescriptorParseError

logger = logging.getLogger(__name__)


@dataclass
class SolutionProject:
    """A project entry from a .sln file."""
    type_guid: str
    name: str
    path: str
    project_guid: str


_HEADER_RE = re.compile(r"^\s*Microsoft Visual Studio Solution File, Format Version\s+\d+", re.MULTILINE)

# Project("{TYPE-GUID}") = "Name", "Path\To\Project.csproj", "{PROJECT-GUID}"
_PROJECT_RE = re.compile(
    r'^\s*Project\(\"\{([^}]+)\}\"\)\s*=\s*\"([^\"]+)\"\s*,\s*\"([^\"]+)\"\s*,\s*\"\{([^}]+)\}\"',
    re.MULTILINE,
)

# Project type GUIDs that MSBuild knows how to evaluate
_MSBUILD_TYPE_GUIDS = {
    "FAE04EC0-301F-11D3-BF4B-00C04F79EFBC",  # C#
    "F184B08F-C81C-45F6-A57F-5ABD9991F28F",  # VB.NET
    "F2A71F9B-5D33-465A-A702-920D77279786",  # F#
    "13B669BE-BB05-4DDF-9536-439F39A36129",  # CPS
    "9A19103F-16F7-4668-BE54-9A1E7A4F7556",  # C# SDK-style
    "778DAE3C-4631-46EA-AA77-85C1314464D9",  # VB.NET SDK-style
    "6EC3EE1D-3C4E-46DD-8F32-0CC8E7565705",  # F# SDK-style
    "C8D11400-126E-41CD-887F-60BD40844F9E",  # Database
    "E6FDF86B-F3D1-11D4-8576-0002A516ECE8",  # J#
    "BBD0F5D1-1CC4-42FD-BA4C-A96779C64378",  # Synergex
}
_VC_GUID = "8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942"
_SOLUTION_FOLDER_GUID = "2150E333-8FDC-42A3-9474-1A3956D46DE8"
_SHARED_PROJECT_GUID = "D954291E-2A0B-460D-934E-DC6B0785DB48"
_WEB_PROJECT_GUID = "E24C65DC-7377-472B-9ABA-BC803B73C61A"

_NON_MSBUILD_GUIDS = {_SOLUTION_FOLDER_GUID, _SHARED_PROJECT_GUID, _WEB_PROJECT_GUID}


def parse_solution(sln_path: str) -> list[SolutionProject]:
    """Parse a .sln file and return every project entry, folders included.

    Raises DescriptorParseError if the file cannot be read or is not a
    solution file.
    """
    try:
        with open(sln_path, "r", encoding="utf-8-sig") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptorParseError(f"Cannot read solution file {sln_path}: {e}") from e

    if not _HEADER_RE.search(content):
        raise DescriptorParseError(f"{sln_path} is not a solution file: missing format header")

    projects = []
    for match in _PROJECT_RE.finditer(content):
        projects.append(SolutionProject(
            type_guid=match.group(1).upper(),
            name=match.group(2),
            # Normalise path separators
            path=match.group(3).replace("\\", "/"),
            project_guid=match.group(4).upper(),
        ))

    return projects


def is_msbuild_project(project: SolutionProject) -> bool:
    """Check if a solution entry is a project MSBuild can evaluate.

    Solution folders, shared projects and web sites are not.
    """
    if project.type_guid in _NON_MSBUILD_GUIDS:
        return False
    if project.type_guid in _MSBUILD_TYPE_GUIDS:
        return True
    if project.type_guid == _VC_GUID:
        return project.path.lower().endswith(".vcxproj")
    # Unknown type GUID: trust the file extension
    ext = os.path.splitext(project.path)[1].lower()
    return ext.endswith("proj") and ext != ".vcproj"


def resolve_solution_projects(
    sln_path: str, log: logging.Logger | None = None,
) -> list[ResolvedProject]:
    """Return the MSBuild projects of a .sln file with absolute paths.

    Each project appears once; a path listed twice keeps its first name.
    """
    log = log or logger
    solution_dir = os.path.dirname(os.path.abspath(sln_path))

    resolved: list[ResolvedProject] = []
    seen: set[str] = set()
    for entry in parse_solution(sln_path):
        if not is_msbuild_project(entry):
            log.debug(f"Skipping non-MSBuild solution entry {entry.name} ({entry.type_guid})")
            continue

        full_path = os.path.normpath(os.path.join(solution_dir, entry.path))
        project = ResolvedProject(name=entry.name, absolute_path=full_path)
        if project.key in seen:
            continue
        if not os.path.isfile(full_path):
            log.warning(f"Project {entry.name} not found at {full_path}")
            continue
        seen.add(project.key)
        resolved.append(project)

    return resolved
