"""Core data types and configuration for solscan."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Recognised project extensions, in resolution priority order.
PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")

LEGACY_SOLUTION_EXTENSION = ".sln"
MARKUP_SOLUTION_EXTENSION = ".slnx"

# Directories never descended into by the recursive scans
IGNORED_DIRECTORIES = {"bin", "obj", ".git", ".vs", "node_modules", "packages"}

SOLUTION_SCAN_LIMIT = 100
STEM_SEARCH_LIMIT = 10
FALLBACK_TIMEOUT_SECONDS = 10.0

DESIGNER_ITEM_TYPE = "AvaloniaXaml"
DESIGNER_HOST_PROPERTY = "AvaloniaPreviewerNetCoreToolPath"
DESIGNER_REFERENCES_SUFFIX = ("Avalonia", "references")

# Properties requested from the out-of-process evaluator
FALLBACK_PROPERTIES = (
    "TargetPath",
    "OutputType",
    DESIGNER_HOST_PROPERTY,
    "ProjectDepsFilePath",
    "ProjectRuntimeConfigFilePath",
    "IntermediateOutputPath",
)


class DescriptorKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class DescriptorFormat(str, Enum):
    LEGACY = "sln"
    MARKUP = "slnx"


@dataclass(frozen=True)
class SolutionDescriptor:
    """A classified solution input.

    ``path`` is the user-supplied (absolute) path and doubles as the
    solution identifier; ``directory`` anchors project discovery.
    """
    kind: DescriptorKind
    path: str
    directory: str
    format: DescriptorFormat | None = None


@dataclass(frozen=True)
class ProjectReference:
    """A project entry as declared in a descriptor, before resolution."""
    declared_name: str
    raw_locator: str


@dataclass(frozen=True)
class ResolvedProject:
    name: str
    absolute_path: str

    @property
    def key(self) -> str:
        return os.path.normcase(os.path.normpath(self.absolute_path)).casefold()


@dataclass(frozen=True)
class DesignerFile:
    """A designer-relevant source file attributed to its owning project."""
    path: str
    target_path: str
    project_path: str


@dataclass(frozen=True)
class ProjectMetadata:
    name: str
    path: str
    target_path: str
    output_type: str
    normalized_output_type: str
    designer_host_path: str
    target_framework: str
    deps_file_path: str
    runtime_config_file_path: str
    project_references: tuple[str, ...] = ()
    intermediate_output_path: str = ""
    designer_files: tuple[DesignerFile, ...] = ()


@dataclass(frozen=True)
class SingleTarget:
    """The project declares exactly one target framework (or none)."""
    framework: str


@dataclass(frozen=True)
class MultiTarget:
    """A multi-targeted project narrowed to one usable framework."""
    framework: str
    candidates: tuple[str, ...]


@dataclass(frozen=True)
class UnresolvedTarget:
    """A multi-targeted project with no usable framework."""
    candidates: tuple[str, ...]
    reason: str


TargetSelection = Union[SingleTarget, MultiTarget, UnresolvedTarget]


@dataclass
class Manifest:
    solution: str
    projects: list[ProjectMetadata] = field(default_factory=list)
    files: list[DesignerFile] = field(default_factory=list)


@dataclass
class ScanConfig:
    solution_path: str = ""
    output_dir: str | None = None
    max_workers: int | None = None
    fallback_timeout: float = FALLBACK_TIMEOUT_SECONDS
    verbose: bool = False
    quiet: bool = False
