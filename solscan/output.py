"""JSON serialisation of the solution manifest."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from solscan.config import DesignerFile, Manifest, ProjectMetadata, SolutionDescriptor


def build_manifest(
    descriptor: SolutionDescriptor, projects: list[ProjectMetadata],
) -> Manifest:
    """Collect evaluated projects and their designer files."""
    manifest = Manifest(solution=descriptor.path)
    seen_files: set[str] = set()

    for project in projects:
        manifest.projects.append(project)
        for designer_file in project.designer_files:
            if designer_file.path in seen_files:
                continue
            seen_files.add(designer_file.path)
            manifest.files.append(designer_file)

    return manifest


def _project_to_dict(project: ProjectMetadata) -> dict:
    return {
        "name": project.name,
        "path": project.path,
        "targetPath": project.target_path,
        "outputType": project.output_type,
        "normalizedOutputType": project.normalized_output_type,
        "designerHostPath": project.designer_host_path,
        "targetFramework": project.target_framework,
        "depsFilePath": project.deps_file_path,
        "runtimeConfigFilePath": project.runtime_config_file_path,
        "projectReferences": list(project.project_references),
        "intermediateOutputPath": project.intermediate_output_path,
    }


def _file_to_dict(designer_file: DesignerFile) -> dict:
    return {
        "path": designer_file.path,
        "targetPath": designer_file.target_path,
        "projectPath": designer_file.project_path,
    }


def manifest_to_dict(manifest: Manifest) -> dict:
    return {
        "solution": manifest.solution,
        "projects": [_project_to_dict(p) for p in manifest.projects],
        "files": [_file_to_dict(f) for f in manifest.files],
    }


def serialize_manifest(manifest: Manifest) -> str:
    return json.dumps(manifest_to_dict(manifest), indent=2)


def manifest_path(solution: str, output_dir: str | None = None) -> str:
    """Where the manifest for ``solution`` is written.

    Defaults to the system temp directory.
    """
    directory = output_dir or tempfile.gettempdir()
    name = os.path.basename(solution.rstrip("/\\")) or "solution"
    return os.path.join(directory, f"{name}.json")


def write_manifest(text: str, output_path: str) -> None:
    """Write the serialised manifest to a file."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(text)
