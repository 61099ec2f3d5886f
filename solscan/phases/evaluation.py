"""Phase 2: Per-project metadata extraction."""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from solscan.config import (
    DESIGNER_HOST_PROPERTY,
    DESIGNER_ITEM_TYPE,
    DesignerFile,
    MultiTarget,
    ProjectMetadata,
    ResolvedProject,
    ScanConfig,
    SingleTarget,
    TargetSelection,
    UnresolvedTarget,
)
from solscan.dotnet.msbuild import ExternalEvaluation, FallbackEvaluator
from solscan.dotnet.normalize import (
    designer_host_path,
    intermediate_output_path,
    normalize_output_type,
)
from solscan.dotnet.project import EvaluatedProject, LoadOptions, ProjectEvaluator

logger = logging.getLogger(__name__)

# Platform letters followed by a dotted version, e.g. net8.0 or
# netstandard2.0. Excludes net472-style and placeholder monikers.
_TARGET_FRAMEWORK_RE = re.compile(r"^[A-Za-z]+\d+\.\d")

LOAD_OPTIONS = LoadOptions(ignore_missing_imports=True, fail_on_unresolved_toolchain=True)


def select_target(project: EvaluatedProject) -> TargetSelection:
    """Decide which target framework a project is described with."""
    framework = project.get_property("TargetFramework").strip()
    if framework:
        return SingleTarget(framework)

    candidates = tuple(
        tfm.strip()
        for tfm in project.get_property("TargetFrameworks").split(";")
        if tfm.strip()
    )
    if not candidates:
        return SingleTarget("")

    for tfm in candidates:
        if _TARGET_FRAMEWORK_RE.match(tfm):
            return MultiTarget(tfm, candidates)

    return UnresolvedTarget(
        candidates,
        f"none of the target frameworks {';'.join(candidates)} can be used",
    )


def _attach_designer_files(
    metadata: ProjectMetadata, designer_paths: list[str],
) -> ProjectMetadata:
    """Return ``metadata`` carrying its designer files.

    Files are attributed the project's final target path.
    """
    files = []
    seen = set()
    for path in designer_paths:
        if path in seen:
            continue
        seen.add(path)
        files.append(DesignerFile(
            path=path,
            target_path=metadata.target_path,
            project_path=metadata.path,
        ))
    return replace(metadata, designer_files=tuple(files))


def _project_references(project: EvaluatedProject) -> tuple[str, ...]:
    return tuple(
        item.full_path(project.directory)
        for item in project.get_items("ProjectReference")
    )


def metadata_from_project(
    resolved: ResolvedProject, project: EvaluatedProject, framework: str,
) -> ProjectMetadata:
    """Build metadata from an in-process evaluation."""
    output_type = project.get_property("OutputType")
    metadata = ProjectMetadata(
        name=resolved.name,
        path=resolved.absolute_path,
        target_path=project.get_property("TargetPath"),
        output_type=output_type,
        normalized_output_type=normalize_output_type(output_type),
        designer_host_path=designer_host_path(project.get_property(DESIGNER_HOST_PROPERTY)),
        target_framework=framework,
        deps_file_path=project.get_property("ProjectDepsFilePath"),
        runtime_config_file_path=project.get_property("ProjectRuntimeConfigFilePath"),
        project_references=_project_references(project),
        intermediate_output_path=intermediate_output_path(
            project.get_property("IntermediateOutputPath"), project.directory,
        ),
    )
    designer_paths = [
        item.full_path(project.directory)
        for item in project.get_items(DESIGNER_ITEM_TYPE)
    ]
    return _attach_designer_files(metadata, designer_paths)


def metadata_from_external(
    resolved: ResolvedProject,
    project: EvaluatedProject,
    external: ExternalEvaluation,
    framework: str,
) -> ProjectMetadata:
    """Build metadata from an out-of-process evaluation.

    Project references come from ``project``, which must be evaluated with
    ``TargetFramework`` set to ``framework``.
    """
    output_type = external.get_property("OutputType")
    metadata = ProjectMetadata(
        name=resolved.name,
        path=resolved.absolute_path,
        target_path=external.get_property("TargetPath"),
        output_type=output_type,
        normalized_output_type=normalize_output_type(output_type),
        designer_host_path=designer_host_path(external.get_property(DESIGNER_HOST_PROPERTY)),
        target_framework=framework,
        deps_file_path=external.get_property("ProjectDepsFilePath"),
        runtime_config_file_path=external.get_property("ProjectRuntimeConfigFilePath"),
        project_references=_project_references(project),
        intermediate_output_path=intermediate_output_path(
            external.get_property("IntermediateOutputPath"), project.directory,
        ),
    )
    return _attach_designer_files(metadata, external.item_paths(DESIGNER_ITEM_TYPE))


def extract_metadata(
    resolved: ResolvedProject,
    evaluator: ProjectEvaluator,
    fallback: FallbackEvaluator,
    log: logging.Logger | None = None,
) -> ProjectMetadata | None:
    """Evaluate one project. Returns None when it has to be skipped.

    Raises whatever the evaluators raise; callers isolate failures.
    """
    log = log or logger
    project = evaluator.evaluate(resolved.absolute_path, LOAD_OPTIONS)
    selection = select_target(project)

    if isinstance(selection, UnresolvedTarget):
        log.warning(f"Skipping project {resolved.name}: {selection.reason}")
        return None

    if isinstance(selection, MultiTarget):
        log.info(f"Project {resolved.name} is multi-targeted, evaluating for {selection.framework}")
        external = fallback.evaluate(resolved.absolute_path, selection.framework)
        targeted = evaluator.evaluate(
            resolved.absolute_path, LOAD_OPTIONS, {"TargetFramework": selection.framework},
        )
        return metadata_from_external(resolved, targeted, external, selection.framework)

    return metadata_from_project(resolved, project, selection.framework)


def run_evaluation_phase(
    config: ScanConfig,
    projects: list[ResolvedProject],
    evaluator: ProjectEvaluator,
    fallback: FallbackEvaluator,
    log: logging.Logger | None = None,
) -> list[ProjectMetadata]:
    """Evaluate all projects in parallel.

    A project that fails for any reason is logged and left out; the
    others are unaffected. Result order is not defined.
    """
    log = log or logger
    results: list[ProjectMetadata] = []
    lock = threading.Lock()

    def evaluate_one(resolved: ResolvedProject) -> None:
        try:
            metadata = extract_metadata(resolved, evaluator, fallback, log)
        except Exception as e:
            log.warning(f"Error parsing project {resolved.name}: {e}")
            return
        if metadata is None:
            return
        with lock:
            results.append(metadata)

    if not projects:
        return results

    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        futures = [pool.submit(evaluate_one, project) for project in projects]
        for future in futures:
            future.result()

    log.info(f"Evaluated {len(results)} of {len(projects)} projects")
    return results
