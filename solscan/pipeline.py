"""Sequential phase orchestrator with timing."""

from __future__ import annotations

import logging
import time
from typing import Callable

from solscan.config import Manifest, ScanConfig
from solscan.dotnet.descriptor import classify_descriptor
from solscan.dotnet.msbuild import FallbackEvaluator, MSBuildCliEvaluator
from solscan.dotnet.project import ProjectEvaluator, StaticEvaluator
from solscan.dotnet.toolchain import Toolchain, locate_toolchain
from solscan.errors import ToolchainNotFoundError
from solscan.output import build_manifest
from solscan.phases.discovery import discover_projects
from solscan.phases.evaluation import run_evaluation_phase

logger = logging.getLogger(__name__)


_PHASE_LABELS = {
    "discovery": "Discovering projects",
    "evaluation": "Evaluating projects",
    "aggregation": "Building manifest",
}


def run_pipeline(
    config: ScanConfig,
    progress_callback=None,
    toolchain_locator: Callable[[str], Toolchain | None] = locate_toolchain,
    evaluator: ProjectEvaluator | None = None,
    fallback: FallbackEvaluator | None = None,
    log: logging.Logger | None = None,
) -> Manifest:
    """Scan a solution and return its manifest.

    Args:
        config: Scan configuration.
        progress_callback: Optional callable(phase_name, label) invoked
            when each phase starts. Used by the CLI for Rich progress.
        toolchain_locator: Finds the .NET SDK for the solution directory.
        evaluator: In-process project evaluator. Defaults to a
            StaticEvaluator bound to the located toolchain.
        fallback: Evaluator for multi-targeted projects. Defaults to
            running ``dotnet msbuild``.

    Raises:
        InvalidDescriptorError: the solution path does not exist.
        ToolchainNotFoundError: no .NET SDK matches the solution.
        DescriptorParseError: the .sln file cannot be read.
    """
    log = log or logger
    timings: dict[str, float] = {}

    descriptor = classify_descriptor(config.solution_path)

    toolchain = toolchain_locator(descriptor.directory)
    if toolchain is None:
        raise ToolchainNotFoundError(descriptor.directory)
    log.info(f"Using .NET SDK {toolchain.version}")

    evaluator = evaluator or StaticEvaluator(toolchain)
    fallback = fallback or MSBuildCliEvaluator(toolchain.dotnet_path, timeout=config.fallback_timeout)

    def start(name: str) -> float:
        if progress_callback:
            progress_callback(name, _PHASE_LABELS.get(name, name))
        return time.monotonic()

    started = start("discovery")
    projects = discover_projects(descriptor, log)
    timings["discovery"] = time.monotonic() - started

    started = start("evaluation")
    metadata = run_evaluation_phase(config, projects, evaluator, fallback, log)
    timings["evaluation"] = time.monotonic() - started

    started = start("aggregation")
    manifest = build_manifest(descriptor, metadata)
    timings["aggregation"] = time.monotonic() - started

    for name, seconds in timings.items():
        log.debug(f"Phase {name} took {seconds * 1000:.1f}ms")

    return manifest
