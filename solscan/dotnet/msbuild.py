"""Out-of-process evaluation through ``dotnet msbuild``.

Used for multi-targeted projects, which need a concrete TargetFramework
before their output properties mean anything.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Protocol

from solscan.config import DESIGNER_ITEM_TYPE, FALLBACK_PROPERTIES, FALLBACK_TIMEOUT_SECONDS
from solscan.errors import EvaluationError

logger = logging.getLogger(__name__)


@dataclass
class ExternalEvaluation:
    """Properties and items reported by an external build process."""
    properties: dict[str, str] = field(default_factory=dict)
    items: dict[str, list[dict[str, str]]] = field(default_factory=dict)

    def get_property(self, name: str) -> str:
        for key, value in self.properties.items():
            if key.casefold() == name.casefold():
                return value if isinstance(value, str) else str(value)
        return ""

    def item_paths(self, item_type: str) -> list[str]:
        """Full paths of the items of ``item_type``."""
        for key, entries in self.items.items():
            if key.casefold() != item_type.casefold():
                continue
            return [
                entry["FullPath"]
                for entry in entries
                if isinstance(entry, dict) and entry.get("FullPath")
            ]
        return []


class FallbackEvaluator(Protocol):
    """Evaluates a project for one explicit target framework."""

    def evaluate(self, path: str, target_framework: str) -> ExternalEvaluation:
        ...


def parse_msbuild_output(output: str) -> ExternalEvaluation:
    """Parse the JSON printed by ``msbuild -getProperty/-getItem``.

    Raises EvaluationError on empty or malformed output.
    """
    if not output or not output.strip():
        raise EvaluationError("msbuild produced no output")

    # Anything msbuild logs before the document is not part of it
    start = output.find("{")
    if start < 0:
        raise EvaluationError("msbuild output is not JSON")
    try:
        data = json.loads(output[start:])
    except ValueError as e:
        raise EvaluationError(f"msbuild output is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("Properties"), dict):
        raise EvaluationError("msbuild output has no Properties object")

    items = data.get("Items") or {}
    if not isinstance(items, dict):
        raise EvaluationError("msbuild output has a malformed Items object")

    return ExternalEvaluation(
        properties=dict(data["Properties"]),
        items={k: v for k, v in items.items() if isinstance(v, list)},
    )


class MSBuildCliEvaluator:
    """Runs ``dotnet msbuild`` with a TargetFramework override."""

    def __init__(
        self,
        dotnet_path: str = "dotnet",
        timeout: float = FALLBACK_TIMEOUT_SECONDS,
        properties: tuple[str, ...] = FALLBACK_PROPERTIES,
        item_type: str = DESIGNER_ITEM_TYPE,
    ) -> None:
        self.dotnet_path = dotnet_path
        self.timeout = timeout
        self.properties = properties
        self.item_type = item_type

    def build_command(self, path: str, target_framework: str) -> list[str]:
        args = [
            self.dotnet_path,
            "msbuild",
            path,
            "-nologo",
            f"-property:TargetFramework={target_framework}",
        ]
        args.extend(f"-getProperty:{name}" for name in self.properties)
        args.append(f"-getItem:{self.item_type}")
        return args

    def evaluate(self, path: str, target_framework: str) -> ExternalEvaluation:
        args = self.build_command(path, target_framework)
        logger.debug(f"Running {' '.join(args)}")
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise EvaluationError(f"msbuild timed out after {self.timeout:g}s") from e
        except OSError as e:
            raise EvaluationError(f"Cannot run {self.dotnet_path}: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            reason = detail[-1] if detail else "no output"
            raise EvaluationError(f"msbuild exited with code {result.returncode}: {reason}")

        return parse_msbuild_output(result.stdout)
