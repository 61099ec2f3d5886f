"""Shared helpers for solscan tests."""

from __future__ import annotations

import logging
import os
import textwrap

import pytest

from solscan.dotnet.msbuild import ExternalEvaluation
from solscan.dotnet.toolchain import Toolchain
from solscan.errors import EvaluationError

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")
AVALONIA_APP = os.path.join(FIXTURES_DIR, "avalonia_app")


def sdk_project(
    target_framework: str = "net8.0",
    output_type: str | None = None,
    references: tuple[str, ...] = (),
    extra: str = "",
    multi: bool = False,
) -> str:
    """Return the XML of a small SDK-style project."""
    tf_tag = "TargetFrameworks" if multi else "TargetFramework"
    props = [f"<{tf_tag}>{target_framework}</{tf_tag}>"]
    if output_type is not None:
        props.append(f"<OutputType>{output_type}</OutputType>")
    refs = "".join(f'<ProjectReference Include="{r}" />' for r in references)
    return textwrap.dedent(f"""\
        <Project Sdk="Microsoft.NET.Sdk">
          <PropertyGroup>{''.join(props)}</PropertyGroup>
          <ItemGroup>{refs}</ItemGroup>
          {extra}
        </Project>
        """)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo logging configuration done by CLI runs."""
    package_logger = logging.getLogger("solscan")
    yield
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_file(tmp_path):
    """Write a file under tmp_path, creating parent directories."""

    def _write(rel_path: str, content: str = "") -> str:
        full = tmp_path / rel_path
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(content, encoding="utf-8")
        return str(full)

    return _write


@pytest.fixture
def toolchain(tmp_path_factory):
    """A toolchain whose SDK directory bundles Microsoft.NET.Sdk."""
    root = tmp_path_factory.mktemp("dotnet")
    sdk_path = root / "sdk" / "8.0.100"
    (sdk_path / "Sdks" / "Microsoft.NET.Sdk").mkdir(parents=True)
    return Toolchain(
        version="8.0.100",
        sdk_path=str(sdk_path),
        dotnet_path=str(root / "dotnet"),
    )


class FakeFallback:
    """Stands in for the out-of-process msbuild evaluator."""

    def __init__(self, results=None, error: str | None = None):
        self.results = results or {}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def evaluate(self, path: str, target_framework: str) -> ExternalEvaluation:
        self.calls.append((path, target_framework))
        if self.error is not None:
            raise EvaluationError(self.error)
        if path in self.results:
            return self.results[path]
        stem = os.path.splitext(os.path.basename(path))[0]
        out_dir = os.path.join(os.path.dirname(path), "bin", "Debug", target_framework)
        return ExternalEvaluation(
            properties={
                "TargetPath": os.path.join(out_dir, f"{stem}.dll"),
                "OutputType": "Library",
                "AvaloniaPreviewerNetCoreToolPath": "",
                "ProjectDepsFilePath": os.path.join(out_dir, f"{stem}.deps.json"),
                "ProjectRuntimeConfigFilePath": os.path.join(out_dir, f"{stem}.runtimeconfig.json"),
                "IntermediateOutputPath": f"obj\\Debug\\{target_framework}\\",
            },
            items={},
        )
