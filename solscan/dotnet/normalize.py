"""Normalisation of evaluated project properties."""

from __future__ import annotations

import os

from solscan.config import DESIGNER_REFERENCES_SUFFIX

# Legacy numeric OutputType codes and their textual forms
_OUTPUT_TYPES = {
    "0": "Library",
    "1": "Exe",
    "2": "WinExe",
    "3": "Module",
    "library": "Library",
    "exe": "Exe",
    "winexe": "WinExe",
}


def normalize_output_type(output_type: str) -> str:
    """Map an OutputType value to its canonical name.

    Unrecognised values are returned unchanged.
    """
    return _OUTPUT_TYPES.get(output_type.strip().lower(), output_type)


def to_host_path(path: str) -> str:
    """Use the host's directory separator throughout ``path``."""
    if os.sep == "/":
        return path.replace("\\", "/")
    return path.replace("/", os.sep)


def intermediate_output_path(raw: str, project_dir: str) -> str:
    """Where the designer expects the project's reference cache.

    ``raw`` is the project's IntermediateOutputPath; relative values are
    rooted at the project directory.
    """
    path = os.path.join(to_host_path(raw), *DESIGNER_REFERENCES_SUFFIX)
    if not os.path.isabs(path):
        path = os.path.join(project_dir, path)
    return os.path.normpath(path)


def designer_host_path(raw: str) -> str:
    if not raw:
        return ""
    return os.path.abspath(to_host_path(raw))
