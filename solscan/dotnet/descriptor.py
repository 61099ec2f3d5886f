"""Classify a user-supplied path as a solution file or a directory."""

from __future__ import annotations

import os

from solscan.config import (
    LEGACY_SOLUTION_EXTENSION,
    MARKUP_SOLUTION_EXTENSION,
    DescriptorFormat,
    DescriptorKind,
    SolutionDescriptor,
)
from solscan.errors import InvalidDescriptorError


def classify_descriptor(path: str) -> SolutionDescriptor:
    """Decide how the given path should be scanned.

    A ``.sln`` or ``.slnx`` file is parsed as a solution. A directory is
    scanned for project files. Any other existing file anchors a
    directory scan of its parent folder.
    """
    full_path = os.path.abspath(path)
    ext = os.path.splitext(full_path)[1].lower()

    if ext == LEGACY_SOLUTION_EXTENSION and os.path.isfile(full_path):
        return SolutionDescriptor(
            kind=DescriptorKind.FILE,
            path=full_path,
            directory=os.path.dirname(full_path),
            format=DescriptorFormat.LEGACY,
        )

    if ext == MARKUP_SOLUTION_EXTENSION and os.path.isfile(full_path):
        return SolutionDescriptor(
            kind=DescriptorKind.FILE,
            path=full_path,
            directory=os.path.dirname(full_path),
            format=DescriptorFormat.MARKUP,
        )

    if os.path.isdir(full_path):
        return SolutionDescriptor(
            kind=DescriptorKind.DIRECTORY,
            path=full_path,
            directory=full_path,
        )

    if os.path.isfile(full_path):
        return SolutionDescriptor(
            kind=DescriptorKind.DIRECTORY,
            path=full_path,
            directory=os.path.dirname(full_path),
        )

    raise InvalidDescriptorError(full_path)
