"""Exception types raised by solscan."""

from __future__ import annotations


class SolscanError(Exception):
    """Base class for all solscan errors."""


class InvalidDescriptorError(SolscanError):
    """The input path is neither a solution file nor a directory."""

    def __init__(self, path: str) -> None:
        super().__init__(f'Invalid solution path "{path}"')
        self.path = path


class DescriptorParseError(SolscanError):
    """A legacy solution file could not be read."""


class ToolchainNotFoundError(SolscanError):
    """No .NET SDK matches the solution directory."""

    def __init__(self, directory: str) -> None:
        super().__init__(f"Could not find a matching .NET SDK for {directory}")
        self.directory = directory


class EvaluationError(SolscanError):
    """A project could not be evaluated. Recoverable per project."""
