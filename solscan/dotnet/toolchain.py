""".NET SDK discovery."""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# "8.0.100 [/usr/share/dotnet/sdk]"
_LIST_SDKS_RE = re.compile(r"^\s*(\S+)\s+\[(.+)\]\s*$")


@dataclass(frozen=True)
class Toolchain:
    """A .NET SDK selected for a working directory."""
    version: str
    sdk_path: str
    dotnet_path: str
    msbuild_sdks: frozenset[str] = field(default_factory=frozenset)

    def has_sdk(self, name: str) -> bool:
        """Check if an MSBuild project SDK (e.g. ``Microsoft.NET.Sdk``) resolves.

        Bundled SDKs live under ``<sdk>/Sdks``; NuGet SDKs must be pinned
        in global.json's ``msbuild-sdks``.
        """
        name = name.split("/", 1)[0].strip()
        if not name:
            return False
        if name.casefold() in {s.casefold() for s in self.msbuild_sdks}:
            return True
        return bool(self.sdk_path) and os.path.isdir(os.path.join(self.sdk_path, "Sdks", name))


def find_dotnet() -> str | None:
    """Locate the dotnet host executable."""
    host = os.environ.get("DOTNET_HOST_PATH")
    if host and os.path.isfile(host):
        return host
    return shutil.which("dotnet")


def _run(args: list[str], cwd: str) -> str | None:
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"{' '.join(args)} failed: {e}")
        return None
    if result.returncode != 0:
        logger.debug(f"{' '.join(args)} exited with {result.returncode}: {result.stderr.strip()}")
        return None
    return result.stdout


def _read_msbuild_sdks(working_dir: str) -> frozenset[str]:
    """Read ``msbuild-sdks`` from the nearest global.json, if any."""
    current = os.path.abspath(working_dir)
    while True:
        candidate = os.path.join(current, "global.json")
        if os.path.isfile(candidate):
            try:
                with open(candidate, "r", encoding="utf-8-sig") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable {candidate}: {e}")
                return frozenset()
            sdks = data.get("msbuild-sdks") if isinstance(data, dict) else None
            return frozenset(sdks) if isinstance(sdks, dict) else frozenset()
        parent = os.path.dirname(current)
        if parent == current:
            return frozenset()
        current = parent


def locate_toolchain(working_dir: str) -> Toolchain | None:
    """Find the .NET SDK that ``dotnet`` selects for ``working_dir``.

    Honours global.json, because ``dotnet --version`` is run inside the
    directory. Returns None when no host or no matching SDK exists.
    """
    dotnet = find_dotnet()
    if dotnet is None:
        logger.debug("dotnet executable not found")
        return None

    version_out = _run([dotnet, "--version"], working_dir)
    if not version_out or not version_out.strip():
        return None
    version = version_out.strip().splitlines()[-1].strip()

    sdk_path = ""
    for line in (_run([dotnet, "--list-sdks"], working_dir) or "").splitlines():
        match = _LIST_SDKS_RE.match(line)
        if match and match.group(1) == version:
            sdk_path = os.path.join(match.group(2), version)
            break
    if not sdk_path:
        logger.debug(f"SDK {version} not listed by dotnet --list-sdks, SDK resolution unchecked")

    return Toolchain(
        version=version,
        sdk_path=sdk_path,
        dotnet_path=dotnet,
        msbuild_sdks=_read_msbuild_sdks(working_dir),
    )
