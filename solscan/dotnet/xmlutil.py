"""Helpers for namespace-agnostic MSBuild XML."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator


def local_name(tag: str) -> str:
    """Strip an XML namespace from a tag."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def child_elements(element: ET.Element) -> Iterator[tuple[str, ET.Element]]:
    """Yield ``(local tag, child)`` for element children, skipping comments."""
    for child in element:
        if isinstance(child.tag, str):
            yield local_name(child.tag), child
