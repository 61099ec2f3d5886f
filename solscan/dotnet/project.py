"""Evaluate .csproj/.fsproj/.vbproj files (XML with MSBuild schema).

This is a static evaluator: it reads the project XML and the files it
imports, expands ``$(Property)`` references, honours simple conditions
and fills in the .NET SDK defaults needed to locate build outputs. It
does not run targets.
"""

from __future__ import annotations

import glob
import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Protocol

from solscan.config import DESIGNER_ITEM_TYPE
from solscan.dotnet.toolchain import Toolchain
from solscan.dotnet.xmlutil import child_elements
from solscan.errors import EvaluationError

logger = logging.getLogger(__name__)

_PROPERTY_REF_RE = re.compile(r"\$\(\s*([A-Za-z_][\w.\-]*)\s*\)")
_EXISTS_RE = re.compile(r"^(!)?\s*Exists\(\s*'([^']*)'\s*\)$", re.IGNORECASE)
_COMPARE_RE = re.compile(r"^('[^']*'|[^\s=!']+)\s*(==|!=)\s*('[^']*'|[^\s=!']+)$")
_NETFX_TFM_RE = re.compile(r"^net\d+$", re.IGNORECASE)

_ITEM_ATTRIBUTES = {"include", "exclude", "remove", "update", "condition", "keepmetadata", "removemetadata", "keepduplicates"}

_DEFAULT_DESIGNER_GLOBS = ("**/*.axaml", "**/*.paml")


@dataclass(frozen=True)
class LoadOptions:
    ignore_missing_imports: bool = True
    fail_on_unresolved_toolchain: bool = True


@dataclass
class ProjectItem:
    """An evaluated item, e.g. a ``<ProjectReference Include="..."/>``."""
    item_type: str
    evaluated_include: str
    metadata: dict[str, str] = field(default_factory=dict)

    def full_path(self, base_dir: str) -> str:
        """Resolve the include against ``base_dir``."""
        include = self.evaluated_include.replace("\\", "/")
        return os.path.normpath(os.path.join(base_dir, include))


class EvaluatedProject:
    """Result of evaluating a project: a property bag and item lists.

    Property and item type names are case-insensitive, as in MSBuild.
    """

    def __init__(
        self,
        path: str,
        properties: dict[str, str],
        items: dict[str, list[ProjectItem]],
    ) -> None:
        self.path = path
        self._properties = {k.casefold(): v for k, v in properties.items()}
        self._items = {k.casefold(): v for k, v in items.items()}

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path)

    def get_property(self, name: str) -> str:
        """Return the property value, or an empty string if unset."""
        return self._properties.get(name.casefold(), "")

    def get_items(self, item_type: str) -> list[ProjectItem]:
        return list(self._items.get(item_type.casefold(), []))


class ProjectEvaluator(Protocol):
    """Turns a project file into an EvaluatedProject."""

    def evaluate(
        self,
        path: str,
        options: LoadOptions,
        global_properties: dict[str, str] | None = None,
    ) -> EvaluatedProject:
        ...


def _native(path: str) -> str:
    """Convert MSBuild-style separators to the host's."""
    return path.replace("\\", "/").replace("/", os.sep)


def _with_trailing_slash(path: str) -> str:
    if path and not path.endswith(("\\", "/")):
        return path + "\\"
    return path


def _split_top_level(expr: str, keyword: str) -> list[str]:
    """Split ``expr`` on `` and ``/`` or `` outside quotes and parentheses."""
    parts = []
    depth = 0
    in_quote = False
    start = 0
    i = 0
    lowered = expr.lower()
    token = f" {keyword} "
    while i < len(expr):
        ch = expr[i]
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            elif depth == 0 and lowered.startswith(token, i):
                parts.append(expr[start:i])
                i += len(token)
                start = i
                continue
        i += 1
    parts.append(expr[start:])
    return parts


def _strip_parens(expr: str) -> str:
    """Remove parentheses wrapping the whole expression."""
    expr = expr.strip()
    while expr.startswith("(") and expr.endswith(")"):
        depth = 0
        for i, ch in enumerate(expr):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            if depth == 0 and i < len(expr) - 1:
                return expr
        expr = expr[1:-1].strip()
    return expr


def evaluate_condition(condition: str, base_dir: str) -> bool:
    """Evaluate an already-expanded MSBuild condition.

    Supports ``==``, ``!=``, ``Exists()``, ``!Exists()``, ``true``,
    ``false``, ``and``, ``or`` and parentheses. Anything else is false.
    """
    expr = _strip_parens(" ".join(condition.split()))
    if not expr:
        return True

    or_parts = _split_top_level(expr, "or")
    if len(or_parts) > 1:
        return any(evaluate_condition(part, base_dir) for part in or_parts)

    and_parts = _split_top_level(expr, "and")
    if len(and_parts) > 1:
        return all(evaluate_condition(part, base_dir) for part in and_parts)

    lowered = expr.lower()
    if lowered in ("true", "'true'"):
        return True
    if lowered in ("false", "'false'", ""):
        return False
    if lowered.startswith("!") and "(" not in lowered:
        return not evaluate_condition(expr[1:], base_dir)

    match = _EXISTS_RE.match(expr)
    if match:
        target = match.group(2).strip()
        exists = bool(target) and os.path.exists(os.path.join(base_dir, _native(target)))
        return not exists if match.group(1) else exists

    match = _COMPARE_RE.match(expr)
    if match:
        left = match.group(1).strip("'").strip()
        right = match.group(3).strip("'").strip()
        equal = left.casefold() == right.casefold()
        return equal if match.group(2) == "==" else not equal

    logger.debug(f"Unsupported condition treated as false: {condition}")
    return False


class _Evaluation:
    """State for evaluating a single project file."""

    def __init__(
        self,
        path: str,
        options: LoadOptions,
        global_properties: dict[str, str],
        toolchain: Toolchain | None,
    ) -> None:
        self.path = path
        self.directory = os.path.dirname(path)
        self.options = options
        self.toolchain = toolchain
        self.properties: dict[str, str] = {}
        self.global_keys = {k.casefold() for k in global_properties}
        self.item_groups: list[tuple[ET.Element, str]] = []
        self.imported: set[str] = set()
        self.sdks: list[str] = []

        name, ext = os.path.splitext(os.path.basename(path))
        self._set_reserved("MSBuildProjectFullPath", path)
        self._set_reserved("MSBuildProjectDirectory", self.directory)
        self._set_reserved("MSBuildProjectName", name)
        self._set_reserved("MSBuildProjectFile", os.path.basename(path))
        self._set_reserved("MSBuildProjectExtension", ext)
        for key, value in global_properties.items():
            self.properties[key.casefold()] = value
        self.set_default("Configuration", "Debug")

    # --- properties ---

    def _set_reserved(self, name: str, value: str) -> None:
        self.properties[name.casefold()] = value

    def get(self, name: str) -> str:
        return self.properties.get(name.casefold(), "")

    def set(self, name: str, value: str) -> None:
        if name.casefold() in self.global_keys:
            return
        self.properties[name.casefold()] = value

    def set_default(self, name: str, value: str) -> None:
        if not self.get(name):
            self.set(name, value)

    def expand(self, text: str) -> str:
        return _PROPERTY_REF_RE.sub(lambda m: self.get(m.group(1)), text)

    def condition_holds(self, element: ET.Element, file_dir: str) -> bool:
        condition = element.get("Condition")
        if condition is None:
            return True
        return evaluate_condition(self.expand(condition), file_dir)

    # --- pass 1: properties and imports ---

    def load(self) -> None:
        root = self._parse(self.path)
        self._collect_sdks(root)
        sdk_style = bool(self.sdks)

        if sdk_style:
            self._check_sdks()
            props = self._find_directory_build_props()
            if props:
                self._import_file(props)

        self._process_file(root, self.path)
        self._apply_sdk_defaults(sdk_style)

    def _parse(self, path: str) -> ET.Element:
        try:
            return ET.parse(path).getroot()
        except ET.ParseError as e:
            raise EvaluationError(f"Malformed project file {path}: {e}") from e
        except OSError as e:
            raise EvaluationError(f"Cannot read project file {path}: {e}") from e

    def _collect_sdks(self, root: ET.Element) -> None:
        for name in (root.get("Sdk") or "").split(";"):
            if name.strip():
                self.sdks.append(name.strip())
        for tag, child in child_elements(root):
            if tag == "Sdk" and child.get("Name"):
                self.sdks.append(child.get("Name").strip())
            elif tag == "Import" and child.get("Sdk"):
                self.sdks.append(child.get("Sdk").strip())

    def _check_sdks(self) -> None:
        if not self.options.fail_on_unresolved_toolchain or self.toolchain is None:
            return
        if not self.toolchain.sdk_path:
            logger.debug(f"SDK directory of .NET SDK {self.toolchain.version} unknown, not checking {self.path}")
            return
        for sdk in self.sdks:
            if not self.toolchain.has_sdk(sdk):
                raise EvaluationError(
                    f"SDK '{sdk}' could not be resolved by .NET SDK {self.toolchain.version}"
                )

    def _find_directory_build_props(self) -> str | None:
        current = self.directory
        while True:
            candidate = os.path.join(current, "Directory.Build.props")
            if os.path.isfile(candidate):
                return candidate
            parent = os.path.dirname(current)
            if parent == current:
                return None
            current = parent

    def _process_file(self, root: ET.Element, file_path: str) -> None:
        previous = (self.get("MSBuildThisFile"), self.get("MSBuildThisFileDirectory"), self.get("MSBuildThisFileFullPath"))
        file_dir = os.path.dirname(file_path)
        self._set_reserved("MSBuildThisFile", os.path.basename(file_path))
        self._set_reserved("MSBuildThisFileDirectory", file_dir + os.sep)
        self._set_reserved("MSBuildThisFileFullPath", file_path)
        try:
            self._process_children(root, file_dir)
        finally:
            self._set_reserved("MSBuildThisFile", previous[0])
            self._set_reserved("MSBuildThisFileDirectory", previous[1])
            self._set_reserved("MSBuildThisFileFullPath", previous[2])

    def _process_children(self, container: ET.Element, file_dir: str) -> None:
        for tag, child in child_elements(container):
            if tag == "PropertyGroup":
                if self.condition_holds(child, file_dir):
                    self._process_property_group(child, file_dir)
            elif tag == "ItemGroup":
                self.item_groups.append((child, file_dir))
            elif tag == "Import":
                self._process_import(child, file_dir)
            elif tag == "ImportGroup":
                if self.condition_holds(child, file_dir):
                    for sub_tag, imp in child_elements(child):
                        if sub_tag == "Import":
                            self._process_import(imp, file_dir)
            elif tag == "Choose":
                self._process_choose(child, file_dir)

    def _process_property_group(self, group: ET.Element, file_dir: str) -> None:
        for name, prop in child_elements(group):
            if not self.condition_holds(prop, file_dir):
                continue
            self.set(name, self.expand((prop.text or "").strip()))

    def _process_choose(self, choose: ET.Element, file_dir: str) -> None:
        for tag, branch in child_elements(choose):
            if tag == "When" and self.condition_holds(branch, file_dir):
                self._process_children(branch, file_dir)
                return
            if tag == "Otherwise":
                self._process_children(branch, file_dir)
                return

    def _process_import(self, element: ET.Element, file_dir: str) -> None:
        project = element.get("Project")
        if element.get("Sdk") or not project:
            # SDK imports are implicit in this evaluator
            return
        if not self.condition_holds(element, file_dir):
            return

        spec = _native(self.expand(project).strip())
        if any(ch in spec for ch in "*?"):
            for match in sorted(glob.glob(spec, root_dir=file_dir)):
                self._import_file(os.path.normpath(os.path.join(file_dir, match)))
            return

        target = os.path.normpath(os.path.join(file_dir, spec))
        if os.path.isfile(target):
            self._import_file(target)
        elif self.options.ignore_missing_imports:
            logger.debug(f"Ignoring missing import {target} in {self.path}")
        else:
            raise EvaluationError(f"Imported project not found: {target}")

    def _import_file(self, path: str) -> None:
        key = os.path.normcase(path)
        if key in self.imported:
            return
        self.imported.add(key)
        self._process_file(self._parse(path), path)

    def _apply_sdk_defaults(self, sdk_style: bool) -> None:
        """Fill in the output-related properties the .NET SDK would set."""
        self.set_default("AssemblyName", self.get("MSBuildProjectName"))
        self.set_default("RootNamespace", self.get("AssemblyName"))
        self.set_default("OutputType", "Library")
        self.set_default("BaseOutputPath", "bin\\")
        self.set_default("BaseIntermediateOutputPath", "obj\\")

        configuration = self.get("Configuration")
        self.set_default("OutputPath", _with_trailing_slash(self.get("BaseOutputPath")) + configuration + "\\")
        self.set_default(
            "IntermediateOutputPath",
            _with_trailing_slash(self.get("BaseIntermediateOutputPath")) + configuration + "\\",
        )
        output_path = _with_trailing_slash(self.get("OutputPath"))
        intermediate_path = _with_trailing_slash(self.get("IntermediateOutputPath"))

        framework = self.get("TargetFramework")
        if sdk_style and framework and self.get("AppendTargetFrameworkToOutputPath").lower() != "false":
            output_path += framework + "\\"
            intermediate_path += framework + "\\"
        rid = self.get("RuntimeIdentifier")
        if sdk_style and rid and self.get("AppendRuntimeIdentifierToOutputPath").lower() != "false":
            output_path += rid + "\\"
            intermediate_path += rid + "\\"
        self.set("OutputPath", output_path)
        self.set("IntermediateOutputPath", intermediate_path)
        self.set_default("OutDir", output_path)

        is_exe = self.get("OutputType").lower() in ("exe", "winexe")
        self.set_default("TargetExt", ".exe" if is_exe and _NETFX_TFM_RE.match(framework) else ".dll")
        assembly = self.get("AssemblyName")
        self.set_default("TargetFileName", assembly + self.get("TargetExt"))

        target_dir = os.path.normpath(os.path.join(self.directory, _native(self.get("OutDir")))) + os.sep
        self.set_default("TargetDir", target_dir)
        self.set_default("TargetPath", os.path.join(self.get("TargetDir"), self.get("TargetFileName")))
        self.set_default("ProjectDepsFileName", assembly + ".deps.json")
        self.set_default("ProjectDepsFilePath", os.path.join(target_dir, self.get("ProjectDepsFileName")))
        self.set_default("ProjectRuntimeConfigFileName", assembly + ".runtimeconfig.json")
        self.set_default(
            "ProjectRuntimeConfigFilePath",
            os.path.join(target_dir, self.get("ProjectRuntimeConfigFileName")),
        )

    # --- pass 2: items ---

    def evaluate_items(self) -> dict[str, list[ProjectItem]]:
        items: dict[str, list[ProjectItem]] = {}

        if self._uses_default_designer_items():
            items[DESIGNER_ITEM_TYPE.casefold()] = [
                ProjectItem(DESIGNER_ITEM_TYPE, rel) for rel in self._default_designer_files()
            ]

        for group, file_dir in self.item_groups:
            if not self.condition_holds(group, file_dir):
                continue
            for item_type, element in child_elements(group):
                if not self.condition_holds(element, file_dir):
                    continue
                self._apply_item(items, item_type, element)

        return items

    def _iter_item_elements(self, item_type: str):
        for group, file_dir in self.item_groups:
            if not self.condition_holds(group, file_dir):
                continue
            for tag, element in child_elements(group):
                if tag.casefold() == item_type.casefold() and self.condition_holds(element, file_dir):
                    yield element

    def _uses_default_designer_items(self) -> bool:
        if not self.sdks:
            return False
        if self.get("EnableDefaultItems").lower() == "false":
            return False
        if self.get("EnableDefaultAvaloniaItems").lower() == "false":
            return False
        for element in self._iter_item_elements("PackageReference"):
            for name in self.expand(element.get("Include", "")).split(";"):
                if name.strip().lower().startswith("avalonia"):
                    return True
        return False

    def _excluded_by_default(self, rel_path: str) -> bool:
        parts = rel_path.replace("\\", "/").split("/")
        output_dirs = {
            self.get("BaseOutputPath").replace("\\", "/").strip("/").lower(),
            self.get("BaseIntermediateOutputPath").replace("\\", "/").strip("/").lower(),
        }
        if parts[0].lower() in output_dirs:
            return True
        return any(part.startswith(".") for part in parts[:-1])

    def _default_designer_files(self) -> list[str]:
        found: list[str] = []
        for pattern in _DEFAULT_DESIGNER_GLOBS:
            for rel in self._glob(pattern):
                if rel not in found and not self._excluded_by_default(rel):
                    found.append(rel)
        return found

    def _glob(self, pattern: str) -> list[str]:
        """Expand a wildcard include relative to the project directory."""
        matches = glob.glob(_native(pattern), root_dir=self.directory, recursive=True)
        return sorted(m for m in matches if os.path.isfile(os.path.join(self.directory, m)))

    def _expand_specs(self, value: str) -> list[str]:
        results = []
        for spec in self.expand(value).split(";"):
            spec = spec.strip()
            if not spec:
                continue
            if any(ch in spec for ch in "*?"):
                results.extend(self._glob(spec))
            else:
                results.append(spec)
        return results

    def _full(self, include: str) -> str:
        return os.path.normcase(os.path.normpath(os.path.join(self.directory, _native(include))))

    def _apply_item(self, items: dict[str, list[ProjectItem]], item_type: str, element: ET.Element) -> None:
        bucket = items.setdefault(item_type.casefold(), [])

        remove = element.get("Remove")
        if remove is not None:
            doomed = {self._full(spec) for spec in self._expand_specs(remove)}
            bucket[:] = [item for item in bucket if self._full(item.evaluated_include) not in doomed]
            return

        include = element.get("Include")
        if include is None:
            return

        excluded = {self._full(spec) for spec in self._expand_specs(element.get("Exclude", ""))}
        metadata = {
            name: self.expand(value)
            for name, value in element.attrib.items()
            if name.lower() not in _ITEM_ATTRIBUTES
        }
        for tag, child in child_elements(element):
            metadata[tag] = self.expand((child.text or "").strip())

        existing = {self._full(item.evaluated_include) for item in bucket}
        for spec in self._expand_specs(include):
            key = self._full(spec)
            if key in excluded:
                continue
            if key in existing and item_type.casefold() == DESIGNER_ITEM_TYPE.casefold():
                continue
            existing.add(key)
            bucket.append(ProjectItem(item_type, spec, dict(metadata)))


class StaticEvaluator:
    """In-process project evaluator.

    When a toolchain is given, SDK-style projects whose SDK it cannot
    resolve fail evaluation (if the load options ask for it).
    """

    def __init__(self, toolchain: Toolchain | None = None) -> None:
        self.toolchain = toolchain

    def evaluate(
        self,
        path: str,
        options: LoadOptions,
        global_properties: dict[str, str] | None = None,
    ) -> EvaluatedProject:
        full_path = os.path.abspath(path)
        evaluation = _Evaluation(full_path, options, global_properties or {}, self.toolchain)
        evaluation.load()
        items = evaluation.evaluate_items()

        props = dict(evaluation.properties)
        return EvaluatedProject(full_path, props, items)

