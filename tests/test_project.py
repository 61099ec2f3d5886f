"""Tests for the static project evaluator."""

from __future__ import annotations

import os

import pytest

from solscan.dotnet.project import (
    EvaluatedProject,
    LoadOptions,
    ProjectItem,
    StaticEvaluator,
    evaluate_condition,
)
from solscan.dotnet.toolchain import Toolchain
from solscan.errors import EvaluationError

from conftest import AVALONIA_APP, sdk_project

OPTIONS = LoadOptions()


def evaluate(path: str, toolchain=None, options: LoadOptions = OPTIONS, **global_properties) -> EvaluatedProject:
    return StaticEvaluator(toolchain).evaluate(path, options, global_properties or None)


class TestEvaluateCondition:
    @pytest.mark.parametrize("condition, expected", [
        ("", True),
        ("'a' == 'a'", True),
        ("'a' == 'A'", True),
        ("'a' != 'a'", False),
        ("'' == ''", True),
        ("true", True),
        ("false", False),
        ("!false", True),
        ("'a' == 'b' or 'c' == 'c'", True),
        ("'a' == 'a' and 'c' == 'd'", False),
        ("('a' == 'a') and ('b' == 'b')", True),
        ("(('a' == 'b' or 'x' == 'x') and 'y' == 'y')", True),
        ("'a or b' == 'a or b'", True),
        ("net8.0 == 'NET8.0'", True),
        ("$([MSBuild]::IsOSPlatform('Windows'))", False),
    ])
    def test_expressions(self, tmp_path, condition, expected):
        assert evaluate_condition(condition, str(tmp_path)) is expected

    def test_exists(self, tmp_path):
        (tmp_path / "here.props").write_text("<Project />")

        assert evaluate_condition("Exists('here.props')", str(tmp_path))
        assert not evaluate_condition("Exists('gone.props')", str(tmp_path))
        assert evaluate_condition("!Exists('gone.props')", str(tmp_path))
        assert not evaluate_condition("Exists('')", str(tmp_path))


class TestProjectItem:
    def test_full_path_relative_to_base(self, tmp_path):
        item = ProjectItem("ProjectReference", "..\\B\\B.csproj")

        assert item.full_path(str(tmp_path / "A")) == str(tmp_path / "B" / "B.csproj")


class TestStaticEvaluator:
    def test_sdk_defaults(self, write_file, tmp_path):
        path = write_file("A/A.csproj", sdk_project("net8.0"))

        project = evaluate(path)

        out_dir = os.path.join(str(tmp_path), "A", "bin", "Debug", "net8.0")
        assert project.get_property("TargetFramework") == "net8.0"
        assert project.get_property("OutputType") == "Library"
        assert project.get_property("AssemblyName") == "A"
        assert project.get_property("TargetPath") == os.path.join(out_dir, "A.dll")
        assert project.get_property("ProjectDepsFilePath") == os.path.join(out_dir, "A.deps.json")
        assert project.get_property("ProjectRuntimeConfigFilePath") == os.path.join(out_dir, "A.runtimeconfig.json")
        assert project.get_property("IntermediateOutputPath") == "obj\\Debug\\net8.0\\"

    def test_property_names_case_insensitive(self, write_file):
        path = write_file("A/A.csproj", sdk_project("net8.0", output_type="Exe"))

        project = evaluate(path)

        assert project.get_property("outputType") == "Exe"
        assert project.get_property("Missing") == ""

    def test_assembly_name_drives_target_path(self, write_file):
        extra = "<PropertyGroup><AssemblyName>Renamed</AssemblyName></PropertyGroup>"
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))

        project = evaluate(path)

        assert os.path.basename(project.get_property("TargetPath")) == "Renamed.dll"

    def test_netfx_exe_gets_exe_extension(self, write_file):
        path = write_file("A/A.csproj", sdk_project("net472", output_type="WinExe"))

        project = evaluate(path)

        assert project.get_property("TargetPath").endswith("A.exe")

    def test_property_expansion_and_conditions(self, write_file):
        path = write_file("A/A.csproj", """
            <Project Sdk="Microsoft.NET.Sdk">
              <PropertyGroup>
                <TargetFramework>net8.0</TargetFramework>
                <Flavor>Desktop</Flavor>
                <Label>$(MSBuildProjectName)-$(Flavor)</Label>
              </PropertyGroup>
              <PropertyGroup Condition="'$(Flavor)' == 'Desktop'">
                <OutputType>WinExe</OutputType>
              </PropertyGroup>
              <PropertyGroup Condition="'$(Flavor)' == 'Mobile'">
                <OutputType>Exe</OutputType>
              </PropertyGroup>
              <PropertyGroup>
                <Skipped Condition="'$(TargetFramework)' != 'net8.0'">yes</Skipped>
              </PropertyGroup>
            </Project>
        """)

        project = evaluate(path)

        assert project.get_property("Label") == "A-Desktop"
        assert project.get_property("OutputType") == "WinExe"
        assert project.get_property("Skipped") == ""

    def test_choose_when_otherwise(self, write_file):
        path = write_file("A/A.csproj", """
            <Project Sdk="Microsoft.NET.Sdk">
              <PropertyGroup><TargetFramework>net8.0</TargetFramework></PropertyGroup>
              <Choose>
                <When Condition="'$(Configuration)' == 'Release'">
                  <PropertyGroup><Mode>fast</Mode></PropertyGroup>
                </When>
                <Otherwise>
                  <PropertyGroup><Mode>debuggable</Mode></PropertyGroup>
                </Otherwise>
              </Choose>
            </Project>
        """)

        assert evaluate(path).get_property("Mode") == "debuggable"

    def test_global_properties_win(self, write_file, tmp_path):
        path = write_file("A/A.csproj", sdk_project("net472;net8.0", multi=True))

        project = evaluate(path, TargetFramework="net8.0")

        assert project.get_property("TargetFramework") == "net8.0"
        assert os.path.join("bin", "Debug", "net8.0") in project.get_property("TargetPath")

    def test_multi_target_leaves_framework_empty(self, write_file):
        path = write_file("A/A.csproj", sdk_project("net472;net8.0", multi=True))

        project = evaluate(path)

        assert project.get_property("TargetFramework") == ""
        assert project.get_property("TargetFrameworks") == "net472;net8.0"

    def test_directory_build_props_imported(self):
        path = os.path.join(AVALONIA_APP, "src", "App", "App.csproj")

        project = evaluate(path)

        assert project.get_property("AvaloniaVersion") == "11.0.10"
        assert project.get_property("Nullable") == "enable"

    def test_explicit_import(self, write_file):
        write_file("shared/Common.props", """
            <Project>
              <PropertyGroup><Company>Contoso</Company><Here>$(MSBuildThisFileDirectory)</Here></PropertyGroup>
            </Project>
        """)
        extra = '<Import Project="..\\shared\\Common.props" />'
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))

        project = evaluate(path)

        assert project.get_property("Company") == "Contoso"
        assert project.get_property("Here").rstrip(os.sep).endswith("shared")

    def test_missing_import_ignored(self, write_file):
        extra = '<Import Project="missing.props" />'
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))

        project = evaluate(path)

        assert project.get_property("TargetFramework") == "net8.0"

    def test_missing_import_fails_when_not_ignored(self, write_file):
        extra = '<Import Project="missing.props" />'
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))

        with pytest.raises(EvaluationError, match="missing.props"):
            evaluate(path, options=LoadOptions(ignore_missing_imports=False))

    def test_malformed_xml(self, write_file):
        path = write_file("A/A.csproj", "<Project><PropertyGroup>")

        with pytest.raises(EvaluationError, match="Malformed"):
            evaluate(path)

    def test_unresolved_sdk_fails(self, write_file, toolchain):
        path = write_file("A/A.csproj", '<Project Sdk="Unknown.Sdk"><PropertyGroup /></Project>')

        with pytest.raises(EvaluationError, match="Unknown.Sdk"):
            evaluate(path, toolchain=toolchain)

    def test_unresolved_sdk_allowed_when_not_required(self, write_file, toolchain):
        path = write_file("A/A.csproj", '<Project Sdk="Unknown.Sdk"><PropertyGroup /></Project>')
        options = LoadOptions(fail_on_unresolved_toolchain=False)

        project = evaluate(path, toolchain=toolchain, options=options)

        assert project.get_property("AssemblyName") == "A"

    def test_unknown_sdk_directory_skips_check(self, write_file):
        path = write_file("A/A.csproj", sdk_project("net8.0"))
        chain = Toolchain(version="8.0.100", sdk_path="", dotnet_path="dotnet")

        project = evaluate(path, toolchain=chain)

        assert project.get_property("TargetFramework") == "net8.0"

    def test_known_sdk_resolves(self, write_file, toolchain):
        path = write_file("A/A.csproj", sdk_project("net8.0"))

        assert evaluate(path, toolchain=toolchain).get_property("TargetFramework") == "net8.0"

    def test_project_references(self, write_file, tmp_path):
        path = write_file("A/A.csproj", sdk_project("net8.0", references=("..\\B\\B.csproj",)))

        project = evaluate(path)

        refs = [item.full_path(project.directory) for item in project.get_items("ProjectReference")]
        assert refs == [str(tmp_path / "B" / "B.csproj")]

    def test_default_avalonia_items(self):
        path = os.path.join(AVALONIA_APP, "src", "App", "App.csproj")

        project = evaluate(path)

        names = sorted(os.path.basename(i.evaluated_include) for i in project.get_items("AvaloniaXaml"))
        assert names == ["App.axaml", "MainWindow.axaml"]

    def test_default_items_skip_output_directories(self, write_file):
        extra = '<ItemGroup><PackageReference Include="Avalonia" Version="11.0.0" /></ItemGroup>'
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))
        write_file("A/Views/Main.axaml")
        write_file("A/bin/Debug/Copied.axaml")
        write_file("A/obj/Generated.axaml")
        write_file("A/.hidden/Secret.axaml")

        project = evaluate(path)

        includes = [i.evaluated_include for i in project.get_items("AvaloniaXaml")]
        assert includes == [os.path.join("Views", "Main.axaml")]

    def test_no_default_items_without_avalonia(self, write_file):
        path = write_file("A/A.csproj", sdk_project("net8.0"))
        write_file("A/Main.axaml")

        assert evaluate(path).get_items("AvaloniaXaml") == []

    def test_explicit_glob_items(self):
        path = os.path.join(AVALONIA_APP, "src", "Controls", "Controls.csproj")

        project = evaluate(path)

        files = [i.full_path(project.directory) for i in project.get_items("AvaloniaXaml")]
        assert files == [os.path.join(AVALONIA_APP, "src", "Controls", "Themes", "Generic.axaml")]

    def test_item_remove_and_exclude(self, write_file):
        extra = """
          <ItemGroup>
            <PackageReference Include="Avalonia" Version="11.0.0" />
            <AvaloniaXaml Remove="Old.axaml" />
            <None Include="*.txt" Exclude="skip.txt" />
          </ItemGroup>
        """
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))
        write_file("A/New.axaml")
        write_file("A/Old.axaml")
        write_file("A/keep.txt")
        write_file("A/skip.txt")

        project = evaluate(path)

        assert [i.evaluated_include for i in project.get_items("AvaloniaXaml")] == ["New.axaml"]
        assert [i.evaluated_include for i in project.get_items("None")] == ["keep.txt"]

    def test_item_metadata(self, write_file):
        extra = """
          <ItemGroup>
            <ProjectReference Include="..\\B\\B.csproj" PrivateAssets="all">
              <ReferenceOutputAssembly>false</ReferenceOutputAssembly>
            </ProjectReference>
          </ItemGroup>
        """
        path = write_file("A/A.csproj", sdk_project("net8.0", extra=extra))

        item = evaluate(path).get_items("projectreference")[0]

        assert item.metadata == {"PrivateAssets": "all", "ReferenceOutputAssembly": "false"}

    def test_legacy_project_without_sdk(self, write_file, toolchain):
        path = write_file("Old/Old.csproj", """
            <Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
              <PropertyGroup>
                <OutputType>1</OutputType>
                <OutputPath>bin\\Debug\\</OutputPath>
                <TargetFrameworkVersion>v4.7.2</TargetFrameworkVersion>
              </PropertyGroup>
            </Project>
        """)

        project = evaluate(path, toolchain=toolchain)

        assert project.get_property("OutputType") == "1"
        assert project.get_property("TargetPath").endswith(os.path.join("Old", "bin", "Debug", "Old.dll"))
