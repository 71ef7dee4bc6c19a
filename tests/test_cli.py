"""
Tests for the CLI — command wiring, output and exit codes.

The engine and network are patched out; these tests cover argument
handling and what each command prints.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from agentbuild import __version__
from agentbuild.core.engine.executor import BuildReport
from agentbuild.core.errors import SourceError
from agentbuild.core.models import BuildResult, Platform
from agentbuild.core.models.build import BuildStage
from agentbuild.main import cli

BUILD_FOR_PLATFORMS = "agentbuild.core.engine.executor.build_for_platforms"
LATEST = "agentbuild.core.services.source_ops.get_latest_version"


@pytest.fixture
def runner():
    # Keep INFO logs on stderr out of the JSON assertions
    return CliRunner(env={"AGENTBUILD_LOG_LEVEL": "WARNING"})


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """No stray agentbuild.yml from the checkout."""
    monkeypatch.chdir(tmp_path)


def report_for(*results: BuildResult, host: Platform | None = None) -> BuildReport:
    return BuildReport(version="7.66.1", host=host, results=list(results))


class TestTopLevel:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("build", "platforms", "version", "install", "packages"):
            assert command in result.output

    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_bad_config(self, runner, tmp_path):
        (tmp_path / "agentbuild.yml").write_text("- not a mapping\n")
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 1
        assert "Expected a YAML mapping" in result.output


class TestPlatforms:
    def test_lists_all(self, runner):
        result = runner.invoke(cli, ["platforms"])
        assert result.exit_code == 0
        for name in ("linux-x86_64", "linux-arm64", "macos-arm64", "windows-x86_64"):
            assert name in result.output

    def test_json(self, runner):
        result = runner.invoke(cli, ["platforms", "--json"])
        data = json.loads(result.output)
        assert len(data["platforms"]) == 6
        assert {"name": "macos-arm64", "os": "macos", "arch": "arm64", "goos": "darwin",
                "goarch": "arm64", "binary": "datadog-agent"} in data["platforms"]


class TestVersion:
    def test_prints_latest(self, runner):
        with patch(LATEST, return_value="7.66.1"):
            result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "Latest Datadog Agent version: 7.66.1" in result.output

    def test_failure(self, runner):
        with patch(LATEST, side_effect=SourceError("Failed to fetch latest version: offline")):
            result = runner.invoke(cli, ["version"])
        assert result.exit_code == 1
        assert "offline" in result.output


class TestBuild:
    def test_single_platform(self, runner, linux_arm64):
        report = report_for(BuildResult.ok(linux_arm64, "build/linux-arm64/bin/datadog-agent"))
        with patch(BUILD_FOR_PLATFORMS, return_value=report) as build:
            result = runner.invoke(cli, [
                "build", "-p", "linux-arm64", "--datadog-version", "7.66.1",
                "-o", "out", "--build-args", "--race --tags 'a b'",
            ])

        assert result.exit_code == 0, result.output
        platforms, options, _ = build.call_args.args
        assert platforms == [linux_arm64]
        assert options.version == "7.66.1"
        assert options.artifact_root == Path("out")
        assert options.build_args == ["--race", "--tags", "a b"]
        assert "Build Summary:" in result.output
        assert "Successful: 1" in result.output

    def test_all_platforms(self, runner):
        with patch(BUILD_FOR_PLATFORMS, return_value=report_for()) as build:
            runner.invoke(cli, ["build", "--all"])
        assert len(build.call_args.args[0]) == 6

    def test_source_dir(self, runner):
        with patch(BUILD_FOR_PLATFORMS, return_value=report_for()) as build:
            runner.invoke(cli, ["build", "-p", "linux-x86_64", "-s", "checkout"])
        assert build.call_args.args[1].source_dir == Path("checkout")

    def test_failure_exit_code_and_hint(self, runner, linux_x64, macos_arm64):
        report = report_for(
            BuildResult.ok(linux_x64, "build/linux-x86_64/bin/datadog-agent"),
            BuildResult.failure(macos_arm64, "Xcode command line tools not found", stage=BuildStage.DEPENDENCY_INSTALL),
            host=linux_x64,
        )
        with patch(BUILD_FOR_PLATFORMS, return_value=report):
            result = runner.invoke(cli, ["build", "--all"])

        assert result.exit_code == 1
        assert "Failed: 1" in result.output
        assert "macos-arm64: Xcode command line tools not found" in result.output
        assert "Cross-compilation from linux to macos" in result.output

    def test_json(self, runner, linux_x64):
        report = report_for(BuildResult.failure(linux_x64, "boom"))
        with patch(BUILD_FOR_PLATFORMS, return_value=report):
            result = runner.invoke(cli, ["build", "-p", "linux-x86_64", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["status"] == "failed"
        assert data["results"][0]["error"] == "boom"

    def test_unsupported_platform(self, runner):
        with patch(BUILD_FOR_PLATFORMS) as build:
            result = runner.invoke(cli, ["build", "-p", "solaris-sparc"])
        assert result.exit_code == 1
        build.assert_not_called()


class TestInstall:
    def test_missing_binary(self, runner, tmp_path):
        (tmp_path / "agentbuild.yml").write_text(
            f"install:\n  bin_dir: {(tmp_path / 'bin').as_posix()}\n"
            f"  bundle_root: {(tmp_path / 'bundled').as_posix()}\n"
        )
        result = runner.invoke(cli, ["install", "--version", "9.9.9"])
        assert result.exit_code == 1
        assert "Installation failed" in result.output
        assert "datadog-agent-build build" in result.output

    def test_success(self, runner, tmp_path):
        host = Platform.current()
        binary = tmp_path / "bin" / f"7.66.1-{host.name}" / host.binary_name
        binary.parent.mkdir(parents=True)
        binary.write_bytes(b"agent")
        (tmp_path / "agentbuild.yml").write_text(
            f"install:\n  bin_dir: {(tmp_path / 'bin').as_posix()}\n"
            f"  bundle_root: {(tmp_path / 'bundled').as_posix()}\n"
        )

        result = runner.invoke(cli, ["install", "--version", "7.66.1"])
        assert result.exit_code == 0, result.output
        assert "Datadog Agent installed" in result.output


class TestPackages:
    def test_lists_and_stages(self, runner, tmp_path):
        binary = tmp_path / "build" / "linux-arm64" / "bin" / "datadog-agent"
        binary.parent.mkdir(parents=True)
        binary.write_bytes(b"agent")

        result = runner.invoke(cli, ["packages", "--version", "1.0.0", "--stage", "stage", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [p["platform"] for p in data["packages"]] == ["linux-arm64"]
        assert len(data["optional_dependencies"]) == 6
        assert (tmp_path / "stage" / "linux-arm64" / "bin" / "datadog-agent").is_file()

    def test_stage_into_artifact_root(self, runner, tmp_path):
        binary = tmp_path / "build" / "linux-arm64" / "bin" / "datadog-agent"
        binary.parent.mkdir(parents=True)
        binary.write_bytes(b"agent")

        result = runner.invoke(cli, ["packages", "--artifacts", "build", "--stage", "build"])
        assert result.exit_code == 1
        assert "holds the built binary itself" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_stage_without_binaries(self, runner):
        result = runner.invoke(cli, ["packages", "--stage", "stage"])
        assert result.exit_code == 1
        assert "No built binaries" in result.output
