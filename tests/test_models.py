"""
Tests for build models — BuildConfig paths and BuildResult reporting.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from agentbuild.core.models import BuildConfig, BuildResult, BuildStage, Platform


class TestBuildConfig:
    def test_bin_dir_and_binary_path(self, tmp_path: Path):
        config = BuildConfig(
            platform=Platform(os="windows", arch="x86_64"),
            version="7.66.1",
            output_dir=tmp_path / "build" / "windows-x86_64",
            source_dir=tmp_path / "source",
        )
        assert config.bin_dir == tmp_path / "build" / "windows-x86_64" / "bin"
        assert config.binary_path.name == "datadog-agent.exe"

    def test_frozen(self, tmp_path: Path):
        config = BuildConfig(
            platform=Platform(os="linux", arch="x86_64"),
            output_dir=tmp_path,
            source_dir=tmp_path,
        )
        with pytest.raises(ValidationError):
            config.version = "7.0.0"


class TestBuildResult:
    def test_ok(self, linux_x64):
        result = BuildResult.ok(linux_x64, "/out/datadog-agent", duration_ms=1200)
        assert result.success
        assert result.stage == BuildStage.SUCCESS
        assert result.output_path == "/out/datadog-agent"
        assert result.error is None

    def test_failure_records_stage(self, linux_x64):
        result = BuildResult.failure(linux_x64, "boom", stage=BuildStage.BUILDING)
        assert not result.success
        assert result.stage == BuildStage.BUILDING

    def test_failure_summary_has_platform_and_verbatim_error(self, linux_arm64):
        error = "Command failed with exit code 2: dda inv agent.build\nundefined: foo"
        line = BuildResult.failure(linux_arm64, error).summary_line()
        assert "linux-arm64" in line
        assert error in line

    def test_success_summary_has_output_path(self, linux_x64):
        line = BuildResult.ok(linux_x64, "/out/datadog-agent").summary_line()
        assert line == "linux-x86_64: /out/datadog-agent"

    def test_to_dict(self, macos_arm64):
        data = BuildResult.failure(macos_arm64, "nope", stage=BuildStage.TOOL_INSTALL).to_dict()
        assert data["platform"] == "macos-arm64"
        assert data["stage"] == "tool_install"
        assert data["success"] is False

    def test_frozen(self, linux_x64):
        result = BuildResult.ok(linux_x64, "/out")
        with pytest.raises(ValidationError):
            result.success = False
