"""
Tests for the containerized build path — script rendering and the
docker-driven pipeline, with the docker adapter replaced by a fake.
"""

import os
from pathlib import Path
from unittest.mock import patch

from conftest import which_only

from agentbuild.adapters.shell.command import CommandError
from agentbuild.core.data import dockerfile_path
from agentbuild.core.models import BuildConfig, BuildStage, Platform
from agentbuild.core.services.builders import get_builder, run_build
from agentbuild.core.services.builders.container import image_tag, render_build_script


class FakeDocker:
    """Stands in for DockerAdapter."""

    def __init__(self, available: bool = True, script_fails: bool = False, produce: bool = True):
        self.available = available
        self.script_fails = script_fails
        self.produce = produce
        self.images: list[tuple[Path, str]] = []
        self.runs: list[dict] = []

    def is_available(self) -> bool:
        return self.available

    def build_image(self, dockerfile, tag, context_dir=None, timeout=None, display=None):
        self.images.append((dockerfile, tag))

    def run(self, image, command, *, volumes=None, workdir=None, env=None, timeout=None, display=None):
        self.runs.append({"image": image, "command": command, "volumes": volumes, "workdir": workdir})
        if self.script_fails:
            raise CommandError(
                ["docker", "run", image, *command], 1,
                stderr="x86_64-w64-mingw32-gcc: error: unrecognized option",
            )
        if self.produce:
            # The output bind mount is the second volume
            host_output = Path(volumes[1][0])
            script = (Path(volumes[0][0]) / command[1]).read_text()
            binary = "datadog-agent.exe" if "GOOS=windows" in script else "datadog-agent"
            (host_output / binary).write_bytes(b"built in container")
        return ""


def make_config(tmp_path: Path, platform: Platform, build_args=()) -> BuildConfig:
    source = tmp_path / "source"
    source.mkdir(exist_ok=True)
    return BuildConfig(
        platform=platform,
        version="7.66.1",
        output_dir=tmp_path / "build" / platform.name,
        source_dir=source,
        build_args=tuple(build_args),
    )


class TestRenderBuildScript:
    def test_linux_cross_arch(self, tmp_path, linux_arm64, settings):
        script = render_build_script(make_config(tmp_path, linux_arm64), get_builder("linux"), settings)
        assert script.startswith("#!/usr/bin/env bash\nset -euo pipefail\n")
        assert "export GOOS=linux" in script
        assert "export GOARCH=arm64" in script
        assert "export CGO_ENABLED=1" in script
        assert 'if [ "$HOST_ARCH" != "arm64" ]; then' in script
        assert "export CC=aarch64-linux-gnu-gcc" in script
        assert "pip install dda" in script
        assert "dda inv install-tools" in script
        assert "dda inv agent.build --build-exclude=systemd" in script
        assert "cp bin/agent/agent /workspace/output/datadog-agent" in script

    def test_windows_always_uses_mingw(self, tmp_path, windows_x64, settings):
        script = render_build_script(make_config(tmp_path, windows_x64), get_builder("windows"), settings)
        assert "export GOOS=windows" in script
        assert "export GOARCH=amd64" in script
        assert "export CC=x86_64-w64-mingw32-gcc" in script
        assert "export CXX=x86_64-w64-mingw32-g++" in script
        assert "HOST_ARCH\" !=" not in script
        assert "cp bin/agent/agent.exe /workspace/output/datadog-agent.exe" in script
        assert "bin/trace-agent/trace-agent.exe" in script

    def test_build_args_appended(self, tmp_path, linux_x64, settings):
        config = make_config(tmp_path, linux_x64, build_args=["--flavor", "iot agent"])
        script = render_build_script(config, get_builder("linux"), settings)
        assert "dda inv agent.build --build-exclude=systemd --flavor 'iot agent'" in script

    def test_companions_are_optional(self, tmp_path, linux_x64, settings):
        script = render_build_script(make_config(tmp_path, linux_x64), get_builder("linux"), settings)
        assert "if [ -f bin/system-probe/system-probe ]; then" in script


class TestContainerPipeline:
    def test_windows_on_macos_uses_container(self, tmp_path, macos_arm64, windows_x64, settings):
        config = make_config(tmp_path, windows_x64)
        docker = FakeDocker()

        result = run_build(
            config, settings=settings, host=macos_arm64, which=which_only(), docker=docker,
        )

        assert result.success, result.error
        assert result.containerized
        assert result.output_path == str(config.binary_path.resolve())
        assert docker.images[0][1] == "datadog-agent-builder:windows"
        assert docker.images[0][0].name == "windows.Dockerfile"

        run = docker.runs[0]
        assert run["command"] == ["bash", "docker-build.sh"]
        assert run["workdir"] == "/workspace/source"
        assert run["volumes"] == [
            (config.source_dir, "/workspace/source"),
            (config.bin_dir, "/workspace/output"),
        ]
        script = config.source_dir / "docker-build.sh"
        assert script.exists()
        if os.name != "nt":
            assert os.access(script, os.X_OK)

    def test_script_failure_is_reported(self, tmp_path, macos_arm64, windows_x64, settings):
        config = make_config(tmp_path, windows_x64)
        result = run_build(
            config, settings=settings, host=macos_arm64, which=which_only(),
            docker=FakeDocker(script_fails=True),
        )
        assert not result.success
        assert result.containerized
        assert result.stage == BuildStage.CONTAINER_BUILD
        assert "unrecognized option" in result.error
        assert not config.binary_path.exists()

    def test_missing_binary_after_container(self, tmp_path, macos_arm64, linux_x64, settings):
        config = make_config(tmp_path, linux_x64)
        result = run_build(
            config, settings=settings, host=macos_arm64, which=which_only(),
            docker=FakeDocker(produce=False),
        )
        assert not result.success
        assert "produced no binary" in result.error

    def test_docker_unavailable(self, tmp_path, macos_arm64, linux_x64, settings):
        docker = FakeDocker(available=False)
        result = run_build(
            make_config(tmp_path, linux_x64), settings=settings, host=macos_arm64,
            which=which_only(), docker=docker,
        )
        assert not result.success
        assert "Docker is required" in result.error
        assert docker.images == []

    def test_windows_arm64_has_no_container_toolchain(self, tmp_path, macos_arm64, settings):
        docker = FakeDocker()
        result = run_build(
            make_config(tmp_path, Platform(os="windows", arch="arm64")), settings=settings,
            host=macos_arm64, which=which_only(), docker=docker,
        )
        assert not result.success
        assert result.containerized
        assert "aarch64-w64-mingw32-gcc" in result.error
        assert docker.images == []
        assert docker.runs == []

    def test_same_os_never_uses_docker(self, tmp_path, linux_x64, linux_arm64, settings):
        docker = FakeDocker()
        with patch("agentbuild.core.services.builders.pipeline.run_command"), \
                patch("agentbuild.core.services.builders.pipeline.stream_command"):
            run_build(
                make_config(tmp_path, linux_arm64), settings=settings, host=linux_x64,
                which=which_only(), docker=docker,
            )
        assert docker.images == []
        assert docker.runs == []


class TestPackagedDefinitions:
    def test_dockerfiles_ship_with_package(self):
        for os_family in ("linux", "windows"):
            path = dockerfile_path(get_builder(os_family).dockerfile)
            assert path.is_file()
            assert "FROM golang" in path.read_text()

    def test_image_tag(self, settings):
        assert image_tag(get_builder("linux"), settings) == "datadog-agent-builder:linux"
