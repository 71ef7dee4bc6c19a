"""
Tests for the build environment map.
"""

import os
from pathlib import Path

from agentbuild.core.config.loader import BuildSettings, Settings
from agentbuild.core.services.environment import build_environment, resolve_gopath, toolchain_env


class TestBuildEnvironment:
    def test_cross_arch_toolchain(self, linux_arm64, settings):
        base = {"PATH": "/usr/bin", "GOPATH": "/home/ci/go"}
        env = build_environment(
            linux_arm64, settings, toolchain_prefix="aarch64-linux-gnu-", base_env=base,
        )
        assert env["GOOS"] == "linux"
        assert env["GOARCH"] == "arm64"
        assert env["CGO_ENABLED"] == "1"
        assert env["CC"] == "aarch64-linux-gnu-gcc"
        assert env["CXX"] == "aarch64-linux-gnu-g++"

    def test_path_extended_with_gopath_bin(self, linux_x64, settings):
        base = {"PATH": "/usr/bin", "GOPATH": "/home/ci/go"}
        env = build_environment(linux_x64, settings, base_env=base)
        assert env["PATH"] == os.pathsep.join([str(Path("/home/ci/go") / "bin"), "/usr/bin"])
        assert env["GOPATH"] == "/home/ci/go"

    def test_no_toolchain_no_cc(self, linux_x64, settings):
        env = build_environment(linux_x64, settings, base_env={"PATH": "/usr/bin"})
        assert "CC" not in env
        assert "CXX" not in env

    def test_windows_target_go_names(self, windows_x64, settings):
        env = build_environment(windows_x64, settings, base_env={})
        assert env["GOOS"] == "windows"
        assert env["GOARCH"] == "amd64"

    def test_extra_applied_last(self, linux_x64, settings):
        env = build_environment(
            linux_x64, settings, base_env={}, extra={"CGO_ENABLED": "0", "FOO": "bar"},
        )
        assert env["CGO_ENABLED"] == "0"
        assert env["FOO"] == "bar"

    def test_never_mutates_process_env(self, linux_arm64, settings):
        before = dict(os.environ)
        build_environment(linux_arm64, settings, toolchain_prefix="aarch64-linux-gnu-")
        assert dict(os.environ) == before

    def test_never_mutates_base(self, linux_x64, settings):
        base = {"PATH": "/usr/bin"}
        build_environment(linux_x64, settings, base_env=base)
        assert base == {"PATH": "/usr/bin"}


class TestGopath:
    def test_configured_wins(self):
        settings = Settings(build=BuildSettings(gopath="/opt/go"))
        assert resolve_gopath(settings, {"GOPATH": "/home/ci/go"}) == "/opt/go"

    def test_inherited(self, settings):
        assert resolve_gopath(settings, {"GOPATH": "/home/ci/go"}) == "/home/ci/go"

    def test_home_default(self, settings, monkeypatch, tmp_path):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert resolve_gopath(settings, {}) == str(tmp_path / "go")


def test_toolchain_env_empty_prefix():
    assert toolchain_env(None) == {}
    assert toolchain_env("") == {}
