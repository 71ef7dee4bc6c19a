"""
Tests for the platform model — normalization, naming, and the supported set.
"""

import pytest
from pydantic import ValidationError

from agentbuild.core.errors import UnsupportedPlatformError
from agentbuild.core.models.platform import (
    SUPPORTED_PLATFORMS,
    Platform,
    all_supported,
    normalize_arch,
    normalize_os,
    validate_platform,
)


class TestSupportedSet:
    def test_six_platforms(self):
        assert len(all_supported()) == 6

    def test_canonical_names_unique(self):
        names = [p.name for p in all_supported()]
        assert len(set(names)) == len(names)

    def test_stable_order(self):
        assert [p.name for p in all_supported()] == [
            "linux-x86_64",
            "linux-arm64",
            "macos-x86_64",
            "macos-arm64",
            "windows-x86_64",
            "windows-arm64",
        ]

    def test_all_supported_returns_copy(self):
        platforms = all_supported()
        platforms.clear()
        assert len(all_supported()) == 6

    def test_validate_accepts_supported(self):
        for platform in SUPPORTED_PLATFORMS:
            assert validate_platform(platform) is platform


class TestCurrent:
    @pytest.mark.parametrize(
        "system,machine,expected",
        [
            ("Linux", "x86_64", "linux-x86_64"),
            ("Linux", "aarch64", "linux-arm64"),
            ("Darwin", "arm64", "macos-arm64"),
            ("Darwin", "x86_64", "macos-x86_64"),
            ("Windows", "AMD64", "windows-x86_64"),
            ("Windows", "ARM64", "windows-arm64"),
        ],
    )
    def test_normalizes_host_strings(self, system, machine, expected):
        assert Platform.current(system=system, machine=machine).name == expected

    def test_unsupported_os(self):
        with pytest.raises(UnsupportedPlatformError, match="FreeBSD"):
            Platform.current(system="FreeBSD", machine="amd64")

    def test_unsupported_arch(self):
        with pytest.raises(UnsupportedPlatformError, match="ppc64le"):
            Platform.current(system="Linux", machine="ppc64le")

    def test_detects_real_host(self):
        # Whatever CI runs on must be one of the supported platforms
        assert Platform.current() in SUPPORTED_PLATFORMS


class TestParse:
    def test_canonical(self):
        p = Platform.parse("linux-arm64")
        assert p.os == "linux"
        assert p.arch == "arm64"

    def test_arch_with_underscore(self):
        assert Platform.parse("macos-x86_64") == Platform(os="macos", arch="x86_64")

    def test_legacy_aliases(self):
        assert Platform.parse("darwin-x64").name == "macos-x86_64"
        assert Platform.parse("win32-x64").name == "windows-x86_64"

    @pytest.mark.parametrize("name", ["linux", "", "-arm64", "linux-", "solaris-x86_64", "linux-mips"])
    def test_invalid(self, name):
        with pytest.raises(UnsupportedPlatformError):
            Platform.parse(name)

    def test_normalize_helpers(self):
        assert normalize_os(" Darwin ") == "macos"
        assert normalize_arch("AArch64") == "arm64"


class TestDerivedNames:
    def test_go_names(self):
        p = Platform(os="macos", arch="x86_64")
        assert p.goos == "darwin"
        assert p.goarch == "amd64"

    def test_package_constraints(self):
        p = Platform(os="windows", arch="x86_64")
        assert p.package_os == "win32"
        assert p.package_cpu == "x64"
        assert Platform(os="macos", arch="arm64").package_os == "darwin"

    def test_binary_name(self):
        assert Platform(os="windows", arch="arm64").binary_name == "datadog-agent.exe"
        assert Platform(os="linux", arch="arm64").binary_name == "datadog-agent"
        assert Platform(os="macos", arch="arm64").binary_name == "datadog-agent"

    def test_executable_name(self):
        assert Platform(os="windows", arch="x86_64").executable_name("trace-agent") == "trace-agent.exe"

    def test_str_is_name(self):
        assert str(Platform(os="linux", arch="x86_64")) == "linux-x86_64"

    def test_immutable(self):
        p = Platform(os="linux", arch="x86_64")
        with pytest.raises(ValidationError):
            p.os = "macos"

    def test_rejects_unknown_values(self):
        with pytest.raises(ValidationError):
            Platform(os="plan9", arch="x86_64")
