"""
Platform model — the (OS family, CPU architecture) pair every build targets.

Raw strings reported by the host (``Darwin``, ``AMD64``, ``aarch64`` …)
are normalized exactly once, in ``Platform.current()`` / ``Platform.parse()``.
Everything downstream consumes only the canonical form.
"""

from __future__ import annotations

import platform as _host
from typing import Literal

from pydantic import BaseModel, ConfigDict

from agentbuild.core.errors import UnsupportedPlatformError

OSFamily = Literal["linux", "macos", "windows"]
Arch = Literal["x86_64", "arm64"]

BINARY_BASE_NAME = "datadog-agent"

# Host-reported system names → OS family
_OS_ALIASES: dict[str, str] = {
    "linux": "linux",
    "darwin": "macos",
    "macos": "macos",
    "windows": "windows",
    "win32": "windows",
}

# Host-reported machine names → canonical arch
_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
}

# Canonical → Go toolchain naming
_GOOS = {"linux": "linux", "macos": "darwin", "windows": "windows"}
_GOARCH = {"x86_64": "amd64", "arm64": "arm64"}

# Canonical → installer os/cpu constraint naming
_PACKAGE_OS = {"linux": "linux", "macos": "darwin", "windows": "win32"}
_PACKAGE_CPU = {"x86_64": "x64", "arm64": "arm64"}


def normalize_os(name: str) -> str:
    """Map a host-reported system name to an OS family tag."""
    family = _OS_ALIASES.get(name.strip().lower())
    if family is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {name}")
    return family


def normalize_arch(name: str) -> str:
    """Map a host-reported machine name to a canonical arch."""
    arch = _ARCH_ALIASES.get(name.strip().lower())
    if arch is None:
        raise UnsupportedPlatformError(f"Unsupported architecture: {name}")
    return arch


class Platform(BaseModel):
    """An immutable build/runtime target."""

    model_config = ConfigDict(frozen=True)

    os: OSFamily
    arch: Arch

    @property
    def name(self) -> str:
        """Canonical ``os-arch`` name used across all components."""
        return f"{self.os}-{self.arch}"

    @property
    def goos(self) -> str:
        return _GOOS[self.os]

    @property
    def goarch(self) -> str:
        return _GOARCH[self.arch]

    @property
    def package_os(self) -> str:
        return _PACKAGE_OS[self.os]

    @property
    def package_cpu(self) -> str:
        return _PACKAGE_CPU[self.arch]

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def executable_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def binary_name(self) -> str:
        """File name of the agent binary on this platform."""
        return self.executable_name(BINARY_BASE_NAME)

    def executable_name(self, base: str) -> str:
        return f"{base}{self.executable_suffix}"

    def __str__(self) -> str:
        return self.name

    # ── Construction ────────────────────────────────────────────

    @classmethod
    def current(cls, system: str | None = None, machine: str | None = None) -> Platform:
        """Detect the host platform.

        Args:
            system: Override for ``platform.system()`` (tests).
            machine: Override for ``platform.machine()`` (tests).

        Raises:
            UnsupportedPlatformError: Host OS or CPU is not supported.
        """
        os_family = normalize_os(system if system is not None else _host.system())
        arch = normalize_arch(machine if machine is not None else _host.machine())
        return validate_platform(cls(os=os_family, arch=arch))

    @classmethod
    def parse(cls, name: str) -> Platform:
        """Parse a canonical ``os-arch`` name (``linux-arm64``, ``macos-x86_64``).

        The arch part may itself contain an underscore but never a hyphen,
        so the split is on the first hyphen only.
        """
        os_part, sep, arch_part = name.strip().partition("-")
        if not sep or not os_part or not arch_part:
            raise UnsupportedPlatformError(
                f"Invalid platform '{name}'. Expected <os>-<arch>, e.g. linux-x86_64"
            )
        return validate_platform(
            cls(os=normalize_os(os_part), arch=normalize_arch(arch_part))
        )


SUPPORTED_PLATFORMS: tuple[Platform, ...] = (
    Platform(os="linux", arch="x86_64"),
    Platform(os="linux", arch="arm64"),
    Platform(os="macos", arch="x86_64"),
    Platform(os="macos", arch="arm64"),
    Platform(os="windows", arch="x86_64"),
    Platform(os="windows", arch="arm64"),
)


def all_supported() -> list[Platform]:
    """The fixed enumeration used for multi-platform fan-out."""
    return list(SUPPORTED_PLATFORMS)


def validate_platform(platform: Platform) -> Platform:
    """Return *platform* unchanged, or raise if it is not supported."""
    if platform not in SUPPORTED_PLATFORMS:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform.name}")
    return platform
