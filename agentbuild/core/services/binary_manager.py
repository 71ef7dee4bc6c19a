"""
Binary manager — locate an installed agent binary and install the wrapper.

Lookup order for the host platform:

    1. bundled per-platform package   <bundle_root>/<platform>/bin/<binary>
    2. versioned install              <bin_dir>/<version>-<platform>/<binary>

Nothing here downloads or builds a binary. A miss is reported with the
path that was expected, so the user knows where to put one.
"""

from __future__ import annotations

import logging
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path

from agentbuild.core.config.loader import Settings
from agentbuild.core.errors import BinaryNotFoundError
from agentbuild.core.models.platform import BINARY_BASE_NAME, Platform
from agentbuild.core.services.packaging import bundled_binary_path
from agentbuild.core.services.source_ops import get_latest_version

logger = logging.getLogger(__name__)

# Exported by the wrapper shim when installed for a specific version
VERSION_ENV = "AGENTBUILD_AGENT_VERSION"

_PACKAGE_DIR = Path(__file__).resolve().parents[2]


@dataclass
class Installation:
    """Outcome of ``BinaryManager.install``."""

    binary: Path
    wrapper: Path
    version: str | None = None


class BinaryManager:
    """Resolves the agent binary for the running host."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        bin_dir: Path | None = None,
        bundle_root: Path | None = None,
        platform: Platform | None = None,
    ):
        self._settings = settings or Settings()
        install = self._settings.install
        self.bin_dir = Path(bin_dir or Path(install.bin_dir).expanduser())
        if bundle_root is not None:
            self.bundle_root = Path(bundle_root)
        elif install.bundle_root:
            self.bundle_root = Path(install.bundle_root).expanduser()
        else:
            self.bundle_root = _PACKAGE_DIR / "bundled"
        self._platform = platform

    @property
    def platform(self) -> Platform:
        if self._platform is None:
            self._platform = Platform.current()
        return self._platform

    def versioned_path(self, version: str, platform: Platform | None = None) -> Path:
        platform = platform or self.platform
        return self.bin_dir / f"{version}-{platform.name}" / platform.binary_name

    # ── Lookup ──────────────────────────────────────────────────

    def ensure_binary(self, version: str | None = None, platform: Platform | None = None) -> Path:
        """Return the path of an installed binary.

        Args:
            version: Versioned install to use; latest release if None.
            platform: Target platform (host if None).

        Raises:
            BinaryNotFoundError: Neither location holds a binary.
            SourceError: *version* is None and the latest release
                cannot be resolved.
        """
        path, _ = self._resolve(version, platform)
        return path

    def _resolve(self, version: str | None, platform: Platform | None) -> tuple[Path, str | None]:
        platform = platform or self.platform

        bundled = bundled_binary_path(self.bundle_root, platform)
        if bundled.is_file():
            logger.debug("Using bundled binary: %s", bundled)
            return bundled, version

        target_version = version or get_latest_version(self._settings)
        path = self.versioned_path(target_version, platform)
        if path.is_file():
            logger.debug("Binary already exists: %s", path)
            return path, target_version

        raise BinaryNotFoundError(
            f"No Datadog Agent binary for {platform.name} (version {target_version}). "
            f"Expected it at {path}",
            expected_path=str(path),
        )

    # ── Wrapper ─────────────────────────────────────────────────

    def wrapper_path(self) -> Path:
        name = f"{BINARY_BASE_NAME}.cmd" if self.platform.is_windows else BINARY_BASE_NAME
        return self.bin_dir / name

    def create_binary_wrapper(self, force: bool = False, version: str | None = None) -> Path:
        """Write the ``datadog-agent`` launcher into ``bin_dir``.

        An existing launcher is kept unless *force* is set.
        """
        path = self.wrapper_path()
        if path.exists() and not force:
            logger.debug("Wrapper already exists: %s", path)
            return path

        path.parent.mkdir(parents=True, exist_ok=True)
        if self.platform.is_windows:
            path.write_text(_windows_wrapper(version), encoding="utf-8", newline="\r\n")
        else:
            path.write_text(_posix_wrapper(version), encoding="utf-8", newline="\n")
            path.chmod(0o755)

        logger.debug("Created binary wrapper: %s", path)
        return path

    def install(self, version: str | None = None, force: bool = False) -> Installation:
        """Resolve the binary, then create the wrapper that launches it."""
        logger.info("Installing Datadog Agent binary for %s...", self.platform.name)
        binary, resolved = self._resolve(version, None)
        wrapper = self.create_binary_wrapper(force=force, version=resolved)
        logger.info("Installation completed successfully")
        return Installation(binary=binary, wrapper=wrapper, version=resolved)


def _posix_wrapper(version: str | None) -> str:
    lines = ["#!/bin/sh"]
    if version:
        lines.append(f"{VERSION_ENV}={shlex.quote(version)}")
        lines.append(f"export {VERSION_ENV}")
    lines.append(f'exec {shlex.quote(sys.executable)} -m agentbuild.wrapper "$@"')
    return "\n".join(lines) + "\n"


def _windows_wrapper(version: str | None) -> str:
    lines = ["@echo off"]
    if version:
        lines.append(f"set \"{VERSION_ENV}={version}\"")
    lines.append(f"\"{sys.executable}\" -m agentbuild.wrapper %*")
    lines.append("exit /b %ERRORLEVEL%")
    return "\n".join(lines) + "\n"


# ── Module-level shortcuts ──────────────────────────────────────


def ensure_binary(version: str | None = None, platform: Platform | None = None) -> Path:
    return BinaryManager().ensure_binary(version, platform)


def create_binary_wrapper(force: bool = False) -> Path:
    return BinaryManager().create_binary_wrapper(force=force)


def install(version: str | None = None, force: bool = False) -> Installation:
    return BinaryManager().install(version, force)
