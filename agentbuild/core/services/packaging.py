"""
Packaging boundary — map the artifact root onto distributable packages.

Contract with the build side:

    <artifact_root>/<os>-<arch>/bin/<datadog-agent | datadog-agent.exe>

Every platform directory that holds its binary becomes one
per-platform package with OS/CPU install constraints; the umbrella
package depends on all of them optionally, pinned to its own version,
so an installer fetches only the one matching the host.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from agentbuild.core.config.loader import Settings
from agentbuild.core.errors import PackagingError
from agentbuild.core.models.platform import Platform, all_supported

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformPackage:
    """One per-platform binary package."""

    name: str
    version: str
    platform: Platform
    binary: Path                        # Built binary under the artifact root

    @property
    def os(self) -> list[str]:
        return [self.platform.package_os]

    @property
    def cpu(self) -> list[str]:
        return [self.platform.package_cpu]

    @property
    def description(self) -> str:
        return f"Datadog Agent binary for {self.platform.package_os} {self.platform.package_cpu}"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "platform": self.platform.name,
            "description": self.description,
            "os": self.os,
            "cpu": self.cpu,
            "binary": str(self.binary),
        }


def artifact_binary_path(artifact_root: Path, platform: Platform) -> Path:
    return Path(artifact_root) / platform.name / "bin" / platform.binary_name


def platform_package(
    platform: Platform,
    artifact_root: Path,
    version: str,
    settings: Settings | None = None,
) -> PlatformPackage:
    """Describe the package for *platform*, whether or not it was built."""
    settings = settings or Settings()
    return PlatformPackage(
        name=settings.packaging.package_name(platform.name),
        version=version,
        platform=platform,
        binary=artifact_binary_path(artifact_root, platform),
    )


def discover_platform_packages(
    artifact_root: Path,
    version: str,
    settings: Settings | None = None,
) -> list[PlatformPackage]:
    """Packages for every supported platform whose binary is present.

    Returns:
        Packages in supported-platform order.
    """
    packages = []
    for platform in all_supported():
        package = platform_package(platform, artifact_root, version, settings)
        if package.binary.is_file():
            packages.append(package)
        else:
            logger.debug("No binary for %s at %s", platform.name, package.binary)
    logger.info("Found %d platform package(s) under %s", len(packages), artifact_root)
    return packages


def umbrella_optional_dependencies(
    version: str,
    settings: Settings | None = None,
) -> dict[str, str]:
    """Optional dependencies of the umbrella package: every platform package at *version*."""
    settings = settings or Settings()
    return {
        settings.packaging.package_name(platform.name): version
        for platform in all_supported()
    }


def stage_platform_package(package: PlatformPackage, dest_root: Path) -> Path:
    """Copy *package*'s binary to ``<dest_root>/<platform>/bin/``.

    Raises:
        PackagingError: The binary was never built, or *dest_root*
            would overwrite it in place.
    """
    if not package.binary.is_file():
        raise PackagingError(f"Binary not found at {package.binary}")

    dest = artifact_binary_path(dest_root, package.platform)
    if dest.resolve() == package.binary.resolve():
        raise PackagingError(
            f"Staging directory {dest_root} holds the built binary itself ({package.binary}); "
            "choose a different staging directory"
        )
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(package.binary, dest)
    logger.info("Created package: %s", package.name)
    return dest


def bundled_binary_path(root: Path, platform: Platform) -> Path:
    """Absolute path of the binary an installed per-platform package provides."""
    return artifact_binary_path(root, platform).resolve()
