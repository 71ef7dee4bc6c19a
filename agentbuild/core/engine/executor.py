"""
Engine executor — the central build orchestration loop.

Takes a build request for one or more platforms, resolves the version
once, acquires source per platform, runs the advisory dependency check,
dispatches to the platform's builder, and collects one BuildResult per
platform into a report.

Flow (per platform):
    validate → resolve version → acquire source → check deps → build → result

A failure anywhere becomes that platform's failed result; the
remaining platforms still build.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from agentbuild.adapters.containers.docker import DockerAdapter
from agentbuild.adapters.vcs.git import GitAdapter
from agentbuild.core.config.loader import Settings
from agentbuild.core.models.build import BuildConfig, BuildOptions, BuildResult
from agentbuild.core.models.platform import Platform, validate_platform
from agentbuild.core.services.builders import run_build
from agentbuild.core.services.dependency_check import check_build_dependencies
from agentbuild.core.services.source_ops import download_source, get_latest_version

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    """Result of building a set of platforms."""

    version: str | None = None
    host: Platform | None = None
    results: list[BuildResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> list[BuildResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[BuildResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_ok(self) -> bool:
        return not self.failed

    @property
    def status(self) -> str:
        if not self.failed:
            return "ok"
        if self.succeeded:
            return "partial"
        return "failed"

    def cross_os_hints(self) -> list[str]:
        """Advice for failed builds whose target OS differs from the host's."""
        if self.host is None:
            return []
        hints = []
        for result in self.failed:
            target = result.platform
            if target.os != self.host.os:
                hints.append(
                    f"Cross-compilation from {self.host.os} to {target.os} may require "
                    f"additional setup. For best results, build {target.os} binaries "
                    f"on a native {target.os} system."
                )
        return hints

    def summary_lines(self) -> list[str]:
        return [r.summary_line() for r in self.results]

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "host": self.host.name if self.host else None,
            "status": self.status,
            "total": self.total,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "hints": self.cross_os_hints(),
            "results": [r.to_dict() for r in self.results],
        }


def make_build_config(platform: Platform, options: BuildOptions, version: str | None) -> BuildConfig:
    """Per-platform paths: ``<artifact_root>/<name>`` and ``<source_root>/<name>``."""
    return BuildConfig(
        platform=platform,
        version=version,
        output_dir=Path(options.artifact_root) / platform.name,
        source_dir=Path(options.source_dir or Path(options.source_root) / platform.name),
        build_args=tuple(options.build_args),
    )


def build_for_platform(
    platform: Platform,
    options: BuildOptions | None = None,
    settings: Settings | None = None,
    *,
    host: Platform | None = None,
    git: GitAdapter | None = None,
    docker: DockerAdapter | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> BuildResult:
    """Build one platform. Never raises for build failures.

    Args:
        platform: Target platform.
        options: Version, roots and extra build args.
        settings: Loaded settings (defaults if None).
        host: Build host (detected if None).
        git: Git adapter for source acquisition.
        docker: Docker adapter for containerized builds.
        which: PATH lookup for dependency and toolchain probes.
    """
    options = options or BuildOptions()
    settings = settings or Settings()
    start = time.monotonic()

    try:
        validate_platform(platform)
        version = options.version or get_latest_version(settings)
        config = make_build_config(platform, options, version)

        logger.info("Building Datadog Agent %s for %s", version, platform.name)

        if options.source_dir is None:
            download_source(version, platform, config.source_dir, settings=settings, git=git)
        else:
            logger.info("Using existing source at %s", config.source_dir)

        check_build_dependencies(platform, which=which)
    except Exception as e:
        logger.error("Failed to build for %s: %s", platform.name, e)
        return BuildResult.failure(
            platform,
            str(e),
            duration_ms=int((time.monotonic() - start) * 1000),
            version=options.version,
        )

    try:
        return run_build(config, settings=settings, host=host, which=which, docker=docker)
    except Exception as e:
        logger.exception("Unexpected error building %s", platform.name)
        return BuildResult.failure(
            platform,
            str(e),
            duration_ms=int((time.monotonic() - start) * 1000),
            version=version,
        )


def build_for_platforms(
    platforms: Iterable[Platform],
    options: BuildOptions | None = None,
    settings: Settings | None = None,
    *,
    host: Platform | None = None,
    git: GitAdapter | None = None,
    docker: DockerAdapter | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> BuildReport:
    """Build each platform in turn; one failure never stops the others.

    The version is resolved once up front so every platform builds the
    same release.
    """
    options = options or BuildOptions()
    settings = settings or Settings()
    platforms = list(platforms)
    report = BuildReport(version=options.version, host=_detect_host(host))

    if options.version is None:
        try:
            report.version = get_latest_version(settings)
        except Exception as e:
            logger.error("Could not resolve the latest version: %s", e)
            report.results = [BuildResult.failure(p, str(e)) for p in platforms]
            return report
        options = options.model_copy(update={"version": report.version})

    for platform in platforms:
        result = build_for_platform(
            platform,
            options,
            settings,
            host=report.host,
            git=git,
            docker=docker,
            which=which,
        )
        report.results.append(result)
        marker = "✓" if result.success else "✗"
        logger.info("%s %s → %s", marker, platform.name, "ok" if result.success else "failed")

    return report


def _detect_host(host: Platform | None) -> Platform | None:
    if host is not None:
        return host
    try:
        return Platform.current()
    except Exception as e:
        logger.warning("Could not detect host platform: %s", e)
        return None
