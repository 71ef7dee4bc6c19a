"""
Build pipeline — drives one platform build from output dir to artifact.

    IDLE → ENSURING_OUTPUT_DIR → CONTAINER_BUILD                   → COPYING… → SUCCESS
                               ↘ DEPENDENCY_INSTALL → TOOL_INSTALL → BUILDING ↗

Any failure stops the pipeline at the stage it occurred in; the result
records that stage and the causing error. Nothing is retried.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable

from agentbuild.adapters.base import ExecutionContext
from agentbuild.adapters.containers.docker import DockerAdapter
from agentbuild.adapters.shell.command import RollingDisplay, run_command, stream_command
from agentbuild.core.config.loader import Settings
from agentbuild.core.errors import AgentBuildError
from agentbuild.core.models.build import BuildConfig, BuildResult, BuildStage
from agentbuild.core.models.platform import Platform
from agentbuild.core.services.builders.base import (
    BuilderProfile,
    copy_binaries_to_output,
    sanitize_go_workspace,
    select_strategy,
)
from agentbuild.core.services.builders.container import build_in_container
from agentbuild.core.services.builders.registry import get_builder
from agentbuild.core.services.environment import build_environment

logger = logging.getLogger(__name__)


def run_build(
    config: BuildConfig,
    *,
    settings: Settings | None = None,
    host: Platform | None = None,
    profile: BuilderProfile | None = None,
    which: Callable[[str], str | None] = shutil.which,
    docker: DockerAdapter | None = None,
) -> BuildResult:
    """Build one platform and report the outcome.

    Build failures are returned as a failed BuildResult, never raised.

    Args:
        config: What to build and where.
        settings: Loaded settings (defaults if None).
        host: Build host (detected if None).
        profile: Builder profile (looked up from the target OS if None).
        which: PATH lookup used for toolchain detection.
        docker: Docker adapter for the containerized path.
    """
    settings = settings or Settings()
    target = config.platform
    start = time.monotonic()
    stage = BuildStage.IDLE
    containerized = False

    def elapsed() -> int:
        return int((time.monotonic() - start) * 1000)

    try:
        host = host or Platform.current()
        profile = profile or get_builder(target.os)
        logger.info("Building Datadog Agent for %s %s...", profile.label, target.arch)

        stage = BuildStage.ENSURING_OUTPUT_DIR
        config.bin_dir.mkdir(parents=True, exist_ok=True)

        strategy = select_strategy(profile, host, target, which)
        containerized = strategy.containerized

        if containerized:
            stage = BuildStage.CONTAINER_BUILD
            output = build_in_container(config, profile, host, settings=settings, docker=docker)
        else:
            context = ExecutionContext(
                cwd=str(config.source_dir),
                env_overrides=build_environment(
                    target,
                    settings,
                    extra=profile.env_overrides(target, host, strategy.toolchain_prefix),
                ),
                timeout=settings.build.build_timeout,
            )

            stage = BuildStage.DEPENDENCY_INSTALL
            profile.check_precondition(context)
            sanitize_go_workspace(config.source_dir)
            logger.info("Installing build tools...")
            _run(settings.build.install_command, context, settings.build.command_timeout)

            stage = BuildStage.TOOL_INSTALL
            logger.info("Installing Go tools...")
            _stream(settings.build.tools_command, context, settings)

            stage = BuildStage.BUILDING
            logger.info("Building agent...")
            _stream([*settings.build.build_command, *config.build_args], context, settings)

            stage = BuildStage.COPYING_ARTIFACTS
            logger.info("Copying binaries to output directory...")
            output = copy_binaries_to_output(config, profile, settings)

    except (AgentBuildError, OSError) as e:
        logger.error("Build failed for %s: %s", target.name, e)
        return BuildResult.failure(
            target,
            str(e),
            duration_ms=elapsed(),
            stage=stage,
            containerized=containerized,
            version=config.version,
        )

    duration = elapsed()
    logger.info("Build completed successfully in %dms", duration)
    logger.info("Output: %s", output)
    return BuildResult.ok(
        target,
        output,
        duration_ms=duration,
        containerized=containerized,
        version=config.version,
    )


def _run(command: list[str], context: ExecutionContext, timeout: float | None) -> None:
    run_command(
        command,
        cwd=context.cwd,
        env_overrides=context.env_overrides,
        base_env=context.base_env,
        timeout=timeout,
    )


def _stream(command: list[str], context: ExecutionContext, settings: Settings) -> None:
    stream_command(
        command,
        cwd=context.cwd,
        env_overrides=context.env_overrides,
        base_env=context.base_env,
        timeout=context.timeout,
        display=RollingDisplay(settings.build.display_lines),
    )
