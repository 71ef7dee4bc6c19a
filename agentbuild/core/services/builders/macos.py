"""
macOS builder profile.

macOS builds need the Xcode command line tools and an Apple host:
there is no cross toolchain prefix and no container build definition,
so a macOS target on any other OS fails with a descriptive error.
"""

from __future__ import annotations

import logging

from agentbuild.adapters.base import ExecutionContext
from agentbuild.adapters.shell.command import CommandError, run_command
from agentbuild.core.errors import BuildError
from agentbuild.core.services.builders.base import BuilderProfile

logger = logging.getLogger(__name__)


def require_xcode_tools(context: ExecutionContext) -> None:
    """``xcode-select -p`` must succeed before anything is compiled."""
    try:
        result = run_command(
            ["xcode-select", "-p"],
            cwd=context.cwd,
            base_env=context.base_env,
            timeout=30,
        )
    except CommandError as e:
        raise BuildError(
            "Xcode command line tools not found. Run: xcode-select --install"
        ) from e
    logger.debug("Xcode command line tools found at %s", result.stdout.strip())


MACOS = BuilderProfile(
    os="macos",
    label="macOS",
    precondition=require_xcode_tools,
    clang_arch_flags=True,
)
