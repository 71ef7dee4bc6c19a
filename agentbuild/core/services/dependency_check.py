"""
Dependency check — advisory probe for host build tools.

Read-only — uses shutil.which only. A missing tool is a warning, never
an error: the agent's own tooling may install it, and the build step
that actually needs it reports the real failure.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from agentbuild.core.models.platform import Platform

logger = logging.getLogger(__name__)

_COMMON_TOOLS = ["go", "make", "gcc", "git", "cmake"]

REQUIRED_TOOLS: dict[str, list[str]] = {
    "linux": _COMMON_TOOLS,
    "macos": [*_COMMON_TOOLS, "xcode-select"],
    "windows": _COMMON_TOOLS,
}


def check_build_dependencies(
    platform: Platform,
    which: Callable[[str], str | None] = shutil.which,
) -> list[str]:
    """Probe the tool list for *platform*'s OS family.

    Args:
        platform: Build target; only its OS family matters.
        which: PATH lookup (injectable for tests).

    Returns:
        Names of the tools not found on PATH, in probe order.
    """
    tools = REQUIRED_TOOLS.get(platform.os, _COMMON_TOOLS)
    logger.info("Checking build dependencies for %s...", platform.name)

    missing = []
    for tool in tools:
        if which(tool) is None:
            logger.warning("%s not found in PATH", tool)
            missing.append(tool)
        else:
            logger.debug("found %s", tool)

    if missing:
        logger.warning(
            "Missing build dependencies: %s. The build may fail.",
            ", ".join(missing),
        )
    return missing
