"""
Runtime wrapper — the ``datadog-agent`` command.

Resolves the installed agent binary for this host and hands over to it:
arguments, stdio and environment pass through unchanged, and the
agent's exit code becomes ours. On POSIX the process is replaced via
``exec``; Windows has no exec, so the binary runs as a child.

Usage:
    datadog-agent [agent args...]
    python -m agentbuild.wrapper [agent args...]
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys

from agentbuild.core.config.loader import load_settings
from agentbuild.core.errors import AgentBuildError
from agentbuild.core.observability.logging_config import debug_requested, setup_logging
from agentbuild.core.services.binary_manager import VERSION_ENV, BinaryManager

logger = logging.getLogger(__name__)

_IS_WINDOWS = os.name == "nt"


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    # Keep the agent's own output clean unless debugging
    setup_logging(level="DEBUG" if debug_requested() else "WARNING")

    try:
        manager = BinaryManager(load_settings())
        binary = manager.ensure_binary(os.environ.get(VERSION_ENV) or None)
    except AgentBuildError as e:
        sys.stderr.write(f"Failed to run datadog-agent: {e}\n")
        return 1

    logger.debug("Running %s %s", binary, " ".join(args))

    if _IS_WINDOWS:
        try:
            completed = subprocess.run([str(binary), *args])
        except OSError as e:
            sys.stderr.write(f"Failed to run datadog-agent: {e}\n")
            return 1
        return completed.returncode

    try:
        os.execv(binary, [str(binary), *args])
    except OSError as e:
        sys.stderr.write(f"Failed to run datadog-agent: {e}\n")
        return 1
    return 0  # not reached: execv replaces the process


if __name__ == "__main__":
    sys.exit(main())
