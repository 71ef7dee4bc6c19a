"""Adapters — tool bindings for external integrations.

Public re-exports for convenient access.
"""

from agentbuild.adapters.base import Adapter, ExecutionContext
from agentbuild.adapters.containers.docker import DockerAdapter
from agentbuild.adapters.shell.command import (
    CommandError,
    CommandResult,
    CommandTimeout,
    RollingDisplay,
    run_command,
    stream_command,
)
from agentbuild.adapters.vcs.git import GitAdapter

__all__ = [
    "Adapter",
    "CommandError",
    "CommandResult",
    "CommandTimeout",
    "DockerAdapter",
    "ExecutionContext",
    "GitAdapter",
    "RollingDisplay",
    "run_command",
    "stream_command",
]
