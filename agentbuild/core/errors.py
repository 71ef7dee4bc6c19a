"""
Error taxonomy — every failure the build pipeline can report.

Builders and the orchestrator convert these into failed BuildResults;
the CLI converts them into exit code 1.
"""

from __future__ import annotations


class AgentBuildError(Exception):
    """Base class for all build/packaging errors."""


class UnsupportedPlatformError(AgentBuildError):
    """Raised for an OS/arch combination outside the supported set."""


class SourceError(AgentBuildError):
    """Raised when upstream source or release metadata cannot be acquired."""


class BuildError(AgentBuildError):
    """Raised when a build step fails outside of a command invocation.

    Covers unmet preconditions, missing artifacts after a reported
    successful build, and containerized build setup failures.
    """


class BinaryNotFoundError(AgentBuildError):
    """Raised when no installed binary exists for the requested platform."""

    def __init__(self, message: str, expected_path: str = ""):
        super().__init__(message)
        self.expected_path = expected_path


class PackagingError(AgentBuildError):
    """Raised when the artifact root does not satisfy the packaging contract."""
