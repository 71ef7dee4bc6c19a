"""
Adapter base — the contract between the build pipeline and external tools.

The pipeline never shells out to git or docker directly; it goes through
an adapter, which owns the CLI invocation details and runs everything
through the build executor. Tests swap adapters for fakes.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class ExecutionContext(BaseModel):
    """Where and how a command runs: working dir, env overrides, timeout.

    ``base_env`` is the environment snapshot the overrides are applied
    to; None means a copy of the current process environment.
    """

    model_config = ConfigDict(frozen=True)

    cwd: str | None = None
    env_overrides: dict[str, str] = Field(default_factory=dict)
    base_env: dict[str, str] | None = None
    timeout: float | None = None


class Adapter(ABC):
    """Abstract base class for tool adapters.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name and binary
        3. Override is_available if presence on PATH is not enough
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'git', 'docker')."""

    @property
    @abstractmethod
    def binary(self) -> str:
        """Executable the adapter drives."""

    def is_available(self) -> bool:
        """Check if the underlying tool is installed. Fast, never raises."""
        return shutil.which(self.binary) is not None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
