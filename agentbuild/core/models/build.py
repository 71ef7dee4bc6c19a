"""
Build models — the per-invocation input and terminal report.

A BuildConfig is created for one build and never changes while it runs.
A BuildResult is produced exactly once per build and never mutated:
like a receipt, it captures failure instead of raising it.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from agentbuild.core.models.platform import Platform


class BuildStage(str, Enum):
    """Pipeline stages, in execution order."""

    IDLE = "idle"
    ENSURING_OUTPUT_DIR = "ensuring_output_dir"
    CONTAINER_BUILD = "container_build"
    DEPENDENCY_INSTALL = "dependency_install"
    TOOL_INSTALL = "tool_install"
    BUILDING = "building"
    COPYING_ARTIFACTS = "copying_artifacts"
    SUCCESS = "success"


class BuildConfig(BaseModel):
    """Everything one platform build needs."""

    model_config = ConfigDict(frozen=True)

    platform: Platform
    version: str | None = None
    output_dir: Path
    source_dir: Path
    build_args: tuple[str, ...] = ()

    @property
    def bin_dir(self) -> Path:
        """Normalized artifact directory: ``<output_dir>/bin``."""
        return self.output_dir / "bin"

    @property
    def binary_path(self) -> Path:
        return self.bin_dir / self.platform.binary_name


class BuildResult(BaseModel):
    """Terminal report of a single platform build."""

    model_config = ConfigDict(frozen=True)

    success: bool
    platform: Platform
    output_path: str | None = None
    error: str | None = None
    duration_ms: int = 0
    stage: BuildStage = BuildStage.IDLE
    containerized: bool = False
    version: str | None = None

    @classmethod
    def ok(
        cls,
        platform: Platform,
        output_path: str | Path,
        duration_ms: int = 0,
        **kwargs,
    ) -> BuildResult:
        """Create a success result."""
        return cls(
            success=True,
            platform=platform,
            output_path=str(output_path),
            duration_ms=duration_ms,
            stage=BuildStage.SUCCESS,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        platform: Platform,
        error: str,
        duration_ms: int = 0,
        stage: BuildStage = BuildStage.IDLE,
        **kwargs,
    ) -> BuildResult:
        """Create a failure result. ``stage`` is where the build stopped."""
        return cls(
            success=False,
            platform=platform,
            error=error,
            duration_ms=duration_ms,
            stage=stage,
            **kwargs,
        )

    def summary_line(self) -> str:
        """One display line: platform name plus output path or full error text."""
        if self.success:
            return f"{self.platform.name}: {self.output_path}"
        return f"{self.platform.name}: {self.error}"

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data["platform"] = self.platform.name
        return data


class BuildOptions(BaseModel):
    """Caller-supplied options for one or more platform builds.

    ``artifact_root`` and ``source_root`` are roots: each platform builds
    into ``<root>/<platform-name>``. An explicit ``source_dir`` is used
    as-is and skips the download.
    """

    version: str | None = None
    artifact_root: Path = Path("build")
    source_root: Path = Path("source")
    source_dir: Path | None = None
    build_args: list[str] = Field(default_factory=list)
