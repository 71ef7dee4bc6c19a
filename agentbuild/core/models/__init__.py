"""
Domain models — Pydantic types for the build pipeline.

All models are re-exported here for convenient access:

    from agentbuild.core.models import Platform, BuildConfig, BuildResult
"""

from agentbuild.core.models.build import (
    BuildConfig,
    BuildOptions,
    BuildResult,
    BuildStage,
)
from agentbuild.core.models.platform import (
    SUPPORTED_PLATFORMS,
    Platform,
    all_supported,
    validate_platform,
)

__all__ = [
    # build.py
    "BuildConfig",
    "BuildOptions",
    "BuildResult",
    "BuildStage",
    # platform.py
    "Platform",
    "SUPPORTED_PLATFORMS",
    "all_supported",
    "validate_platform",
]
