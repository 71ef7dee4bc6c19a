"""Platform builders — per-OS profiles and the shared build pipeline."""

from agentbuild.core.services.builders.base import (
    BuilderProfile,
    BuildStrategy,
    copy_binaries_to_output,
    sanitize_go_workspace,
    select_strategy,
)
from agentbuild.core.services.builders.pipeline import run_build
from agentbuild.core.services.builders.registry import BUILDER_PROFILES, get_builder

__all__ = [
    "BUILDER_PROFILES",
    "BuildStrategy",
    "BuilderProfile",
    "copy_binaries_to_output",
    "get_builder",
    "run_build",
    "sanitize_go_workspace",
    "select_strategy",
]
