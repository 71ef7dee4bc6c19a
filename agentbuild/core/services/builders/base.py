"""
Builder base — per-OS capability records and the steps they share.

Builder model
─────────────
There is no builder class hierarchy. Each supported OS family is
described by one frozen ``BuilderProfile``:

  cross_prefixes   target arch → GNU toolchain prefix for cross builds
  dockerfile       packaged container build definition, or None
  container_arches target arches the container image has a toolchain for
  precondition     host check run before any build command (macOS: Xcode)
  extra_env        OS-specific environment overrides
  clang_arch_flags cross-arch builds pass `-arch` to the host clang

The shared pipeline (``pipeline.run_build``) reads the profile; adding
an OS means adding a profile, not a subclass.

Strategy selection
──────────────────
  same OS, same arch           → native
  same OS, other arch          → native, cross toolchain CC/CXX if found
  other OS, toolchain on PATH  → cross (native run with the cross CC/CXX)
  other OS, no toolchain       → container
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from agentbuild.adapters.base import ExecutionContext
from agentbuild.core.config.loader import Settings
from agentbuild.core.errors import BuildError
from agentbuild.core.models.build import BuildConfig
from agentbuild.core.models.platform import Platform
from agentbuild.core.services.environment import toolchain_env

logger = logging.getLogger(__name__)

StrategyKind = Literal["native", "cross", "container"]

# go.work godebug keys rejected by older Go toolchains
UNSUPPORTED_GODEBUG = ("tlskyber", "tls13keys")


# ── Data Models ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class BuilderProfile:
    """Capabilities of one OS family's builder."""

    os: str
    label: str                                   # Human name: "macOS"
    cross_prefixes: Mapping[str, str] = field(default_factory=dict)
    dockerfile: str | None = None                # Under core/data/docker/
    container_arches: tuple[str, ...] = ("x86_64", "arm64")
    precondition: Callable[[ExecutionContext], None] | None = None
    extra_env: Mapping[str, str] = field(default_factory=dict)
    clang_arch_flags: bool = False               # Cross-arch via `-arch` (Apple clang)

    def artifact_name(self, base: str) -> str:
        """File name of an executable called *base* on this OS."""
        return f"{base}.exe" if self.os == "windows" else base

    def toolchain_prefix(self, target: Platform) -> str | None:
        return self.cross_prefixes.get(target.arch)

    def env_overrides(
        self,
        target: Platform,
        host: Platform,
        toolchain: str | None = None,
    ) -> dict[str, str]:
        """OS-specific overrides layered over the base build environment."""
        env = toolchain_env(toolchain)
        if self.clang_arch_flags and toolchain is None and host.arch != target.arch:
            flag = f"-arch {target.arch}"
            env.update(CGO_CFLAGS=flag, CGO_CXXFLAGS=flag, CGO_LDFLAGS=flag)
        env.update(self.extra_env)
        return env

    def check_precondition(self, context: ExecutionContext) -> None:
        if self.precondition is not None:
            self.precondition(context)


@dataclass(frozen=True)
class BuildStrategy:
    """How one build is carried out."""

    kind: StrategyKind
    toolchain_prefix: str | None = None

    @property
    def containerized(self) -> bool:
        return self.kind == "container"


# ── Strategy ────────────────────────────────────────────────────────


def select_strategy(
    profile: BuilderProfile,
    host: Platform,
    target: Platform,
    which: Callable[[str], str | None] = shutil.which,
) -> BuildStrategy:
    """Pick native, cross-toolchain or containerized execution.

    A same-OS build is never containerized.
    """
    prefix = profile.toolchain_prefix(target)
    has_toolchain = bool(prefix) and which(f"{prefix}gcc") is not None

    if host.os == target.os:
        if host.arch == target.arch:
            return BuildStrategy("native")
        if has_toolchain:
            logger.info("Cross-compiling %s -> %s with %sgcc", host.arch, target.arch, prefix)
            return BuildStrategy("native", prefix)
        logger.warning(
            "No %s cross toolchain found for %s; building with the host compiler",
            target.arch, target.name,
        )
        return BuildStrategy("native")

    if has_toolchain:
        logger.info("Cross-compiling %s on %s with %sgcc", target.name, host.name, prefix)
        return BuildStrategy("cross", prefix)

    logger.info("Using Docker for cross-compilation of %s on %s...", target.name, host.name)
    return BuildStrategy("container")


# ── Shared steps ────────────────────────────────────────────────────


def sanitize_go_workspace(source_dir: Path) -> bool:
    """Drop ``godebug`` lines for keys older Go toolchains reject.

    Returns:
        True if ``go.work`` was rewritten.
    """
    go_work = source_dir / "go.work"
    if not go_work.is_file():
        logger.debug("No go.work file in %s", source_dir)
        return False

    content = go_work.read_text(encoding="utf-8")
    keys = "|".join(re.escape(key) for key in UNSUPPORTED_GODEBUG)
    pattern = re.compile(rf"^[ \t]*godebug[ \t]+(?:{keys})[ \t]*=.*(?:\r?\n|$)", re.MULTILINE)
    cleaned, count = pattern.subn("", content)
    if not count:
        return False

    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    go_work.write_text(cleaned, encoding="utf-8")
    logger.debug("Removed %d unsupported godebug directive(s) from go.work", count)
    return True


def copy_binaries_to_output(
    config: BuildConfig,
    profile: BuilderProfile,
    settings: Settings,
) -> Path:
    """Promote build outputs into ``<output>/bin``.

    The agent binary is required and renamed to its published name;
    companion binaries are copied when the build produced them.

    Raises:
        BuildError: The agent binary is missing after the build.
    """
    artifacts = config.source_dir / settings.build.artifact_dir
    agent = settings.build.agent_binary
    config.bin_dir.mkdir(parents=True, exist_ok=True)

    source = artifacts / agent / profile.artifact_name(agent)
    if not source.is_file():
        raise BuildError(f"Build finished but the agent binary is missing: {source}")

    shutil.copy2(source, config.binary_path)
    logger.debug("Copied %s -> %s", source, config.binary_path)

    for name in settings.build.companions:
        filename = profile.artifact_name(name)
        companion = artifacts / name / filename
        if not companion.is_file():
            logger.debug("Companion binary %s not built, skipping", name)
            continue
        shutil.copy2(companion, config.bin_dir / filename)
        logger.debug("Copied %s to output directory", filename)

    return config.binary_path.resolve()
