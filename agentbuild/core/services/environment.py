"""
Build environment — the variable overrides one platform build runs with.

The map is computed fresh for every build from a snapshot of the base
environment and handed to the executor as overrides. ``os.environ`` is
read, never written.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from agentbuild.core.config.loader import Settings
from agentbuild.core.models.platform import Platform

logger = logging.getLogger(__name__)


def resolve_gopath(settings: Settings, base_env: Mapping[str, str] | None = None) -> str:
    """GOPATH for the build: configured value, then the inherited one, then ``~/go``."""
    env = os.environ if base_env is None else base_env
    if settings.build.gopath:
        return settings.build.gopath
    if env.get("GOPATH"):
        return env["GOPATH"]
    return str(Path.home() / "go")


def toolchain_env(prefix: str | None) -> dict[str, str]:
    """CC/CXX for a GNU-style cross toolchain prefix (``aarch64-linux-gnu-``)."""
    if not prefix:
        return {}
    return {"CC": f"{prefix}gcc", "CXX": f"{prefix}g++"}


def build_environment(
    target: Platform,
    settings: Settings,
    *,
    toolchain_prefix: str | None = None,
    extra: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Compose the override map for building *target*.

    Base layer: GOPATH, PATH with ``$GOPATH/bin`` prepended, GOOS,
    GOARCH and CGO_ENABLED. On top of that: CC/CXX for the cross
    toolchain (if any), then *extra* (OS-specific overrides).

    Args:
        target: Platform being built.
        settings: Loaded settings (for the GOPATH override).
        toolchain_prefix: Cross toolchain prefix, or None for the host compiler.
        extra: Final overrides, applied last.
        base_env: Environment snapshot to extend (default: ``os.environ``).

    Returns:
        A new dict of overrides; callers merge it onto the base snapshot.
    """
    env = os.environ if base_env is None else base_env
    gopath = resolve_gopath(settings, env)

    path_parts = [str(Path(gopath) / "bin")]
    if env.get("PATH"):
        path_parts.append(env["PATH"])

    overrides = {
        "GOPATH": gopath,
        "PATH": os.pathsep.join(path_parts),
        "GOOS": target.goos,
        "GOARCH": target.goarch,
        "CGO_ENABLED": "1",
    }
    overrides.update(toolchain_env(toolchain_prefix))
    if extra:
        overrides.update(extra)

    logger.debug(
        "Build environment for %s: GOOS=%s GOARCH=%s CC=%s",
        target.name, overrides["GOOS"], overrides["GOARCH"], overrides.get("CC", "(default)"),
    )
    return overrides
