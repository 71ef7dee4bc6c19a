"""Windows builder profile — MinGW-w64 for cross builds."""

from __future__ import annotations

from agentbuild.core.services.builders.base import BuilderProfile

WINDOWS = BuilderProfile(
    os="windows",
    label="Windows",
    cross_prefixes={
        "x86_64": "x86_64-w64-mingw32-",
        "arm64": "aarch64-w64-mingw32-",
    },
    dockerfile="windows.Dockerfile",
    # Debian's mingw-w64 has no aarch64 target
    container_arches=("x86_64",),
)
