"""Linux builder profile."""

from __future__ import annotations

from agentbuild.core.services.builders.base import BuilderProfile

LINUX = BuilderProfile(
    os="linux",
    label="Linux",
    cross_prefixes={
        "arm64": "aarch64-linux-gnu-",
        "x86_64": "x86_64-linux-gnu-",
    },
    dockerfile="linux.Dockerfile",
)
