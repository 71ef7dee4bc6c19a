"""
Builder registry — OS family tag → builder profile.

The set is closed: the three profiles below are the only builders.
"""

from __future__ import annotations

from agentbuild.core.errors import UnsupportedPlatformError
from agentbuild.core.services.builders.base import BuilderProfile
from agentbuild.core.services.builders.linux import LINUX
from agentbuild.core.services.builders.macos import MACOS
from agentbuild.core.services.builders.windows import WINDOWS

BUILDER_PROFILES: dict[str, BuilderProfile] = {
    profile.os: profile for profile in (LINUX, MACOS, WINDOWS)
}


def get_builder(os_family: str) -> BuilderProfile:
    """Look up the profile for an OS family tag.

    Raises:
        UnsupportedPlatformError: Unknown tag.
    """
    try:
        return BUILDER_PROFILES[os_family]
    except KeyError:
        raise UnsupportedPlatformError(f"Unsupported OS: {os_family}") from None
