"""
Packaged build definitions.

Container build definitions live under ``docker/`` and ship inside the
wheel, so the containerized path works from an installed package as
well as from a checkout.
"""

from __future__ import annotations

import logging
from pathlib import Path

from agentbuild.core.errors import BuildError

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent


def dockerfile_path(name: str) -> Path:
    """Absolute path of a packaged Dockerfile.

    Raises:
        BuildError: The definition is not part of this installation.
    """
    path = _DATA_DIR / "docker" / name
    if not path.is_file():
        raise BuildError(f"Container build definition not found: {path}")
    logger.debug("Using container build definition %s", path)
    return path
