"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from agentbuild.core.config.loader import Settings
from agentbuild.core.models.platform import Platform

_ENV_VARS = (
    "DEBUG",
    "AGENTBUILD_CONFIG",
    "AGENTBUILD_LOG_LEVEL",
    "AGENTBUILD_LOG_FILE",
    "AGENTBUILD_LOG_FILE_LEVEL",
    "AGENTBUILD_AGENT_VERSION",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's shell settings out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def linux_x64() -> Platform:
    return Platform(os="linux", arch="x86_64")


@pytest.fixture
def linux_arm64() -> Platform:
    return Platform(os="linux", arch="arm64")


@pytest.fixture
def macos_arm64() -> Platform:
    return Platform(os="macos", arch="arm64")


@pytest.fixture
def windows_x64() -> Platform:
    return Platform(os="windows", arch="x86_64")


def which_only(*found: str):
    """A ``shutil.which`` stand-in that finds exactly the named tools."""

    def _which(name: str) -> str | None:
        return f"/usr/bin/{name}" if name in found else None

    return _which


def make_agent_build(source_dir: Path, *, windows: bool = False, companions=()) -> Path:
    """Lay out what the agent's own build leaves under ``bin/``."""
    suffix = ".exe" if windows else ""
    agent = source_dir / "bin" / "agent" / f"agent{suffix}"
    agent.parent.mkdir(parents=True, exist_ok=True)
    agent.write_bytes(b"\x7fELF agent")
    for name in companions:
        path = source_dir / "bin" / name / f"{name}{suffix}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(name.encode())
    return agent
