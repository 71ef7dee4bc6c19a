"""
Configuration loader — reads agentbuild.yml into typed settings.

The file is optional: every setting has a default matching the upstream
Datadog Agent project, so a bare checkout builds without any config.
When present, it is read as YAML and validated against Pydantic schemas.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from agentbuild.core.errors import AgentBuildError

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "agentbuild.yml"

# Env var pointing at an explicit settings file
SETTINGS_ENV = "AGENTBUILD_CONFIG"


class ConfigError(AgentBuildError):
    """Raised when agentbuild.yml is invalid or unreadable."""


class UpstreamSettings(BaseModel):
    """Where the agent source and release metadata come from."""

    repo_url: str = "https://github.com/DataDog/datadog-agent"
    api_url: str = "https://api.github.com/repos/DataDog/datadog-agent"
    request_timeout: int = 30

    def archive_url(self, version: str) -> str:
        return f"{self.repo_url}/archive/refs/tags/{version}.tar.gz"


class BuildSettings(BaseModel):
    """Commands and limits for the native build sequence."""

    install_command: list[str] = Field(
        default_factory=lambda: ["pip", "install", "dda"]
    )
    tools_command: list[str] = Field(
        default_factory=lambda: ["dda", "inv", "install-tools"]
    )
    build_command: list[str] = Field(
        default_factory=lambda: ["dda", "inv", "agent.build", "--build-exclude=systemd"]
    )
    # The agent's own build leaves <artifact_dir>/<name>/<name>[.exe]
    artifact_dir: str = "bin"
    agent_binary: str = "agent"
    companions: list[str] = Field(
        default_factory=lambda: ["process-agent", "trace-agent", "system-probe"]
    )
    command_timeout: int = 1200
    build_timeout: int | None = 7200
    display_lines: int = 6
    gopath: str | None = None


class DockerSettings(BaseModel):
    """Containerized cross-build settings."""

    image_prefix: str = "datadog-agent-builder"
    workspace: str = "/workspace"
    script_name: str = "docker-build.sh"
    image_build_timeout: int = 1800


class PackagingSettings(BaseModel):
    """Naming for per-platform and umbrella packages."""

    scope: str = "@harperdb"
    product: str = "datadog-agent"

    def package_name(self, platform_name: str) -> str:
        return f"{self.scope}/{self.product}-binary-{platform_name}"


class InstallSettings(BaseModel):
    """Where the runtime wrapper looks for installed binaries.

    ``bundle_root`` holds per-platform packages (``<platform>/bin/<binary>``);
    None means the ``bundled/`` directory inside this package.
    """

    bin_dir: str = "~/.datadog-agent-binary/bin"
    bundle_root: str | None = None


class Settings(BaseModel):
    """Root settings — loaded from agentbuild.yml or defaults."""

    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    packaging: PackagingSettings = Field(default_factory=PackagingSettings)
    install: InstallSettings = Field(default_factory=InstallSettings)


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for agentbuild.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to agentbuild.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate build settings.

    Resolution order: explicit ``path`` > ``AGENTBUILD_CONFIG`` > upward
    search from cwd > built-in defaults.

    Raises:
        ConfigError: If an explicitly named file is missing, or any file
            found is invalid.
    """
    if path is None and os.environ.get(SETTINGS_ENV):
        path = Path(os.environ[SETTINGS_ENV])
        if not path.is_file():
            raise ConfigError(f"{SETTINGS_ENV} points to a missing file: {path}")

    if path is None:
        path = find_settings_file()

    if path is None:
        logger.debug("No %s found, using defaults", SETTINGS_FILE)
        return Settings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
