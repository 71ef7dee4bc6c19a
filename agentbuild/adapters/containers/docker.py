"""
Docker adapter — image builds and one-shot build containers.

Used by the containerized cross-build path when the host cannot build
the target natively. Uses the docker CLI — never the Docker API directly.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path

from agentbuild.adapters.base import Adapter
from agentbuild.adapters.shell.command import (
    CommandError,
    CommandTimeout,
    RollingDisplay,
    run_command,
    stream_command,
)

logger = logging.getLogger(__name__)


class DockerAdapter(Adapter):
    """Docker image build and container run operations."""

    @property
    def name(self) -> str:
        return "docker"

    @property
    def binary(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        """The CLI is on PATH and the daemon answers."""
        if shutil.which(self.binary) is None:
            return False
        try:
            self.server_version()
        except CommandError as e:
            logger.debug("docker present but daemon not reachable: %s", e)
            return False
        return True

    # ── Operations ──────────────────────────────────────────────

    def server_version(self) -> str:
        """Daemon version; fails when the daemon is not running."""
        return self._docker(["info", "--format", "{{.ServerVersion}}"], timeout=15)

    def build_image(
        self,
        dockerfile: Path,
        tag: str,
        context_dir: Path | None = None,
        timeout: float | None = 1800,
        display: RollingDisplay | None = None,
    ) -> None:
        """``docker build -f <dockerfile> -t <tag> <context>``."""
        context = context_dir or dockerfile.parent
        logger.info("Building Docker image %s from %s", tag, dockerfile.name)
        stream_command(
            ["docker", "build", "-f", str(dockerfile), "-t", tag, str(context)],
            timeout=timeout,
            display=display,
        )

    def run(
        self,
        image: str,
        command: list[str],
        *,
        name: str | None = None,
        volumes: list[tuple[Path, str]] | None = None,
        workdir: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        display: RollingDisplay | None = None,
    ) -> str:
        """Run *command* in a throwaway container and return its stdout.

        The container is named so it can be removed if the run times
        out; killing the ``docker run`` client alone leaves it running.
        """
        name = name or f"agentbuild-{uuid.uuid4().hex[:12]}"
        args = ["run", "--rm", "--name", name]
        for host_path, container_path in volumes or []:
            args += ["-v", f"{Path(host_path).resolve()}:{container_path}"]
        if workdir:
            args += ["-w", workdir]
        for key, value in (env or {}).items():
            args += ["-e", f"{key}={value}"]
        args += [image, *command]

        logger.info("Running build in Docker container %s (%s)", name, image)
        try:
            result = stream_command(["docker", *args], timeout=timeout, display=display)
        except CommandTimeout:
            self.remove_container(name)
            raise
        return result.stdout

    def remove_container(self, name: str) -> None:
        """``docker rm -f <name>``; a failure is only logged."""
        try:
            self._docker(["rm", "-f", name], timeout=60)
        except CommandError as e:
            logger.warning("Could not remove container %s: %s", name, e)
        else:
            logger.info("Removed container %s", name)

    # ── Helpers ─────────────────────────────────────────────────

    def _docker(self, args: list[str], timeout: int = 300) -> str:
        """Run a docker command and return stdout."""
        return run_command(["docker", *args], timeout=timeout).stdout.strip()
