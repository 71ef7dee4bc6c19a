"""
Git adapter — version control operations for source acquisition.

Clones tagged upstream releases and synthesizes minimal repository
metadata for trees that came from an archive instead of a clone.
Uses the git CLI — never raw API calls.
"""

from __future__ import annotations

import logging
from pathlib import Path

from agentbuild.adapters.base import Adapter
from agentbuild.adapters.shell.command import run_command

logger = logging.getLogger(__name__)

# Identity for the synthetic commit on archive-extracted trees
_SYNTHETIC_IDENTITY = [
    "-c", "user.name=datadog-agent-build",
    "-c", "user.email=datadog-agent-build@localhost",
]


class GitAdapter(Adapter):
    """Git operations used by the source acquisition step."""

    def __init__(self, timeout: int = 600):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "git"

    @property
    def binary(self) -> str:
        return "git"

    # ── Operations ──────────────────────────────────────────────

    def clone_tag(self, repo_url: str, tag: str, dest: Path, depth: int = 1) -> None:
        """Shallow clone pinned to a single tag."""
        self._git(
            ["clone", "--depth", str(depth), "--branch", tag, repo_url, str(dest)],
            timeout=self._timeout,
        )

    def describe(self, repo: Path) -> str:
        """``git describe --tags --always`` for a checkout."""
        return self._git(["-C", str(repo), "describe", "--tags", "--always"]).strip()

    def init_tagged(self, repo: Path, tag: str) -> None:
        """Turn a plain directory into a one-commit repository tagged *tag*.

        Build tooling that derives version info from ``git describe``
        then works the same as on a real clone.
        """
        self._git(["-C", str(repo), "init", "--quiet"])
        self._git(["-C", str(repo), "add", "--all"])
        self._git(
            [*_SYNTHETIC_IDENTITY, "-C", str(repo), "commit", "--quiet",
             "--no-verify", "-m", f"Source archive {tag}"],
            timeout=self._timeout,
        )
        self._git(["-C", str(repo), "tag", tag])

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, args: list[str], timeout: int = 60) -> str:
        """Run a git command and return stdout."""
        result = run_command(["git", *args], timeout=timeout)
        return result.stdout
