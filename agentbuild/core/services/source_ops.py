"""
Source acquisition — fetch a tagged upstream tree and resolve versions.

A tag-pinned shallow clone is the primary path. When that fails
(network, unknown tag, no git), the tagged source archive is downloaded
and extracted instead, and a one-commit repository is synthesized on top
so the agent's build tooling can still read its version from git.
"""

from __future__ import annotations

import json
import logging
import shutil
import tarfile
import urllib.error
import urllib.request
from pathlib import Path, PurePosixPath

from agentbuild import __version__
from agentbuild.adapters.shell.command import CommandError
from agentbuild.adapters.vcs.git import GitAdapter
from agentbuild.core.config.loader import Settings, UpstreamSettings
from agentbuild.core.errors import SourceError
from agentbuild.core.models.platform import Platform

logger = logging.getLogger(__name__)

_USER_AGENT = f"datadog-agent-build/{__version__}"


def _request(url: str, accept: str = "application/vnd.github+json") -> urllib.request.Request:
    return urllib.request.Request(url, headers={"Accept": accept, "User-Agent": _USER_AGENT})


# ═══════════════════════════════════════════════════════════════════
#  Release feed
# ═══════════════════════════════════════════════════════════════════


def get_latest_version(settings: Settings | None = None) -> str:
    """Return the tag name of the latest upstream release.

    No retry and no caching: every call queries the release feed.

    Raises:
        SourceError: Feed unreachable, not JSON, or missing ``tag_name``.
    """
    upstream = (settings or Settings()).upstream
    url = f"{upstream.api_url}/releases/latest"
    logger.info("Fetching latest Datadog Agent version...")
    logger.debug("GET %s", url)

    try:
        with urllib.request.urlopen(_request(url), timeout=upstream.request_timeout) as resp:
            payload = resp.read()
    except urllib.error.HTTPError as e:
        raise SourceError(f"Failed to fetch latest version: HTTP {e.code} {e.reason}") from e
    except (urllib.error.URLError, OSError) as e:
        raise SourceError(f"Failed to fetch latest version: {e}") from e

    try:
        data = json.loads(payload)
    except ValueError as e:
        raise SourceError(f"Failed to fetch latest version: invalid JSON from {url}") from e

    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag, str) or not tag.strip():
        raise SourceError(f"Failed to fetch latest version: no tag_name in response from {url}")

    return tag.strip()


# ═══════════════════════════════════════════════════════════════════
#  Source tree
# ═══════════════════════════════════════════════════════════════════


def download_source(
    version: str,
    platform: Platform,
    target_dir: Path,
    *,
    settings: Settings | None = None,
    git: GitAdapter | None = None,
) -> Path:
    """Acquire the upstream source for *version* into *target_dir*.

    Any existing tree at *target_dir* is removed first, so the result
    never mixes files from a previous version.

    Raises:
        SourceError: Both the clone and the archive fallback failed.
    """
    settings = settings or Settings()
    git = git or GitAdapter()
    target_dir = Path(target_dir)

    logger.info("Downloading Datadog Agent source %s for %s...", version, platform.name)

    target_dir.parent.mkdir(parents=True, exist_ok=True)
    if target_dir.exists():
        logger.debug("Removing stale source tree at %s", target_dir)
        shutil.rmtree(target_dir)

    try:
        logger.info("Cloning Datadog Agent repository...")
        git.clone_tag(settings.upstream.repo_url, version, target_dir)
        try:
            described = git.describe(target_dir)
            logger.info("Repository cloned at version: %s", described)
        except CommandError as e:
            logger.debug("git describe failed after clone: %s", e)
    except CommandError as e:
        logger.warning("Git clone failed, falling back to source archive download...")
        logger.debug("Clone error: %s", e)
        if target_dir.exists():
            shutil.rmtree(target_dir)
        _download_archive(version, target_dir, settings.upstream)
        _synthesize_git_metadata(git, target_dir, version)

    logger.info("Source extracted to: %s", target_dir)
    return target_dir


def _download_archive(version: str, target_dir: Path, upstream: UpstreamSettings) -> None:
    url = upstream.archive_url(version)
    archive = target_dir.parent / f"datadog-agent-{version}.tar.gz"
    logger.debug("Downloading from: %s", url)

    try:
        with urllib.request.urlopen(
            _request(url, accept="application/octet-stream"),
            timeout=upstream.request_timeout,
        ) as resp, open(archive, "wb") as out:
            shutil.copyfileobj(resp, out)
    except urllib.error.HTTPError as e:
        archive.unlink(missing_ok=True)
        raise SourceError(f"Failed to download source: HTTP {e.code} {e.reason} ({url})") from e
    except (urllib.error.URLError, OSError) as e:
        archive.unlink(missing_ok=True)
        raise SourceError(f"Failed to download source: {e} ({url})") from e

    logger.info("Extracting source code...")
    try:
        extract_archive(archive, target_dir, strip_components=1)
    except (tarfile.TarError, OSError) as e:
        raise SourceError(f"Failed to extract source archive {archive.name}: {e}") from e
    finally:
        archive.unlink(missing_ok=True)


def extract_archive(archive: Path, dest: Path, strip_components: int = 0) -> int:
    """Extract a tar archive into *dest*, dropping leading path components.

    Uses the ``data`` extraction filter, which rejects absolute paths,
    ``..`` traversal and links pointing outside *dest*.

    Returns:
        Number of members extracted.
    """
    dest.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "r:*") as tar:
        members = []
        for member in tar.getmembers():
            stripped = _strip(member.name, strip_components)
            if stripped is None:
                continue
            member.name = stripped
            if member.islnk():
                linked = _strip(member.linkname, strip_components)
                if linked is None:
                    continue
                member.linkname = linked
            members.append(member)
        tar.extractall(dest, members=members, filter="data")
    return len(members)


def _strip(name: str, count: int) -> str | None:
    parts = PurePosixPath(name).parts
    if len(parts) <= count:
        return None
    return str(PurePosixPath(*parts[count:]))


def _synthesize_git_metadata(git: GitAdapter, repo: Path, version: str) -> None:
    """Give an archive-extracted tree a tagged commit.

    A failure here leaves a usable tree without version metadata; the
    build may still succeed, so it is a warning rather than an error.
    """
    try:
        git.init_tagged(repo, version)
        logger.debug("Initialized git metadata at tag %s", version)
    except CommandError as e:
        logger.warning("Could not create git metadata for %s: %s", version, e)
