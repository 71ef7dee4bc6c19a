"""
Containerized build — run the native build sequence inside Docker.

Used when the host cannot build the target's OS and has no cross
toolchain for it. The image comes from the profile's packaged
Dockerfile; the source tree and the output ``bin/`` directory are
bind-mounted, and a generated bash script drives the same
install → tools → build → copy sequence the native path runs.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from agentbuild.adapters.containers.docker import DockerAdapter
from agentbuild.adapters.shell.command import RollingDisplay
from agentbuild.core.config.loader import Settings
from agentbuild.core.data import dockerfile_path
from agentbuild.core.errors import BuildError
from agentbuild.core.models.build import BuildConfig
from agentbuild.core.models.platform import Platform
from agentbuild.core.services.builders.base import BuilderProfile

logger = logging.getLogger(__name__)

# Build images are Debian-based, so only Linux targets compile natively in them
_CONTAINER_OS = "linux"


def image_tag(profile: BuilderProfile, settings: Settings) -> str:
    return f"{settings.docker.image_prefix}:{profile.os}"


def render_build_script(
    config: BuildConfig,
    profile: BuilderProfile,
    settings: Settings,
) -> str:
    """Bash script run inside the build container."""
    target = config.platform
    build = settings.build
    output = f"{settings.docker.workspace}/output"
    prefix = profile.toolchain_prefix(target) or ""
    agent = build.agent_binary
    agent_src = f"{build.artifact_dir}/{agent}/{profile.artifact_name(agent)}"

    lines = [
        "#!/usr/bin/env bash",
        "set -euo pipefail",
        "",
        'echo "Setting up build environment..."',
        "export CGO_ENABLED=1",
        f"export GOOS={target.goos}",
        f"export GOARCH={target.goarch}",
        "",
        "case \"$(uname -m)\" in",
        "    x86_64|amd64) HOST_ARCH=amd64 ;;",
        "    aarch64|arm64) HOST_ARCH=arm64 ;;",
        "    *) HOST_ARCH=unknown ;;",
        "esac",
        "",
    ]

    if profile.os != _CONTAINER_OS:
        lines += [
            f"export CC={prefix}gcc",
            f"export CXX={prefix}g++",
            f'echo "Cross-compiling for {target.name} with {prefix}gcc"',
        ]
    elif prefix:
        lines += [
            f'if [ "$HOST_ARCH" != "{target.goarch}" ]; then',
            f"    export CC={prefix}gcc",
            f"    export CXX={prefix}g++",
            f'    echo "Cross-compiling from $HOST_ARCH to {target.goarch}"',
            "else",
            "    export CC=gcc",
            "    export CXX=g++",
            f'    echo "Native compilation for {target.goarch}"',
            "fi",
        ]

    lines += [
        "",
        'echo "Installing build tools..."',
        shlex.join(build.install_command),
        "",
        'echo "Installing Go tools..."',
        shlex.join(build.tools_command),
        "",
        'echo "Building agent..."',
        shlex.join([*build.build_command, *config.build_args]),
        "",
        'echo "Copying binaries to output directory..."',
        f"mkdir -p {output}",
        f"cp {shlex.quote(agent_src)} {output}/{shlex.quote(target.binary_name)}",
    ]

    for name in build.companions:
        filename = profile.artifact_name(name)
        companion = f"{build.artifact_dir}/{name}/{filename}"
        lines.append(
            f"if [ -f {shlex.quote(companion)} ]; then "
            f"cp {shlex.quote(companion)} {output}/{shlex.quote(filename)}; fi"
        )

    lines += ["", 'echo "Build completed successfully!"', ""]
    return "\n".join(lines)


def write_build_script(config: BuildConfig, content: str, settings: Settings) -> Path:
    path = config.source_dir / settings.docker.script_name
    path.write_text(content, encoding="utf-8", newline="\n")
    path.chmod(0o755)
    return path


def build_in_container(
    config: BuildConfig,
    profile: BuilderProfile,
    host: Platform,
    *,
    settings: Settings,
    docker: DockerAdapter | None = None,
) -> Path:
    """Build *config* inside a container and return the promoted binary.

    Raises:
        BuildError: No container definition, Docker unavailable, or the
            binary is missing after the container exits.
        CommandError: The image build or the build script failed.
    """
    target = config.platform
    if profile.dockerfile is None:
        raise BuildError(
            f"Cannot build {target.name} on a {host.name} host: no cross toolchain "
            f"was found and {profile.label} builds have no container definition. "
            f"Build {target.name} on a {profile.label} host instead."
        )
    if target.arch not in profile.container_arches:
        prefix = profile.toolchain_prefix(target) or ""
        raise BuildError(
            f"Cannot build {target.name} on a {host.name} host: no cross toolchain "
            f"was found and the {profile.label} build image has no {target.arch} "
            f"compiler. Install {prefix}gcc "
            f"or build {target.name} on a {profile.label} host."
        )

    docker = docker or DockerAdapter()
    if not docker.is_available():
        raise BuildError(
            f"Docker is required to build {target.name} on a {host.name} host "
            "but is not installed or not running"
        )

    tag = image_tag(profile, settings)
    logger.info("Building Docker image for %s compilation...", profile.label)
    docker.build_image(
        dockerfile_path(profile.dockerfile),
        tag,
        timeout=settings.docker.image_build_timeout,
        display=RollingDisplay(settings.build.display_lines),
    )

    script = write_build_script(config, render_build_script(config, profile, settings), settings)
    logger.debug("Wrote container build script %s", script)

    workspace = settings.docker.workspace
    config.bin_dir.mkdir(parents=True, exist_ok=True)
    docker.run(
        tag,
        ["bash", script.name],
        volumes=[
            (config.source_dir, f"{workspace}/source"),
            (config.bin_dir, f"{workspace}/output"),
        ],
        workdir=f"{workspace}/source",
        timeout=settings.build.build_timeout,
        display=RollingDisplay(settings.build.display_lines),
    )

    if not config.binary_path.is_file():
        raise BuildError(
            f"Container build finished but produced no binary at {config.binary_path}"
        )
    return config.binary_path.resolve()
