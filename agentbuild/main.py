"""
Datadog Agent build orchestrator — CLI entrypoint.

Usage:
    datadog-agent-build --help
    datadog-agent-build build --platform linux-arm64
    datadog-agent-build build --all --datadog-version 7.66.1
    datadog-agent-build platforms
    python -m agentbuild.main version
"""

from __future__ import annotations

import json
import os
import shlex
import sys
from pathlib import Path

import click

from agentbuild import __version__
from agentbuild.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="datadog-agent-build")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to agentbuild.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Build the Datadog Agent from source for multiple platforms."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    _configure_logging(debug=debug, verbose=verbose)


def _configure_logging(debug: bool = False, verbose: bool = False) -> None:
    level = resolve_level(debug=debug, verbose=verbose)
    setup_logging(
        level=level,
        log_file=os.environ.get("AGENTBUILD_LOG_FILE"),
        log_file_level=os.environ.get("AGENTBUILD_LOG_FILE_LEVEL"),
        quiet_third_party=level != "DEBUG",
    )


def _load_settings(ctx: click.Context):
    """Load settings or exit 1 with the config error."""
    from agentbuild.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


# ── Build ───────────────────────────────────────────────────────


@cli.command()
@click.option("--datadog-version", "version", default=None, help="Datadog Agent version to build (default: latest release).")
@click.option("--platform", "-p", "platform_name", default=None, help="Target platform (os-arch, e.g. linux-x86_64).")
@click.option("--all", "-a", "build_all", is_flag=True, help="Build for all supported platforms.")
@click.option("--output", "-o", default="build", show_default=True, help="Output root; each platform builds into <output>/<os>-<arch>.")
@click.option("--source", "-s", default=None, help="Existing source directory (skips the download).")
@click.option("--build-args", default=None, help="Extra arguments for the agent build command.")
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    version: str | None,
    platform_name: str | None,
    build_all: bool,
    output: str,
    source: str | None,
    build_args: str | None,
    debug: bool,
    as_json: bool,
) -> None:
    """Build the Datadog Agent for one or all platforms."""
    from agentbuild.core.engine.executor import build_for_platforms
    from agentbuild.core.errors import UnsupportedPlatformError
    from agentbuild.core.models import BuildOptions, Platform, all_supported

    if debug:
        _configure_logging(debug=True)

    settings = _load_settings(ctx)

    try:
        if build_all:
            platforms = all_supported()
            label = "all supported platforms"
        elif platform_name:
            platforms = [Platform.parse(platform_name)]
            label = platforms[0].name
        else:
            platforms = [Platform.current()]
            label = f"current platform ({platforms[0].name})"
    except UnsupportedPlatformError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    options = BuildOptions(
        version=version,
        artifact_root=Path(output),
        source_dir=Path(source) if source else None,
        build_args=shlex.split(build_args) if build_args else [],
    )

    if not as_json:
        click.secho(f"🔨 Building for {label}...", fg="cyan", bold=True)

    report = build_for_platforms(platforms, options, settings)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.all_ok else 1)

    for hint in report.cross_os_hints():
        click.secho(f"⚠️  {hint}", fg="yellow")

    click.echo()
    click.secho("Build Summary:", bold=True)
    click.secho(f"✅ Successful: {len(report.succeeded)}", fg="green")
    if report.failed:
        click.secho(f"❌ Failed: {len(report.failed)}", fg="red")
        for result in report.failed:
            click.echo(f"   {result.summary_line()}")

    if report.succeeded:
        click.echo()
        click.secho("Outputs:", bold=True)
        for result in report.succeeded:
            click.echo(f"   {result.summary_line()}")

    click.echo()
    sys.exit(0 if report.all_ok else 1)


# ── Platforms ───────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def platforms(as_json: bool) -> None:
    """List all supported platforms."""
    from agentbuild.core.errors import UnsupportedPlatformError
    from agentbuild.core.models import Platform, all_supported

    try:
        current = Platform.current()
    except UnsupportedPlatformError:
        current = None

    supported = all_supported()

    if as_json:
        click.echo(json.dumps({
            "current": current.name if current else None,
            "platforms": [
                {
                    "name": p.name,
                    "os": p.os,
                    "arch": p.arch,
                    "goos": p.goos,
                    "goarch": p.goarch,
                    "binary": p.binary_name,
                }
                for p in supported
            ],
        }, indent=2))
        return

    click.secho("Supported platforms:", bold=True)
    for p in supported:
        if p == current:
            click.secho(f"  {p.name} (current)", fg="green")
        else:
            click.echo(f"  {p.name}")


# ── Version ─────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show the latest Datadog Agent release."""
    from agentbuild.core.errors import SourceError
    from agentbuild.core.services.source_ops import get_latest_version

    settings = _load_settings(ctx)
    try:
        latest = get_latest_version(settings)
    except SourceError as e:
        click.secho(f"❌ Failed to fetch version: {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(f"Latest Datadog Agent version: {latest}")


# ── Install ─────────────────────────────────────────────────────


@cli.command()
@click.option("--version", "version", default=None, help="Specific version to install.")
@click.option("--force", "-f", is_flag=True, help="Rewrite the wrapper even if it exists.")
@click.pass_context
def install(ctx: click.Context, version: str | None, force: bool) -> None:
    """Install the datadog-agent wrapper for this platform."""
    from agentbuild.core.errors import AgentBuildError
    from agentbuild.core.services.binary_manager import BinaryManager

    settings = _load_settings(ctx)
    if force:
        click.echo("Force reinstall requested...")

    try:
        installation = BinaryManager(settings).install(version, force=force)
    except AgentBuildError as e:
        click.secho(f"❌ Installation failed: {e}", fg="red", err=True)
        click.echo("You can build from source using: datadog-agent-build build", err=True)
        sys.exit(1)

    click.secho(f"✅ Datadog Agent installed: {installation.binary}", fg="green")
    click.echo(f"   Wrapper: {installation.wrapper}")
    click.echo("   Run with: datadog-agent <command>")


# ── Packages ────────────────────────────────────────────────────


@cli.command()
@click.option("--artifacts", default="build", show_default=True, help="Artifact root produced by 'build'.")
@click.option("--version", "version", default=__version__, show_default=True, help="Package version.")
@click.option("--stage", "stage_dir", default=None, help="Copy each platform binary under this directory.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def packages(
    ctx: click.Context,
    artifacts: str,
    version: str,
    stage_dir: str | None,
    as_json: bool,
) -> None:
    """Describe per-platform packages for the built binaries."""
    from agentbuild.core.errors import PackagingError
    from agentbuild.core.services.packaging import (
        discover_platform_packages,
        stage_platform_package,
        umbrella_optional_dependencies,
    )

    settings = _load_settings(ctx)
    found = discover_platform_packages(Path(artifacts), version, settings)

    staged: dict[str, str] = {}
    if stage_dir:
        if not found:
            click.secho(f"❌ No built binaries found under {artifacts}", fg="red", err=True)
            sys.exit(1)
        try:
            for package in found:
                staged[package.name] = str(stage_platform_package(package, Path(stage_dir)))
        except PackagingError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)

    optional = umbrella_optional_dependencies(version, settings)

    if as_json:
        click.echo(json.dumps({
            "version": version,
            "packages": [p.to_dict() for p in found],
            "optional_dependencies": optional,
            "staged": staged,
        }, indent=2))
        return

    if not found:
        click.secho(f"No built binaries found under {artifacts}", fg="yellow")
    for package in found:
        click.secho(f"📦 {package.name}", fg="cyan", bold=True)
        click.echo(f"   os={package.os[0]} cpu={package.cpu[0]}  → {package.binary}")
        if package.name in staged:
            click.echo(f"   staged: {staged[package.name]}")

    click.echo()
    click.secho("Umbrella optional dependencies:", bold=True)
    for name, pinned in optional.items():
        click.echo(f"   {name}: {pinned}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
