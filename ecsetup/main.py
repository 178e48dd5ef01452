"""
ec-sys-setup — CLI entrypoint.

Usage:
    ecsetup --help
    ecsetup status
    ecsetup activate
    sudo ecsetup provision
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from ecsetup import __version__
from ecsetup.core.observability.logging_config import setup_logging
from ecsetup.ui.cli.common import load_context_settings


@click.group()
@click.version_option(version=__version__, prog_name="ecsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to ecsetup.yml (default: $ECSETUP_CONFIG, then /etc/ecsetup/ecsetup.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """ec-sys-setup — make the ec_sys module available with write support."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("ECSETUP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("ECSETUP_LOG_FILE"),
        log_file_level=os.environ.get("ECSETUP_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show whether ec_sys is loaded with write support."""
    from ecsetup.core.models.kernel import detect_kernel_identity
    from ecsetup.core.services.ec_setup import CapabilityState, probe_capability

    settings = load_context_settings(ctx)
    result = probe_capability(settings)
    kernel = detect_kernel_identity()

    if as_json:
        data = result.to_dict()
        data["kernel"] = kernel.to_dict()
        click.echo(json.dumps(data, indent=2))
        return

    def _mark(flag: bool) -> str:
        return "✓" if flag else "✗"

    if not ctx.obj.get("quiet", False):
        click.secho(f"\n🔧 {result.module}", fg="cyan", bold=True)
        click.echo(f"   Kernel: {kernel.release} ({kernel.arch})")
        click.echo()

    click.echo(f"   {_mark(result.loaded)} loaded")
    click.echo(f"   {_mark(result.write_support)} {settings.write_param}")
    click.echo(f"   {_mark(result.device_present)} {settings.ec_io_path}")
    click.echo()

    if result.state is CapabilityState.READY:
        click.secho("✅ Ready", fg="green", bold=True)
    else:
        click.secho("⚠️  Not ready — run 'ecsetup provision'", fg="yellow")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def activate(ctx: click.Context, as_json: bool) -> None:
    """Try to load ec_sys with write support, without building anything."""
    from ecsetup.core.services.ec_setup import CapabilityState, CommandRunner
    from ecsetup.core.services.ec_setup import activate as activate_module

    settings = load_context_settings(ctx)
    runner = CommandRunner(timeout=settings.command_timeout)

    emit = None if as_json else click.echo
    state = activate_module(settings, runner, emit)
    ok = state is CapabilityState.READY

    if as_json:
        click.echo(json.dumps({"ok": ok, "state": state.value}, indent=2))
    elif ok:
        click.secho("✅ Activated", fg="green", bold=True)
    else:
        click.secho("❌ Activation failed — a rebuild is needed (ecsetup provision)", fg="red")

    if not ok:
        sys.exit(1)


# ── Sub-commands ────────────────────────────────────────────────────

from ecsetup.ui.cli.provision import provision  # noqa: E402

cli.add_command(provision)


if __name__ == "__main__":
    cli()
