"""
CLI command for the full provisioning pipeline.

Thin wrapper over ``ecsetup.core.services.ec_setup``: probe, try a
cheap activation, and rebuild the module only when that fails.
"""

from __future__ import annotations

import json
import sys
from functools import partial

import click

from ecsetup.ui.cli.common import load_context_settings


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the result as JSON.")
@click.option(
    "--sync",
    is_flag=True,
    help="Run on the calling thread instead of streaming from a worker.",
)
@click.pass_context
def provision(ctx: click.Context, as_json: bool, sync: bool) -> None:
    """Make ec_sys available with write support, building it if needed."""
    from ecsetup.core.services.ec_setup import ensure_capability, start_provisioning

    settings = load_context_settings(ctx)

    # JSON mode keeps stdout clean for the result document
    echo = partial(click.echo, err=as_json)

    if sync:
        result = ensure_capability(settings, writer=echo)
    else:
        reporter = start_provisioning(settings)
        for line in reporter.events():
            echo(line)
        result = reporter.wait()
        assert result is not None  # events() only ends after close()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)
        return

    if result.ok:
        if result.installed_path:
            click.secho(f"✅ {settings.module_name} built and installed", fg="green", bold=True)
            click.echo(f"   Module: {result.installed_path}")
        else:
            click.secho(f"✅ {settings.module_name} is ready", fg="green", bold=True)
        return

    click.secho(f"❌ Provisioning failed ({result.state.value})", fg="red", bold=True)
    click.echo(f"   {result.error}")
    sys.exit(1)
