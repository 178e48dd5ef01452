"""
Helpers shared by CLI commands.
"""

from __future__ import annotations

import sys

import click

from ecsetup.core.models.settings import SetupSettings


def load_context_settings(ctx: click.Context) -> SetupSettings:
    """Load settings once per invocation; exit 1 on a bad config file."""
    from ecsetup.core.config.loader import ConfigError, load_settings

    settings = ctx.obj.get("settings")
    if settings is not None:
        return settings

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    ctx.obj["settings"] = settings
    return settings
