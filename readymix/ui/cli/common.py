"""
Shared helpers for CLI commands.
"""

from __future__ import annotations

import sys
from typing import Any

import click

from readymix.core.use_cases.session import Session


def open_cli_session(ctx: click.Context, **simulator_overrides: Any) -> Session:
    """Load settings (honouring --config) and open a fresh session.

    Exits with status 1 if the settings file is invalid.
    """
    from readymix.core.config.loader import ConfigError, load_settings
    from readymix.core.use_cases.session import open_session

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    for key, value in simulator_overrides.items():
        if value is not None:
            setattr(settings.simulator, key, value)
    return open_session(settings)
