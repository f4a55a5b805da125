"""
Ready-mix sync core — CLI entrypoint.

Usage:
    python -m readymix.main --help
    python -m readymix.main status
    python -m readymix.main simulate --ticks 50 --seed 7

Every command builds its own seeded, volatile store; nothing carries
over from one invocation to the next.
"""

from __future__ import annotations

import json
import random
from pathlib import Path

import click

from readymix import __version__
from readymix.core.observability.logging_config import setup_logging_from_env
from readymix.ui.cli.common import open_cli_session


@click.group()
@click.version_option(version=__version__, prog_name="readymix")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to readymix.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Ready-mix plant dashboard — real-time sync core."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging_from_env(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the seeded areas, orders and current actor."""
    session = open_cli_session(ctx)
    store = session.store
    areas = store.get_project_areas()
    orders = store.get_orders()
    actor = store.get_current_user()

    if as_json:
        click.echo(json.dumps({
            "actor": actor.model_dump(mode="json"),
            "areas": [a.model_dump(mode="json") for a in areas],
            "orders": [o.model_dump(mode="json") for o in orders],
            "activities": len(store.get_activities()),
        }, indent=2))
        return

    click.secho(f"\n🏗️  Areas: {len(areas)}", fg="cyan", bold=True)
    for area in areas:
        click.echo(f"     • {area.name} — {area.progress}%  ({len(area.structures)} structures)")
        if ctx.obj.get("verbose"):
            for s in area.structures:
                click.echo(f"         {s.name} [{s.type}] {s.recommended_grade}")

    click.echo()
    click.secho(f"   Orders: {len(orders)}", fg="white", bold=True)
    click.secho(f"   Actor:  {actor.name} ({actor.id}, {actor.role})", fg="white", bold=True)
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def demo(ctx: click.Context, as_json: bool) -> None:
    """Replay the two-user live synchronization walkthrough."""
    from readymix.core.use_cases.demo import run_demo

    session = open_cli_session(ctx)
    result = run_demo(session.store)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho("\n🔄 Live sync demo", fg="cyan", bold=True)
    for n, step in enumerate(result.steps, start=1):
        click.echo()
        click.secho(f"   {n}. {step.title}", fg="white", bold=True)
        click.echo(f"      {step.description}")
        for event in step.events:
            click.secho(f"      ↳ {event.topic}/{event.action} ", fg="green", nl=False)
            click.echo(event.summary)

    click.echo()
    click.echo(
        f"   Areas: {result.area_count} | Orders: {result.order_count} | "
        f"Activities: {result.activity_count} | Events: {result.event_count}"
    )
    click.echo()


@cli.command()
@click.option("--ticks", "-n", default=20, type=click.IntRange(min=0), help="Ticks to run.")
@click.option("--seed", default=None, type=int, help="Random seed for a reproducible run.")
@click.option("--probability", "-p", default=None, type=click.FloatRange(0.0, 1.0),
              help="Chance per tick of a mutation (default from settings).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def simulate(
    ctx: click.Context,
    ticks: int,
    seed: int | None,
    probability: float | None,
    as_json: bool,
) -> None:
    """Drive the background simulator for N ticks and show what it did.

    Ticks run back to back; no waiting on the tick interval.
    """
    from readymix.core.services.simulator import BackgroundSimulator

    session = open_cli_session(ctx, probability=probability)
    sim_settings = session.settings.simulator
    simulator = BackgroundSimulator(
        session.store,
        interval=sim_settings.interval,
        probability=sim_settings.probability,
        rng=random.Random(seed if seed is not None else sim_settings.seed),
    )

    applied = [a for a in (simulator.tick() for _ in range(ticks)) if a is not None]
    activities = session.store.get_activities()

    if as_json:
        click.echo(json.dumps({
            "ticks": ticks,
            "applied": [str(a) for a in applied],
            "activities": [a.model_dump(mode="json") for a in activities],
        }, indent=2))
        return

    click.secho(f"\n🎲 {ticks} ticks, {len(applied)} mutation(s)", fg="cyan", bold=True)
    for activity in reversed(activities):
        click.echo(
            f"     {activity.timestamp:%H:%M:%S.%f}  {activity.user_id:<14} "
            f"{activity.action:<6} {activity.resource_type:<9} {activity.details}"
        )
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    "Show sync core health — event bus, audit log, simulator."
    session = open_cli_session(ctx)
    system_health = session.health()

    if as_json:
        click.echo(json.dumps(system_health.to_dict(), indent=2))
        return

    status_icons = {
        "healthy": ("💚", "green"),
        "degraded": ("🟡", "yellow"),
        "unhealthy": ("🔴", "red"),
        "unknown": ("❔", "white"),
    }
    icon, color = status_icons.get(system_health.status, ("❔", "white"))

    click.echo()
    click.secho(f"{icon} System Health: {system_health.status.upper()}", fg=color, bold=True)
    click.echo(f"   {system_health.timestamp}")
    click.echo()

    for component in system_health.components:
        c_icon, c_color = status_icons.get(component.status, ("❔", "white"))
        click.secho(f"   {c_icon} {component.name}", fg=c_color, bold=True)
        click.echo(f"      {component.message}")

        if ctx.obj.get("verbose") and component.details:
            for key, val in component.details.items():
                click.echo(f"      {key}: {val}")

    click.echo()


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", "-p", default=8000, type=int, help="Port number.")
@click.option("--no-simulator", is_flag=True, help="Don't inject synthetic mutations.")
@click.pass_context
def web(ctx: click.Context, host: str, port: int, no_simulator: bool) -> None:
    "Start the JSON API and event stream."
    from readymix.ui.web.server import create_app, run_server

    session = open_cli_session(ctx)
    simulate_users = session.simulator is not None and not no_simulator
    if simulate_users:
        session.simulator.start()

    app = create_app(session=session)
    debug = ctx.obj.get("debug", False)

    click.echo()
    click.secho("⚡ Ready-mix sync core — Web API", bold=True)
    click.echo(f"   API:    http://{host}:{port}/api/areas")
    click.echo(f"   Events: http://{host}:{port}/api/events")
    if simulate_users:
        click.secho("   Simulator: on (synthetic users)", fg="yellow")
    if debug:
        click.secho("   Logging: DEBUG (all output)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=debug)


# ── Register sub-command groups from readymix/ui/cli/ ─────────────

from readymix.ui.cli.orders import orders  # noqa: E402

cli.add_command(orders)


if __name__ == "__main__":
    cli()
