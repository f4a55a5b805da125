"""
CLI commands for orders.

Thin wrappers over ``readymix.core.services.order_service``.
"""

from __future__ import annotations

import json
import random
from datetime import datetime

import click

from readymix.ui.cli.common import open_cli_session


@click.group()
def orders() -> None:
    """Orders — quick ordering, statistics and delivery trend."""


@orders.command("quick")
@click.option("--area", required=True, help="Area name, e.g. 'Foundation Zone A'.")
@click.option("--structure", default="", help="Structure name within the area.")
@click.option("--volume", required=True, type=click.FloatRange(min=0, min_open=True), help="Volume in m³.")
@click.option("--grade", default="25MPa", help="Concrete grade.")
@click.option("--date", "delivery_date", required=True, type=click.DateTime(["%Y-%m-%d"]),
              help="Delivery date (YYYY-MM-DD).")
@click.option("--time", "delivery_time", default="08:00", help="Delivery time (HH:MM).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def quick(
    ctx: click.Context,
    area: str,
    structure: str,
    volume: float,
    grade: str,
    delivery_date: datetime,
    delivery_time: str,
    as_json: bool,
) -> None:
    """Place a quick order by area and structure name."""
    from readymix.core.services.order_service import QuickOrder

    session = open_cli_session(ctx)
    order = session.orders.create_quick_order(QuickOrder(
        area=area,
        structure=structure,
        volume=volume,
        grade=grade,
        delivery_date=delivery_date.date(),
        delivery_time=delivery_time,
    ))

    if as_json:
        click.echo(json.dumps(order.model_dump(mode="json"), indent=2))
        return

    click.secho(f"✅ {order.id} — {order.volume:g}m³ of {order.grade}", fg="green", bold=True)
    if not order.area_id:
        click.secho(f"   ⚠️  No area named {area!r}; order is not linked to an area", fg="yellow")
    click.echo(f"   Delivery: {order.delivery_date} {order.delivery_time}")


@orders.command("stats")
@click.option("--ticks", "-n", default=100, type=click.IntRange(min=0),
              help="Simulator ticks to run first (orders start empty).")
@click.option("--seed", default=None, type=int, help="Random seed.")
@click.option("--days", default=7, type=click.IntRange(min=1), help="Trend window in days.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def stats(ctx: click.Context, ticks: int, seed: int | None, days: int, as_json: bool) -> None:
    """Order statistics after letting synthetic users place orders."""
    from readymix.core.services.simulator import BackgroundSimulator

    session = open_cli_session(ctx)
    simulator = BackgroundSimulator(
        session.store,
        probability=session.settings.simulator.probability,
        rng=random.Random(seed if seed is not None else session.settings.simulator.seed),
    )
    for _ in range(ticks):
        simulator.tick()

    statistics = session.orders.statistics()
    trend = session.orders.daily_trend(days=days)

    if as_json:
        click.echo(json.dumps({
            "statistics": statistics.to_dict(),
            "trend": [p.to_dict() for p in trend],
        }, indent=2))
        return

    click.secho(f"\n📦 Orders: {statistics.total_orders}", fg="cyan", bold=True)
    click.echo(f"   Pending: {statistics.pending_orders}  Confirmed: {statistics.confirmed_orders}  "
               f"In production: {statistics.in_production_orders}")
    click.echo(f"   Dispatched: {statistics.dispatched_orders}  Delivered: {statistics.delivered_orders}  "
               f"Cancelled: {statistics.cancelled_orders}")
    click.echo(f"   Revenue today: R{statistics.today_revenue:,.0f}  "
               f"week: R{statistics.weekly_revenue:,.0f}  avg: R{statistics.avg_order_value:,.0f}")
    click.echo()
    for point in trend:
        click.echo(f"   {point.date}  {point.orders:>3} order(s)  {point.volume:>6.0f}m³")
    click.echo()
