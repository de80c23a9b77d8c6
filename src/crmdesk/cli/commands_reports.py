"""Report CLI commands.

- report pipeline: Deals grouped by stage
- report dashboard: Headline numbers
"""

from __future__ import annotations

import asyncio

import typer
from typer import Context, Typer

from crmdesk.cli.app import app, get_services, run_async
from crmdesk.crm.reports import dashboard_stats, pipeline_board
from crmdesk.crm.services import CRMServices

report_app = Typer(help="Pipeline and dashboard reports")
app.add_typer(report_app, name="report")


@report_app.command(name="pipeline")
def report_pipeline(ctx: Context):
    """Show deals grouped by pipeline stage."""
    deals = run_async(get_services(ctx).deals.get_all())
    board = pipeline_board(deals)

    typer.echo(f"\n💼 Pipeline ({board.total_count} deals, ${board.total_value:,.0f})")
    for column in board.columns:
        typer.echo(f"\n  {column.stage.label} ({column.count}) ${column.total_value:,.0f}")
        for deal in column.deals:
            typer.echo(f"    [{deal.id}] {deal.title} ${deal.value:,.0f}")


async def _fetch_dashboard_inputs(services: CRMServices):
    return await asyncio.gather(
        services.contacts.get_all(),
        services.deals.get_all(),
        services.activities.get_all(),
    )


@report_app.command(name="dashboard")
def report_dashboard(ctx: Context):
    """Show dashboard statistics."""
    contacts, deals, activities = run_async(_fetch_dashboard_inputs(get_services(ctx)))
    stats = dashboard_stats(contacts, deals, activities)

    typer.echo("\n📊 Dashboard")
    typer.echo(f"   Contacts: {stats.total_contacts}")
    typer.echo(f"   Deals: {stats.total_deals}")
    typer.echo(f"   Pipeline value: ${stats.pipeline_value:,.0f}")
    typer.echo(f"   Won deals: {stats.won_deals}")
    typer.echo(f"   Activities (7 days): {stats.recent_activities}")
    for stage, count in stats.stage_counts.items():
        typer.echo(f"   {stage.label}: {count}")
