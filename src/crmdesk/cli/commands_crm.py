"""CRM entity CLI commands.

Commands for browsing CRM data through the service facades:
- crm list: List records of one entity kind
- crm show: Show one record
- crm search: Search contacts
- crm timeline: Show the activity timeline
- crm complete: Toggle a task's completed flag
- crm health: Check the record service
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

import typer
from typer import Context, Typer

from crmdesk.cli.app import app, get_services, run_async
from crmdesk.config import BACKEND_REMOTE
from crmdesk.crm.models import (
    Activity,
    ActivityType,
    Comment,
    Contact,
    CRMRecord,
    Deal,
    EntityKind,
    Task,
)
from crmdesk.crm.registry import make_record_client

# =============================================================================
# CRM Subcommand Group
# =============================================================================

crm_app = Typer(help="Browse CRM records")
app.add_typer(crm_app, name="crm")

ENTITY_NAMES: Dict[str, EntityKind] = {
    "contacts": EntityKind.CONTACT,
    "deals": EntityKind.DEAL,
    "tasks": EntityKind.TASK,
    "activities": EntityKind.ACTIVITY,
    "comments": EntityKind.COMMENT,
}


def _resolve_entity(entity: str) -> EntityKind:
    """Map a plural entity name to its kind, exiting on unknown names."""
    kind = ENTITY_NAMES.get(entity.lower())
    if kind is None:
        typer.echo(f"❌ Unknown entity type: {entity}", err=True)
        typer.echo(f"   Valid types: {', '.join(ENTITY_NAMES)}")
        raise typer.Exit(1)
    return kind


# =============================================================================
# Renderers
# =============================================================================


def _render_contact(contact: Contact) -> None:
    typer.echo(f"  [{contact.id}] {contact.name}")
    if contact.company:
        position = f"{contact.position}, " if contact.position else ""
        typer.echo(f"      {position}{contact.company}")
    if contact.email:
        typer.echo(f"      Email: {contact.email}")
    if contact.tags:
        typer.echo(f"      Tags: {', '.join(contact.tags)}")


def _render_deal(deal: Deal) -> None:
    typer.echo(f"  [{deal.id}] {deal.title}")
    typer.echo(f"      {deal.stage.label} | ${deal.value:,.0f} | {deal.probability}%")
    if deal.contact_id is not None:
        typer.echo(f"      Contact: {deal.contact_id}")


def _render_task(task: Task) -> None:
    status = "✅" if task.completed else "⬜"
    typer.echo(f"  {status} [{task.id}] {task.title}")
    due = f" | due {task.due_date.isoformat()}" if task.due_date else ""
    typer.echo(f"      Priority: {task.priority.value}{due}")


def _render_activity(activity: Activity) -> None:
    typer.echo(f"  [{activity.id}] {activity.subject}")
    when = activity.timestamp.strftime("%Y-%m-%d %H:%M")
    duration = f" | {activity.duration} min" if activity.duration is not None else ""
    typer.echo(f"      {activity.type.value} | {when}{duration}")


def _render_comment(comment: Comment) -> None:
    edited = " (edited)" if comment.edited else ""
    when = comment.timestamp.strftime("%Y-%m-%d %H:%M")
    typer.echo(f"  [{comment.id}] {comment.author} on {when}{edited}")
    typer.echo(f"      {comment.content}")


RENDERERS: Dict[EntityKind, Callable[..., None]] = {
    EntityKind.CONTACT: _render_contact,
    EntityKind.DEAL: _render_deal,
    EntityKind.TASK: _render_task,
    EntityKind.ACTIVITY: _render_activity,
    EntityKind.COMMENT: _render_comment,
}

ICONS: Dict[EntityKind, str] = {
    EntityKind.CONTACT: "👤",
    EntityKind.DEAL: "💼",
    EntityKind.TASK: "📝",
    EntityKind.ACTIVITY: "📋",
    EntityKind.COMMENT: "💬",
}


def _render_list(kind: EntityKind, records: List[CRMRecord]) -> None:
    typer.echo(f"\n{ICONS[kind]} {kind.value.title()} records ({len(records)}):")
    for record in records:
        RENDERERS[kind](record)


# =============================================================================
# Commands
# =============================================================================


@crm_app.command(name="list")
def crm_list(
    ctx: Context,
    entity: str = typer.Argument("contacts", help=f"Entity type: {', '.join(ENTITY_NAMES)}"),
    contact_id: Optional[int] = typer.Option(
        None, "--contact", "-c", help="Only records attached to this contact"
    ),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
):
    """List CRM records.

    Examples:
        crmdesk crm list contacts
        crmdesk crm list deals --contact 1
        crmdesk crm list tasks --limit 5
    """
    kind = _resolve_entity(entity)
    services = get_services(ctx)
    service = services.for_kind(kind)

    if contact_id is not None:
        if kind == EntityKind.CONTACT:
            typer.echo("❌ --contact does not apply to contacts", err=True)
            raise typer.Exit(1)
        records = run_async(service.get_by_contact_id(contact_id))
    else:
        records = run_async(service.get_all())

    _render_list(kind, records[:limit])


@crm_app.command(name="show")
def crm_show(
    ctx: Context,
    entity: str = typer.Argument(..., help=f"Entity type: {', '.join(ENTITY_NAMES)}"),
    record_id: int = typer.Argument(..., help="Record id"),
):
    """Show one record with all of its fields.

    Examples:
        crmdesk crm show contacts 1
    """
    kind = _resolve_entity(entity)
    record = run_async(get_services(ctx).for_kind(kind).get_by_id(record_id))

    typer.echo(f"\n{ICONS[kind]} {kind.value.title()} {record.id}")
    for name, value in record.model_dump(mode="json").items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        typer.echo(f"   {name}: {value if value is not None else '-'}")


@crm_app.command(name="search")
def crm_search(
    ctx: Context,
    term: str = typer.Argument(..., help="Text to look for in name, email or company"),
):
    """Search contacts by name, email or company.

    Examples:
        crmdesk crm search techcorp
    """
    contacts = run_async(get_services(ctx).contacts.search(term))
    if not contacts:
        typer.echo(f"No contacts match '{term}'")
        return
    _render_list(EntityKind.CONTACT, contacts)


@crm_app.command(name="timeline")
def crm_timeline(
    ctx: Context,
    contact_id: Optional[int] = typer.Option(None, "--contact", "-c", help="Only this contact"),
    term: Optional[str] = typer.Option(None, "--search", "-s", help="Text in subject or description"),
    activity_type: Optional[ActivityType] = typer.Option(None, "--type", "-t", help="Activity type"),
):
    """Show activities newest first.

    Examples:
        crmdesk crm timeline
        crmdesk crm timeline --contact 1 --type call
    """
    activities = run_async(
        get_services(ctx).activities.timeline(contact_id=contact_id, term=term, activity_type=activity_type)
    )
    _render_list(EntityKind.ACTIVITY, activities)


@crm_app.command(name="complete")
def crm_complete(
    ctx: Context,
    task_id: int = typer.Argument(..., help="Task id"),
):
    """Toggle a task between open and completed."""
    task = run_async(get_services(ctx).tasks.toggle_complete(task_id))
    state = "completed" if task.completed else "reopened"
    typer.echo(f"✅ Task {task.id} {state}: {task.title}")


@crm_app.command(name="health")
def crm_health(ctx: Context):
    """Check that the record service answers (remote backend only)."""
    config = ctx.obj.config
    if config.backend != BACKEND_REMOTE:
        typer.echo(f"ℹ️  Backend is '{config.backend}'; nothing to check")
        return

    client = make_record_client(config)
    if asyncio.run(client.health_check()):
        typer.echo(f"✅ Record service reachable at {config.record_service.base_url}")
    else:
        typer.echo(f"❌ Record service unreachable at {config.record_service.base_url}", err=True)
        raise typer.Exit(1)
