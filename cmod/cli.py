"""cmod CLI — run and inspect content moderation from the terminal."""

import logging
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cmod import __version__
from cmod.config import ClassifierConfig, Settings

console = Console()

KINDS = ["image", "video", "text", "url", "media"]
STATUSES = ["pending", "approved", "rejected", "reviewing"]

_STATUS_STYLE = {
    "approved": "green",
    "rejected": "red",
    "pending": "yellow",
    "reviewing": "cyan",
}


def _styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/]"


def _orchestrator(ctx: click.Context):
    from cmod.moderation.audit import ModerationAuditLog
    from cmod.moderation.catalog import ContentCatalog
    from cmod.moderation.classifier import ClassificationAdapter
    from cmod.moderation.orchestrator import ModerationOrchestrator
    from cmod.moderation.store import ModerationStore

    settings: Settings = ctx.obj["settings"]
    return ModerationOrchestrator(
        store=ModerationStore(settings.records_dir),
        adapter=ClassificationAdapter(ctx.obj["classifier"]),
        source=ContentCatalog(settings.catalog_dir),
        audit_log=ModerationAuditLog(settings.audit_dir),
        thresholds=ctx.obj["thresholds"],
    )


def _print_record(record) -> None:
    auto = record.auto_result
    lines = [
        f"Moderation ID: [cyan]{record.id}[/]",
        f"Content: {record.content_id} ({record.content_kind.value})",
        f"Status: {_styled(record.status.value)}",
    ]
    if auto:
        lines.append(f"Reason: {auto.reason}")
        lines.append(f"Confidence: {auto.confidence:.2f}")
        lines.append("Scores: " + ", ".join(f"{k}={v:.2f}" for k, v in auto.categories.items()))
        lines.append("Flags: " + (", ".join(auto.flags) or "-"))
    if record.human_review:
        review = record.human_review
        lines.append(f"Human review: {review.decision.value} by {review.reviewer_id or '?'} — {review.note}")
    console.print(Panel("\n".join(lines), title="Moderation Record"))


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", envvar="CMOD_HOME", default=None, help="Directory for records, catalog and audit log")
@click.option("--thresholds", "thresholds_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="YAML file overriding policy thresholds")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None, thresholds_path: str | None, verbose: bool):
    """cmod — automated moderation for uploaded paid content.

    Classifies uploads and text, applies the platform policy, and keeps one
    auditable moderation record per content item.
    """
    from cmod.moderation.policy import DEFAULT_THRESHOLDS, load_thresholds

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings.from_env(data_dir)
    ctx.obj["classifier"] = ClassifierConfig.from_env()
    ctx.obj["thresholds"] = load_thresholds(thresholds_path) if thresholds_path else DEFAULT_THRESHOLDS


# ── Inspection ───────────────────────────────────────────────────────


@main.command()
@click.argument("text")
def detect(text: str):
    """Show the context signals found in TEXT (URL, filename or caption)."""
    from cmod.moderation.signals import detect_context

    signals = detect_context(text)
    yes, no = "[green]yes[/]", "[dim]no[/]"
    console.print(f"  Studio context:      {yes if signals.is_studio_context else no}")
    console.print(f"  Technical equipment: {yes if signals.is_technical_equipment else no}")


@main.command()
@click.argument("kind", type=click.Choice(KINDS))
@click.argument("payload")
@click.pass_context
def classify(ctx: click.Context, kind: str, payload: str):
    """Classify PAYLOAD and show the decision without storing anything."""
    from cmod.moderation.classifier import ClassificationAdapter
    from cmod.moderation.policy import decide

    result = ClassificationAdapter(ctx.obj["classifier"]).classify(kind, payload)
    decision = decide(result.categories, result.flags, thresholds=ctx.obj["thresholds"])

    table = Table(title=f"Classification ({result.source})")
    table.add_column("Category", style="cyan")
    table.add_column("Raw", justify="right")
    table.add_column("Adjusted", justify="right", style="green")
    for name, raw in result.categories.items():
        table.add_row(name, f"{raw:.2f}", f"{decision.categories.get(name, raw):.2f}")
    console.print(table)
    console.print(f"  Flags: {', '.join(sorted(result.flags)) or '-'}")
    console.print(f"  Decision: {_styled(decision.status.value)} — {decision.reason}")


# ── Moderation ───────────────────────────────────────────────────────


@main.command()
@click.argument("content_id")
@click.argument("kind", type=click.Choice(KINDS))
@click.argument("payload")
@click.pass_context
def moderate(ctx: click.Context, content_id: str, kind: str, payload: str):
    """Moderate one content item and store the result.

    PAYLOAD is the media URL for image/video/media, or the raw text for text/url.
    """
    from cmod.moderation.errors import ModerationError

    try:
        record = _orchestrator(ctx).moderate_one(content_id, kind, payload)
    except ModerationError as e:
        console.print(f"[red]Moderation failed:[/] {e}")
        sys.exit(1)
    _print_record(record)


@main.command()
@click.argument("moderation_id")
@click.argument("decision", type=click.Choice(["approve", "reject"]))
@click.option("--note", "-n", default="", help="Reviewer note")
@click.option("--reviewer", "-r", default="", help="Reviewer ID")
@click.pass_context
def review(ctx: click.Context, moderation_id: str, decision: str, note: str, reviewer: str):
    """Record a human decision on a pending moderation record."""
    from cmod.moderation.errors import ModerationError

    try:
        record = _orchestrator(ctx).submit_human_review(moderation_id, decision, note, reviewer)
    except ModerationError as e:
        console.print(f"[red]Review rejected:[/] {e}")
        sys.exit(1)
    _print_record(record)


@main.command()
@click.option("--skip-moderated", is_flag=True, help="Only moderate items without a record")
@click.option("--limit", type=int, default=None, help="Maximum number of items to process")
@click.pass_context
def scan(ctx: click.Context, skip_moderated: bool, limit: int | None):
    """Re-moderate every item in the content catalog."""
    console.print("\n[bold blue]cmod[/] — Bulk moderation\n")

    summary = _orchestrator(ctx).moderate_all(skip_moderated=skip_moderated, limit=limit)

    console.print(
        f"  Processed: {summary.processed}  "
        f"[green]approved {summary.approved}[/]  "
        f"[red]rejected {summary.rejected}[/]  "
        f"[yellow]pending {summary.pending}[/]"
    )
    for error in summary.errors:
        console.print(f"  [red]x[/] {error}")
    if summary.errors:
        sys.exit(1)


# ── Queries ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.option("--status", "-s", type=click.Choice(STATUSES), default=None, help="Filter by status")
@click.pass_context
def list_records(ctx: click.Context, status: str | None):
    """List moderation records."""
    from cmod.moderation.store import ModerationStore

    records = ModerationStore(ctx.obj["settings"].records_dir).list_records(status=status)
    if not records:
        console.print("[yellow]No moderation records.[/]")
        return

    table = Table(title=f"Moderation Records ({len(records)})")
    table.add_column("ID", style="dim")
    table.add_column("Content", style="cyan")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Reason")
    for r in records:
        reason = r.auto_result.reason if r.auto_result else ""
        table.add_row(r.id, r.content_id, r.content_kind.value, _styled(r.status.value), reason[:60])
    console.print(table)


@main.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show moderation counts and the auto-approval rate."""
    from cmod.moderation.store import ModerationStore

    s = ModerationStore(ctx.obj["settings"].records_dir).stats()
    console.print(Panel(
        f"Total: {s.total}\n"
        f"Approved: [green]{s.approved}[/]\n"
        f"Rejected: [red]{s.rejected}[/]\n"
        f"Pending: [yellow]{s.pending}[/]\n"
        f"Auto-approval rate: {s.auto_approval_rate:.1f}%",
        title="Moderation Stats",
    ))


@main.command()
@click.option("--content", "content_id", default=None, help="Only events for this content ID")
@click.option("--record", "moderation_id", default=None, help="Only events for this moderation ID")
@click.option("--action", type=click.Choice(["decided", "claimed", "reviewed"]), default=None)
@click.option("--limit", type=int, default=50, show_default=True)
@click.pass_context
def audit(ctx: click.Context, content_id: str | None, moderation_id: str | None, action: str | None, limit: int):
    """Show the moderation audit trail, newest first."""
    from cmod.moderation.audit import ModerationAuditLog

    log = ModerationAuditLog(ctx.obj["settings"].audit_dir)
    events = log.get_events(
        content_id=content_id,
        moderation_id=moderation_id,
        action=f"moderation.{action}" if action else None,
        limit=limit,
    )
    if not events:
        console.print("[yellow]No audit events.[/]")
        return

    table = Table(title=f"Audit Trail ({len(events)} events)")
    table.add_column("Time", style="dim")
    table.add_column("Action")
    table.add_column("Content", style="cyan")
    table.add_column("Status")
    table.add_column("Actor")
    for e in events:
        table.add_row(e.timestamp[:19], e.action.split(".")[-1], e.content_id, _styled(e.status), e.actor)
    console.print(table)


# ── Catalog ──────────────────────────────────────────────────────────


@main.group()
def catalog():
    """Manage the content catalog used by 'cmod scan'."""


@catalog.command(name="add")
@click.argument("content_id")
@click.argument("kind", type=click.Choice(KINDS))
@click.argument("payload")
@click.option("--label", "-l", default="", help="Human-friendly name, e.g. the filename")
@click.pass_context
def catalog_add(ctx: click.Context, content_id: str, kind: str, payload: str, label: str):
    """Register a content item."""
    from cmod.moderation.catalog import ContentCatalog

    item = ContentCatalog(ctx.obj["settings"].catalog_dir).add_item(content_id, kind, payload, label)
    console.print(f"  Added: [cyan]{item.content_id}[/] ({item.kind.value})")


@catalog.command(name="list")
@click.pass_context
def catalog_list(ctx: click.Context):
    """List catalog items."""
    from cmod.moderation.catalog import ContentCatalog

    items = ContentCatalog(ctx.obj["settings"].catalog_dir).list_items()
    if not items:
        console.print("[yellow]Catalog is empty.[/]")
        return
    table = Table(title=f"Catalog ({len(items)} items)")
    table.add_column("Content", style="cyan")
    table.add_column("Kind")
    table.add_column("Label")
    table.add_column("Payload")
    for item in items:
        table.add_row(item.content_id, item.kind.value, item.label, item.payload[:60])
    console.print(table)


@catalog.command(name="remove")
@click.argument("content_id")
@click.pass_context
def catalog_remove(ctx: click.Context, content_id: str):
    """Remove a content item from the catalog."""
    from cmod.moderation.catalog import ContentCatalog

    if ContentCatalog(ctx.obj["settings"].catalog_dir).remove_item(content_id):
        console.print(f"  Removed: {content_id}")
    else:
        console.print(f"[yellow]No catalog item '{content_id}'.[/]")


if __name__ == "__main__":
    main()
