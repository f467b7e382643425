"""Command line front end for the verification engine using Typer and Rich."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from verification_system.config.logging import get_logger
from verification_system.config.settings import settings
from verification_system.data_management.schemas import Entity, EntityKind, VerificationLog
from verification_system.utils.exceptions import (
    InvalidDecisionError,
    NotFoundError,
    PersistenceError,
)
from verification_system.verification.orchestrator import (
    VerificationOrchestrator,
    create_orchestrator,
)

app = typer.Typer(
    help="Verification engine CLI - AI-assisted verification of schools, students, requests and colleges",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")

STATUS_STYLES = {
    "verified": "green",
    "approved": "green",
    "in_review": "yellow",
    "pending": "yellow",
    "rejected": "red",
}


def _get_orchestrator() -> VerificationOrchestrator:
    try:
        return create_orchestrator(settings)
    except PersistenceError as e:
        console.print(f"[red]✗[/red] Storage error: {e}")
        raise typer.Exit(2)


def _run(coro):
    """Run a coroutine, mapping client and storage errors to exit codes."""
    try:
        return asyncio.run(coro)
    except (NotFoundError, InvalidDecisionError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    except PersistenceError as e:
        console.print(f"[red]✗[/red] Storage error: {e}")
        logger.error(f"Persistence failure: {e}")
        raise typer.Exit(2)


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _log_table(title: str, logs: list[VerificationLog]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta", expand=True)
    table.add_column("Log ID", style="cyan")
    table.add_column("Entity")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Decision")
    table.add_column("Created")
    for log in logs:
        decision = log.manual_review.final_decision.value if log.manual_review else "-"
        table.add_row(
            log.log_id,
            f"{log.entity_type.value}:{log.entity_id}",
            str(log.ai_score),
            log.verification_type.value,
            log.status.value,
            decision,
            log.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


@app.command()
def status() -> None:
    """
    Display configuration and store status.
    """
    logger.info("Displaying system status")

    orchestrator = _get_orchestrator()

    async def _collect():
        return (
            await orchestrator.log_store.get_stats(),
            await orchestrator.entity_store.get_stats(),
        )

    log_stats, entity_stats = _run(_collect())

    table = Table(title="Verification System Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=18)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    oracle_status = "✓ Configured" if settings.oracle_configured else "⚠ Not Configured"
    oracle_details = (
        f"{settings.gemini_model} (timeout {settings.oracle_timeout_seconds}s, "
        f"retries {settings.oracle_max_retries})"
    )
    table.add_row("Gemini Oracle", oracle_status, oracle_details)
    table.add_row("Entity Store", f"{entity_stats['total']} entities", settings.entity_store_path)
    table.add_row(
        "Verification Logs",
        f"{log_stats['total']} logs",
        f"{log_stats['pending_manual_review']} pending review ({settings.log_store_path})",
    )
    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")

    console.print(table)


@app.command("import-entities")
def import_entities(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of entities"),
) -> None:
    """
    Register entities from a JSON file.

    Each item needs a 'kind' and may carry 'entity_id', 'attributes' and
    'documents'.
    """
    try:
        items = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        console.print(f"[red]✗[/red] Could not read {path}: {e}")
        raise typer.Exit(1)
    if not isinstance(items, list):
        console.print("[red]✗[/red] Expected a JSON list of entities")
        raise typer.Exit(1)

    orchestrator = _get_orchestrator()

    async def _import() -> list[Entity]:
        created = []
        for item in items:
            created.append(await orchestrator.entity_store.create(Entity.model_validate(item)))
        return created

    try:
        created = _run(_import())
    except ValueError as e:
        console.print(f"[red]✗[/red] Invalid entity: {e}")
        raise typer.Exit(1)

    for entity in created:
        console.print(f"[green]✓[/green] {entity.kind.value} [cyan]{entity.entity_id}[/cyan]")
    console.print(f"\nImported {len(created)} entities")


@app.command()
def verify(
    kind: EntityKind = typer.Argument(..., help="school, student, request or college"),
    entity_id: str = typer.Argument(..., help="Entity identifier"),
) -> None:
    """
    Run AI verification for one entity.
    """
    logger.info(f"Verification requested for {kind.value} {entity_id}")

    orchestrator = _get_orchestrator()
    outcome = _run(orchestrator.verify(kind, entity_id))
    result = outcome.result
    entity = outcome.entity

    lines = [
        f"[bold]Status:[/bold] {_styled(entity.status.value)}",
        f"[bold]Score:[/bold] {result.score}/100 (confidence {result.confidence})",
        f"[bold]Log:[/bold] {outcome.log_id}",
        f"[bold]Manual review:[/bold] {'required' if outcome.requires_manual_review else 'not required'}",
    ]
    for name, value in result.sub_scores.items():
        lines.append(f"[dim]{name}:[/dim] {value}")
    if result.key_findings:
        lines.append("\n[bold]Key findings[/bold]")
        lines.extend(f"  • {finding}" for finding in result.key_findings)
    if result.flags:
        lines.append("\n[bold red]Flags[/bold red]")
        lines.extend(f"  • {flag}" for flag in result.flags)
    if result.recommendations:
        lines.append(f"\n[bold]Recommendations:[/bold] {result.recommendations}")

    console.print(Panel(
        "\n".join(lines),
        title=f"{kind.display_name} verification",
        border_style="green" if not outcome.requires_manual_review else "yellow",
    ))


@app.command()
def review(
    log_id: str = typer.Argument(..., help="Verification log identifier"),
    decision: str = typer.Option(..., "--decision", "-d", help="approved, rejected or needs_more_info"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Reviewer notes"),
    reviewer: str = typer.Option("admin", "--reviewer", "-r", help="Reviewer identifier"),
) -> None:
    """
    Record a manual review decision on a verification log.
    """
    logger.info(f"Manual review of {log_id} by {reviewer}: {decision}")

    orchestrator = _get_orchestrator()
    outcome = _run(orchestrator.manual_review(log_id, reviewer, decision, notes))

    console.print(
        f"[green]✓[/green] Manual review completed: "
        f"{outcome.entity.kind.value} [cyan]{outcome.entity.entity_id}[/cyan] "
        f"is now {_styled(outcome.entity.status.value)}"
    )


@app.command()
def pending() -> None:
    """
    List verification logs waiting for manual review.
    """
    orchestrator = _get_orchestrator()
    logs = _run(orchestrator.pending_reviews())
    if not logs:
        console.print("[green]No verifications pending manual review[/green]")
        return
    console.print(_log_table(f"Pending manual review ({len(logs)})", logs))


@app.command()
def logs(
    entity_id: str = typer.Argument(..., help="Entity identifier"),
) -> None:
    """
    Show the verification history of one entity.
    """
    orchestrator = _get_orchestrator()
    history = _run(orchestrator.logs_for_entity(entity_id))
    if not history:
        console.print(f"[yellow]No verification logs for {entity_id}[/yellow]")
        return
    console.print(_log_table(f"Verification history ({len(history)})", history))


@app.command()
def analytics(
    kind: Optional[EntityKind] = typer.Option(None, "--kind", "-k", help="Restrict to one entity kind"),
    period: str = typer.Option("month", "--period", "-p", help="Trend bucket: day, week or month"),
) -> None:
    """
    Show verification analytics: score bands, common flags, outcomes by kind and trends.
    """
    if period not in ("day", "week", "month"):
        console.print("[red]✗[/red] Period must be day, week or month")
        raise typer.Exit(1)

    store = _get_orchestrator().log_store

    async def _collect():
        return (
            await store.score_distribution(entity_type=kind),
            await store.flag_frequency(entity_type=kind),
            await store.verification_by_type(),
            await store.trends(period=period, entity_type=kind),
        )

    distribution, flags, by_type, trend = _run(_collect())

    score_table = Table(title="AI score distribution", header_style="bold magenta", expand=True)
    score_table.add_column("Band", style="cyan")
    score_table.add_column("Count", justify="right")
    for band, count in distribution.items():
        score_table.add_row(band, str(count))
    console.print(score_table)

    flag_table = Table(title="Most common flags", header_style="bold magenta", expand=True)
    flag_table.add_column("Flag", style="cyan")
    flag_table.add_column("Count", justify="right")
    for flag, count in flags:
        flag_table.add_row(flag, str(count))
    console.print(flag_table)

    type_table = Table(title="Outcomes by entity type", header_style="bold magenta", expand=True)
    for column in ("Type", "Total", "Avg score", "Auto-approved", "Manual review", "Auto-rejected"):
        type_table.add_column(column)
    for etype, entry in sorted(by_type.items()):
        if kind and etype != kind.value:
            continue
        type_table.add_row(
            etype,
            str(entry["total_verifications"]),
            f"{entry['avg_ai_score']:.1f}",
            str(entry["auto_approved"]),
            str(entry["manual_review"]),
            str(entry["auto_rejected"]),
        )
    console.print(type_table)

    trend_table = Table(title=f"Verifications per {period}", header_style="bold magenta", expand=True)
    trend_table.add_column("Period", style="cyan")
    trend_table.add_column("Total", justify="right")
    trend_table.add_column("Breakdown")
    for bucket in trend:
        breakdown = ", ".join(
            f"{v['entity_type']}: {v['count']} (avg {v['avg_score']:.1f})"
            for v in bucket["verifications"]
        )
        trend_table.add_row(bucket["period"], str(bucket["total_verifications"]), breakdown)
    console.print(trend_table)


if __name__ == "__main__":
    app()
