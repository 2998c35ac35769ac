"""Rich terminal reporter."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from safepatch.changes.models import ApplyStepFile, ConsistencyIssue, ProposedChange, ProposedFile
from safepatch.changes.views import sort_changes

_STATE_STYLE = {
    "pending": "bold black on bright_cyan",
    "applied": "bold white on green",
    "discarded": "bold white on grey42",
}

_SEVERITY_STYLE = {
    "error": "bold white on red",
    "warn": "bold black on yellow",
}

_SEVERITY_ICON = {
    "error": "🔴",
    "warn": "🟡",
}

_STATUS_COLOUR = {
    "changed": "cyan",
    "unchanged": "green",
    "skipped": "dim",
    "error": "red",
    "planning": "yellow",
}


def _change_state(change: ProposedChange) -> str:
    if change.discarded:
        return "discarded"
    return "applied" if change.applied else "pending"


def _state_pill(state: str) -> Text:
    return Text(f" {state.upper()} ", style=_STATE_STYLE.get(state, ""))


def _severity_pill(severity: str) -> Text:
    style = _SEVERITY_STYLE.get(severity, "")
    icon = _SEVERITY_ICON.get(severity, "")
    return Text(f" {icon} {severity.upper()} ", style=style)


def _preview(text: str, limit: int = 60) -> str:
    flat = text.replace("\r", "").replace("\n", "⏎")
    return flat if len(flat) <= limit else flat[: limit - 1] + "…"


def render_proposal(
    proposed: ProposedFile,
    *,
    show_summary: bool = True,
    console: Optional[Console] = None,
) -> None:
    """Print a proposal's changes as a table."""
    console = console or Console(stderr=True)
    colour = _STATUS_COLOUR.get(proposed.status.value, "")

    console.print()
    console.print(
        f"[bold]{proposed.rel}[/bold]  [{colour}]{proposed.status.value}[/{colour}]"
        + (f"  [dim]{proposed.message}[/dim]" if proposed.message else "")
    )
    if not proposed.changes:
        return

    table = Table(show_lines=True, border_style="dim")
    table.add_column("State", justify="center", width=12)
    table.add_column("Id", style="cyan")
    table.add_column("Range", justify="right", style="green")
    table.add_column("Old", min_width=15)
    table.add_column("New", min_width=15)

    for change in sort_changes(proposed.changes):
        table.add_row(
            _state_pill(_change_state(change)),
            change.id,
            f"{change.start}..{change.end}",
            Text(_preview(change.old_text), style="red"),
            Text(_preview(change.new_text), style="green"),
        )
    console.print(table)

    if show_summary:
        console.print(
            f"[dim]Pending:[/dim] {len(proposed.pending)}  "
            f"[dim]Applied:[/dim] {len(proposed.applied)}  "
            f"[dim]Discarded:[/dim] {len(proposed.discarded)}"
        )


def render_issues(issues: List[ConsistencyIssue], *, console: Optional[Console] = None) -> None:
    """Print consistency issues, or a clean verdict when there are none."""
    console = console or Console(stderr=True)

    console.print()
    if not issues:
        console.print("[bold green]✅ No consistency issues.[/bold green]")
        return

    table = Table(title="Consistency Issues", show_lines=True, title_style="bold", border_style="dim")
    table.add_column("Severity", justify="center", width=12)
    table.add_column("Code", style="cyan")
    table.add_column("File", style="magenta")
    table.add_column("Message", min_width=20)
    table.add_column("Suggestion", style="dim")

    for issue in issues:
        table.add_row(
            _severity_pill(issue.severity.value),
            issue.code or "-",
            issue.rel or "-",
            issue.message,
            issue.suggestion or "",
        )
    console.print(table)

    if any(i.is_blocking for i in issues):
        console.print("[bold red]❌ BLOCKED — resolve the errors above before applying.[/bold red]")
    else:
        console.print("[bold yellow]⚠️  Warnings only. Apply allowed.[/bold yellow]")


def render_step(step_file: ApplyStepFile, *, console: Optional[Console] = None) -> None:
    """Print a one-line summary of an apply."""
    console = console or Console(stderr=True)
    ids = ", ".join(step_file.applied_change_ids) or "none"
    console.print(
        f"[bold green]✅ Applied[/bold green] {len(step_file.applied_change_ids)} change(s) "
        f"to [magenta]{step_file.rel}[/magenta] [dim]({ids})[/dim]"
    )
