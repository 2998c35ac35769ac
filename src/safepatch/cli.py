"""Typer CLI for applying, planning, and committing patches."""

from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from safepatch import __version__

app = typer.Typer(
    name="safepatch",
    help="Apply unified-diff patches safely, one reviewed change at a time.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)


def _load_cfg(config: Optional[str]):
    """Load config from the working directory, exit 2 on failure."""
    from safepatch.config.loader import ConfigError, load_config

    try:
        return load_config(Path.cwd(), config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _read(path: str) -> str:
    from safepatch.workspace.fsutil import WorkspaceError, read_text

    try:
        return read_text(path)
    except WorkspaceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _output_format(cfg, format: Optional[str]) -> str:
    if format:
        if format not in ("terminal", "json"):
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format
    return cfg.output.format


def _load_proposal(path: str):
    from safepatch.workspace import WorkspaceError, load_proposal

    try:
        return load_proposal(path)
    except WorkspaceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _report_refusal(proposed, issues, fmt: str) -> None:
    from safepatch.output import json_report, terminal

    if fmt == "json":
        print(json_report.render(proposed, issues))
    else:
        terminal.render_issues(issues, console=console)


# ── apply ─────────────────────────────────────────────────────────────────────


@app.command()
def apply(
    patch: str = typer.Argument(..., help="Unified diff to apply"),
    target: str = typer.Argument(..., help="File the patch applies to"),
    write: bool = typer.Option(False, "--write", "-w", help="Write the result back to TARGET"),
    fuzz: Optional[int] = typer.Option(None, "--fuzz", min=0, help="Lines searched around each hunk"),
    strict_whitespace: bool = typer.Option(
        False, "--strict-whitespace", help="Require exact trailing whitespace in context lines"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output with timing"),
) -> None:
    """Apply PATCH to TARGET and print (or write) the result."""
    from safepatch.errors import ApplyError, ParseError
    from safepatch.patch import apply_raw_patch
    from safepatch.workspace.fsutil import WorkspaceError, atomic_write_text

    cfg = _load_cfg(config)
    if fuzz is not None:
        cfg.apply.fuzz_window = fuzz
    if strict_whitespace:
        cfg.apply.ignore_trailing_whitespace = False
    options = cfg.apply.to_options()

    patch_text = _read(patch)
    original = _read(target)

    if verbose or debug:
        console.print(f"[dim]Fuzz window: {options.fuzz_window}[/dim]")
        console.print(f"[dim]Trailing whitespace tolerant: {options.ignore_trailing_whitespace}[/dim]")

    started = time.perf_counter()
    try:
        result = apply_raw_patch(original, patch_text, options)
    except ParseError as exc:
        console.print(f"[bold red]Parse error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    except ApplyError as exc:
        console.print(f"[bold red]Patch refused:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    if debug:
        console.print(f"[dim]Apply duration: {(time.perf_counter() - started) * 1000:.1f}ms[/dim]")

    if not write:
        typer.echo(result, nl=False)
        return

    if result == original:
        console.print(f"[dim]{target} already up to date.[/dim]")
        return
    try:
        atomic_write_text(target, result)
    except WorkspaceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    console.print(f"[green]✓[/green] Patched {target}")


# ── diff ──────────────────────────────────────────────────────────────────────


@app.command()
def diff(
    old: str = typer.Argument(..., help="Original file"),
    new: str = typer.Argument(..., help="Modified file"),
    rel: Optional[str] = typer.Option(None, "--rel", help="Path shown in the ---/+++ headers"),
    context: int = typer.Option(3, "--context", "-U", min=0, help="Context lines per hunk"),
) -> None:
    """Print a unified diff that turns OLD into NEW."""
    from safepatch.patch import diff_of

    text = diff_of(_read(old), _read(new), rel=rel or Path(old).name, context=context)
    typer.echo(text, nl=False)


# ── plan ──────────────────────────────────────────────────────────────────────


@app.command()
def plan(
    target: str = typer.Argument(..., help="File to plan changes for"),
    new: Optional[str] = typer.Option(None, "--new", help="Proposed full content of TARGET"),
    patch: Optional[str] = typer.Option(None, "--patch", help="Unified diff against TARGET"),
    out: str = typer.Option(..., "--out", "-o", help="Proposal document to write (.json or .yaml)"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Decompose the proposed edit of TARGET into reviewable changes."""
    from safepatch.changes import FileStatus, plan_file
    from safepatch.output import json_report, terminal
    from safepatch.workspace import WorkspaceError, save_proposal

    if (new is None) == (patch is None):
        console.print("[bold red]Error:[/bold red] pass exactly one of --new or --patch")
        raise typer.Exit(code=2)

    cfg = _load_cfg(config)
    fmt = _output_format(cfg, format)

    baseline = _read(target)
    proposed = plan_file(
        str(Path(target).resolve()),
        Path(target).as_posix(),
        baseline,
        new_text=_read(new) if new is not None else None,
        patch=_read(patch) if patch is not None else None,
        options=cfg.apply.to_options(),
        id_prefix=cfg.plan.id_prefix,
    )

    if proposed.status == FileStatus.ERROR:
        console.print(f"[bold red]Planning failed:[/bold red] {proposed.message}")
        raise typer.Exit(code=1)

    try:
        save_proposal(out, proposed)
    except WorkspaceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if fmt == "json":
        print(json_report.render(proposed))
    else:
        terminal.render_proposal(proposed, show_summary=cfg.output.show_summary, console=console)
    if verbose:
        console.print(f"[dim]Proposal written to {out}[/dim]")


# ── check ─────────────────────────────────────────────────────────────────────


@app.command()
def check(
    proposal: str = typer.Argument(..., help="Proposal document"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
) -> None:
    """Check a proposal against the file on disk. Exit 1 when blocked."""
    from safepatch.changes import blocking, check_consistency
    from safepatch.output import json_report, terminal

    fmt = _output_format(_load_cfg(config), format)
    proposed = _load_proposal(proposal)
    issues = check_consistency(proposed, _read(proposed.uri))

    if fmt == "json":
        print(json_report.render(proposed, issues))
    else:
        terminal.render_issues(issues, console=console)

    if blocking(issues):
        raise typer.Exit(code=1)


# ── commit ────────────────────────────────────────────────────────────────────


@app.command()
def commit(
    proposal: str = typer.Argument(..., help="Proposal document"),
    change: Optional[List[str]] = typer.Option(None, "--change", help="Change id to apply (repeatable)"),
    all_changes: bool = typer.Option(False, "--all", help="Apply every pending change"),
    steps: Optional[str] = typer.Option(None, "--steps", help="Append the apply record to this JSON-lines log"),
    label: str = typer.Option("commit", "--label", help="Label stored with the step record"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    debug: bool = typer.Option(False, "--debug", help="Debug output with timing"),
) -> None:
    """Apply selected changes to the file on disk and update the proposal."""
    from safepatch.changes import StepHistory
    from safepatch.errors import ConsistencyError
    from safepatch.output import json_report, terminal
    from safepatch.workspace import (
        FileLocks,
        WorkspaceError,
        commit_selected,
        load_steps,
        save_proposal,
        save_steps,
    )

    fmt = _output_format(_load_cfg(config), format)
    proposed = _load_proposal(proposal)

    if all_changes:
        change_ids = [c.id for c in proposed.pending]
    elif change:
        change_ids = list(change)
    else:
        console.print("[bold red]Error:[/bold red] pass --change ID or --all")
        raise typer.Exit(code=2)

    unknown = [cid for cid in change_ids if proposed.get(cid) is None]
    if unknown:
        console.print(f"[yellow]⚠[/yellow]  Ignoring unknown change id(s): {', '.join(unknown)}")

    started = time.perf_counter()
    try:
        step_file = commit_selected(proposed.uri, proposed, change_ids, FileLocks())
        save_proposal(proposal, proposed)
        if steps:
            history = StepHistory(load_steps(steps))
            history.record(label, [step_file])
            save_steps(steps, history.steps)
    except ConsistencyError as exc:
        _report_refusal(proposed, exc.issues, fmt)
        raise typer.Exit(code=1) from exc
    except WorkspaceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if debug:
        console.print(f"[dim]Commit duration: {(time.perf_counter() - started) * 1000:.1f}ms[/dim]")

    if fmt == "json":
        print(json_report.render(proposed, step_file=step_file))
    else:
        terminal.render_step(step_file, console=console)


# ── rollback ──────────────────────────────────────────────────────────────────


@app.command()
def rollback(
    proposal: str = typer.Argument(..., help="Proposal document"),
    steps: str = typer.Option(..., "--steps", help="JSON-lines step log written by commit"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
) -> None:
    """Undo the most recent committed step."""
    from safepatch.changes import StepHistory
    from safepatch.errors import ChangeStateError, ConsistencyError, UnknownChangeError
    from safepatch.workspace import (
        FileLocks,
        WorkspaceError,
        atomic_write_text,
        load_steps,
        read_text,
        save_proposal,
        save_steps,
    )

    fmt = _output_format(_load_cfg(config), format)
    proposed = _load_proposal(proposal)
    locks = FileLocks()

    try:
        history = StepHistory(load_steps(steps))
        latest = history.latest()
        if latest is None:
            console.print("[yellow]⚠[/yellow]  Nothing to roll back.")
            raise typer.Exit(code=1)
        with locks.hold(proposed.uri):
            current = {proposed.uri: read_text(proposed.uri)}
            restored = history.rollback(latest.id, {proposed.uri: proposed}, current)
            atomic_write_text(proposed.uri, restored[proposed.uri])
        save_proposal(proposal, proposed)
        save_steps(steps, history.steps)
    except ConsistencyError as exc:
        _report_refusal(proposed, exc.issues, fmt)
        raise typer.Exit(code=1) from exc
    except ChangeStateError as exc:
        console.print(f"[bold red]Refused:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except (UnknownChangeError, WorkspaceError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    console.print(f"[green]✓[/green] Rolled back {latest.id} ({latest.label}) on {proposed.rel}")


# ── show ──────────────────────────────────────────────────────────────────────


@app.command()
def show(
    proposal: str = typer.Argument(..., help="Proposal document"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .safepatch.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
) -> None:
    """Show a proposal's changes and their state."""
    from safepatch.output import json_report, terminal

    cfg = _load_cfg(config)
    fmt = _output_format(cfg, format)
    proposed = _load_proposal(proposal)

    if fmt == "json":
        print(json_report.render(proposed))
    else:
        terminal.render_proposal(proposed, show_summary=cfg.output.show_summary, console=console)


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .safepatch.toml in the working directory."""
    from safepatch.config.defaults import DEFAULT_TOML
    from safepatch.config.loader import CONFIG_FILENAME

    config_path = Path.cwd() / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"safepatch {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """safepatch — apply unified-diff patches safely."""
