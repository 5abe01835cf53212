"""CLI commands for compactor."""

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from compactor import __version__, __logo__
from compactor.errors import ConfigurationError

app = typer.Typer(
    name="compactor",
    help=f"{__logo__} compactor - Context compaction for local LLM agents",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} compactor v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """compactor - Context compaction for local LLM agents."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load_compaction_config(config_path: Path | None):
    from compactor.config.loader import load_config

    try:
        config = load_config(config_path)
        return config, config.require_compaction()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        console.print("[dim]Tip: run `compactor suggest` for a starting config.[/dim]")
        raise typer.Exit(1)


def _load_messages(transcript: Path):
    from compactor.session.transcript import load_transcript

    if not transcript.exists():
        console.print(f"[red]Transcript not found: {transcript}[/red]")
        raise typer.Exit(1)
    try:
        return load_transcript(transcript)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Inspection Commands
# ============================================================================


@app.command("stats")
def stats(
    transcript: Path = typer.Argument(help="JSONL transcript to inspect"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Host config file"),
):
    """Estimate a transcript's size and preview the compaction split."""
    from compactor.compaction.estimator import TokenEstimator
    from compactor.compaction.pruning import split_messages_by_recent_budget

    _, compaction = _load_compaction_config(config_path)
    messages = _load_messages(transcript)

    estimator = TokenEstimator.from_config(compaction)
    total = estimator.estimate_context(messages)
    old, recent = split_messages_by_recent_budget(messages, compaction.keep_recent_tokens, estimator)
    triggers = total > compaction.max_tokens

    table = Table(title=f"Context stats: {transcript.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Messages", str(len(messages)))
    table.add_row("Estimated tokens", f"{total:,}")
    table.add_row("Max tokens", f"{compaction.max_tokens:,}")
    table.add_row("Usage", f"{total / compaction.max_tokens * 100:.0f}%")
    table.add_row("Would compact", "[yellow]yes[/yellow]" if triggers else "[green]no[/green]")
    table.add_row("Old (summarized)", f"{len(old)} msgs / {estimator.estimate_context(old):,} tokens")
    table.add_row("Recent (kept)", f"{len(recent)} msgs / {estimator.estimate_context(recent):,} tokens")

    console.print(table)


@app.command("suggest")
def suggest(
    model: str = typer.Option(None, "--model", "-m", help="Model name to detect a context window for"),
    context_window: int = typer.Option(None, "--context-window", "-w", help="Context window in tokens"),
):
    """Print a suggested compaction config for a model."""
    from compactor.config.loader import convert_to_camel
    from compactor.config.windows import (
        MIN_MAX_TOKENS,
        detect_context_window,
        suggest_compaction_config,
    )

    window = context_window
    if window is None and model:
        window = detect_context_window(model)
        if window:
            console.print(f"[green]✓[/green] Detected context window: ~{window:,} tokens", highlight=False)
        else:
            console.print(f"[yellow]Could not determine context window for {model}[/yellow]")

    if window and int(window * 0.8) < MIN_MAX_TOKENS:
        console.print(
            f"[yellow]Warning: 80% of {window:,} is below the {MIN_MAX_TOKENS:,} minimum; "
            f"using {MIN_MAX_TOKENS:,}.[/yellow]"
        )

    suggested = suggest_compaction_config(window)
    payload = convert_to_camel(
        suggested.model_dump(
            include={"max_tokens", "keep_recent_tokens", "summary_max_tokens", "chars_per_token"}
        )
    )
    console.print_json(json.dumps(payload))


# ============================================================================
# Compaction Commands
# ============================================================================


@app.command("compact")
def compact(
    transcript: Path = typer.Argument(help="JSONL transcript to compact"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Host config file"),
    output: Path = typer.Option(None, "--output", "-o", help="Where to write the result"),
    force: bool = typer.Option(False, "--force", "-f", help="Compact even below maxTokens"),
):
    """Run one compaction pass over a transcript using the configured model."""
    from compactor.compaction.types import CompactionState
    from compactor.plugin import ContextCompactorPlugin
    from compactor.session.transcript import save_transcript

    config, _ = _load_compaction_config(config_path)
    messages = _load_messages(transcript)

    plugin = ContextCompactorPlugin(config)
    state = CompactionState(force_recompact=force)

    new_messages, new_state = asyncio.run(plugin.engine.process(messages, state))
    entry = new_state.latest_stats

    if entry is None or entry.outcome != "compacted":
        outcome = entry.outcome if entry else "passthrough"
        console.print(f"[yellow]No compaction performed ({outcome}).[/yellow]")
        if entry and entry.error:
            console.print(f"[red]{entry.error}[/red]")
        raise typer.Exit(1 if outcome == "failed" else 0)

    destination = output or transcript.with_name(f"{transcript.stem}.compacted.jsonl")
    save_transcript(destination, new_messages, metadata={"compacted_from": str(transcript)})

    console.print(
        f"[green]✓[/green] {entry.tokens_before:,} -> {entry.tokens_after:,} tokens, "
        f"{entry.messages_summarized} messages summarized"
    )
    console.print(f"[dim]Saved: {destination}[/dim]")


if __name__ == "__main__":
    app()
