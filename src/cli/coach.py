"""
CACR Coach CLI - Practice reviews against hidden ground truth.

Usage:
    cacr score results.json            # Score a submission file
    cacr next history.json             # Show next difficulty and focus
    cacr train bank.json               # Interactive coaching session
    cacr train bank.json --save h.json # ...and keep the round history

The engine does the scoring and calibration; this module only reads files,
asks the learner for input and renders results.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

# Local imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from config import get_settings
from src.adaptive import ChallengeSelector, CategoryCoverageTracker, DifficultyCalibrator, Round, RoundHistory
from src.coach import ChallengeBank, EngineConfig, SessionStateMachine
from src.core import AssessmentError, Severity, TrivialReflectionError, get_matcher, parse_findings
from src.scoring import Scorecard, SubmissionScorer

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="cacr",
    help="CACR Coach - Challenge, Attempt, Compare, Reflect",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """Route loguru output to stderr (and optionally a file)."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(log_file, level=level, rotation="10 MB")


def _load_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {path}: {e}[/]")
        raise typer.Exit(code=1)


def _fail(error: AssessmentError) -> None:
    console.print(f"[red]✗ {error.message}[/]")
    for issue in error.details.get("issues", []):
        console.print(f"  [red]- {issue}[/]")
    raise typer.Exit(code=1)


# =============================================================================
# Rendering
# =============================================================================


def render_scorecard(scorecard: Scorecard, title: str = "Scorecard") -> None:
    """Print a scorecard as rich tables."""
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("True Positives", str(scorecard.tp_count))
    table.add_row("False Positives", str(scorecard.fp_count))
    table.add_row("Missed", str(scorecard.fn_count))
    table.add_row("Precision", f"{scorecard.precision:.2f}")
    table.add_row("Recall", f"{scorecard.recall:.2f}")
    table.add_row("F1", f"{scorecard.f1:.2f}")
    table.add_row("Severity Accuracy", f"{scorecard.severity_accuracy:.2f}")
    table.add_row("Category Accuracy", f"{scorecard.category_accuracy:.2f}")
    console.print(table)

    if scorecard.per_category_recall:
        by_category = Table(title="Recall by Category")
        by_category.add_column("Category", style="cyan")
        by_category.add_column("Found", justify="right")
        by_category.add_column("Recall", justify="right")
        for category, (found, total) in scorecard.category_counts().items():
            recall = scorecard.per_category_recall[category]
            style = "green" if recall >= 0.8 else "yellow" if recall >= 0.4 else "red"
            by_category.add_row(category, f"{found}/{total}", f"[{style}]{recall:.2f}[/]")
        console.print(by_category)

    for truth in scorecard.false_negatives:
        console.print(f"[yellow]Missed:[/] [{truth.severity.value}] {truth.category} @ {truth.location}")
        if truth.description:
            console.print(f"  [dim]{truth.description}[/]")
    for submitted, trap in scorecard.trap_hits:
        console.print(f"[magenta]Trap:[/] {submitted.location} looked like {trap.category} but is safe")


def _history_payload(machine: SessionStateMachine) -> dict[str, Any]:
    return {
        "session_id": machine.session_id,
        "current_difficulty": machine.current_difficulty,
        "rounds": machine.history.to_list(),
    }


def _save_history(path: Path, machine: SessionStateMachine) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_history_payload(machine), f, indent=2)
    logger.debug(f"Saved {len(machine.history)} rounds to {path}")


def _load_history(path: Path) -> tuple[RoundHistory, Optional[int]]:
    """Read a saved history; rounds must be well formed and in index order."""
    data = _load_json(path)
    records = data.get("rounds", []) if isinstance(data, dict) else data
    try:
        history = RoundHistory.from_rounds(Round.from_dict(record) for record in records)
    except (AssessmentError, KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Malformed history file {path}: {e}[/]")
        raise typer.Exit(code=1)
    current = data.get("current_difficulty") if isinstance(data, dict) else None
    return history, current


# =============================================================================
# Commands
# =============================================================================


@app.command()
def score(
    path: Annotated[Path, typer.Argument(help="JSON file with ground_truth and submission")],
    matcher: Annotated[
        Optional[str], typer.Option("--matcher", "-m", help="id | location | location_category")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the scorecard as JSON")] = False,
) -> None:
    """
    Score a submission against ground truth.

    The file holds "ground_truth", "submission" and optionally
    "false_positive_traps", each a list of finding records.
    """
    data = _load_json(path)
    if not isinstance(data, dict):
        console.print("[red]Expected a JSON object with ground_truth and submission[/]")
        raise typer.Exit(code=1)

    try:
        match = get_matcher(matcher or get_settings().matcher)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)

    try:
        truth = parse_findings(data.get("ground_truth", []), prefix="truth")
        submission = parse_findings(data.get("submission", []))
        traps = parse_findings(data.get("false_positive_traps", []), prefix="trap")
        scorecard = SubmissionScorer().score(submission, truth, match, traps=traps)
    except AssessmentError as e:
        _fail(e)

    if as_json:
        console.print_json(json.dumps(scorecard.to_dict()))
    else:
        render_scorecard(scorecard)


@app.command(name="next")
def next_round(
    history_path: Annotated[Path, typer.Argument(help="Saved session history JSON")],
) -> None:
    """
    Show the calibrated difficulty and category focus for the next round.
    """
    config = EngineConfig.from_settings()
    history, current = _load_history(history_path)

    if current is None:
        last = history.last_n(1)
        current = last[0].difficulty_level if last else config.initial_difficulty

    calibrator = DifficultyCalibrator(config.calibration)
    tracker = CategoryCoverageTracker(config.coverage)
    decision = calibrator.decide(history, current)
    request = ChallengeSelector(config.selection).select(
        decision.level,
        tracker.weak_categories(history),
        tracker.strong_categories(history),
        history,
    )

    console.print(
        Panel(
            f"[bold cyan]Next level: {decision.level}[/] ({decision.action.value})\n"
            f"[dim]{decision.reason}[/]\n"
            f"Required: {', '.join(sorted(request.required_categories)) or '-'}\n"
            f"Excluded: {', '.join(sorted(request.excluded_categories)) or '-'}",
            title=f"{len(history)} rounds",
            border_style="cyan",
        )
    )

    report = tracker.coverage_report(history)
    if report:
        table = Table(title="Category Coverage")
        table.add_column("Category", style="cyan")
        table.add_column("Seen", justify="right")
        table.add_column("Mean Recall", justify="right")
        table.add_column("Status")
        for coverage in report.values():
            mean = coverage.mean_recall
            table.add_row(
                coverage.category,
                str(coverage.appearances),
                f"{mean:.2f}" if mean is not None else "-",
                coverage.status,
            )
        console.print(table)


@app.command()
def train(
    bank_path: Annotated[Path, typer.Argument(help="Challenge bank JSON")],
    rounds: Annotated[int, typer.Option("--rounds", "-n", help="Rounds to play")] = 3,
    save: Annotated[
        Optional[Path], typer.Option("--save", "-s", help="Write round history here after each round")
    ] = None,
    resume: Annotated[
        Optional[Path], typer.Option("--resume", "-r", help="Continue from a saved history")
    ] = None,
) -> None:
    """
    Run an interactive coaching session.

    Each round: read the challenge, report findings, see how you did,
    then write a specific reflection before the next challenge.
    """
    config = EngineConfig.from_settings()
    try:
        bank = ChallengeBank.from_file(bank_path)
    except AssessmentError as e:
        _fail(e)

    if resume:
        previous, _ = _load_history(resume)
        machine = SessionStateMachine.resume(bank, previous.all(), config=config)
    else:
        machine = SessionStateMachine(bank, config=config)

    for _ in range(rounds):
        try:
            _play_round(machine)
        except AssessmentError as e:
            _fail(e)
        if save:
            _save_history(save, machine)

    summary = machine.summary()
    mean_f1 = summary["mean_f1"]
    console.print(
        Panel(
            f"Rounds: {summary['rounds']}\n"
            f"Levels: {' → '.join(map(str, summary['difficulty_trajectory'])) or '-'}\n"
            f"Mean F1: {f'{mean_f1:.2f}' if mean_f1 is not None else '-'}\n"
            f"Weak: {', '.join(summary['weak_categories']) or '-'}",
            title="Session Summary",
            border_style="green",
        )
    )


def _play_round(machine: SessionStateMachine) -> None:
    presented = machine.challenge()
    focus = ", ".join(sorted(presented.focus_categories)) or "any"
    console.print(
        Panel(
            presented.prompt_text,
            title=f"Round {presented.round_index + 1} · Level {presented.difficulty} · Focus: {focus}",
            subtitle=presented.title or None,
            border_style="cyan",
        )
    )

    machine.attempt(_prompt_findings())
    render_scorecard(machine.compare(), title=f"Round {presented.round_index + 1}")

    while True:
        text = Prompt.ask("[bold]Reflection[/] (what specifically did you miss and why?)")
        try:
            machine.reflect(text)
            break
        except TrivialReflectionError as e:
            console.print(f"[yellow]{e.reason}. Be specific about what you missed.[/]")


def _prompt_findings() -> list[dict[str, str]]:
    """Ask for findings one at a time until the category is left blank."""
    records = []
    severities = [s.value for s in Severity]
    while True:
        category = Prompt.ask("Finding category (blank to finish)", default="")
        if not category.strip():
            return records
        records.append({
            "category": category,
            "severity": Prompt.ask("Severity", choices=severities, default="medium"),
            "location": Prompt.ask("Location"),
            "description": Prompt.ask("Description", default=""),
        })


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    [bold cyan]CACR Coach[/] - Progressive assessment sessions.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
