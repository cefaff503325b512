"""
cli.py – Terminal runner for the assessment engine

Run:
    python -m assessment_engine.cli [--count N] [--verbose]
    assess-quiz

Collects a short learner profile, composes an assignment, asks each
question (option number + optional explanation) and prints the scored
report.  Runs in mock mode unless Azure OpenAI is configured in .env.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from assessment_engine.config import get_settings
from assessment_engine.engine import AssessmentEngine
from assessment_engine.errors import AssessmentError
from assessment_engine.models import STUDY_FIELDS, Attempt, AttemptReport, LearnerProfile

console = Console()

GRADE_STYLE = {
    "A": "bold green",
    "B": "bold cyan",
    "C": "bold yellow",
    "D": "bold dark_orange",
    "F": "bold red",
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


# ─── Display helpers ─────────────────────────────────────────────────────────

def _bar(percentage: float, width: int = 16) -> str:
    filled = round(max(0.0, min(100.0, percentage)) / 100 * width)
    return "[" + "█" * filled + "░" * (width - filled) + f"] {percentage:.1f}%"


def render_report(report: AttemptReport, out: Optional[Console] = None) -> None:
    """Render an AttemptReport as rich panels and tables."""
    out = out or console
    out.print()
    out.rule("[bold magenta]Assessment Report[/bold magenta]")
    out.print()

    # ── Summary card ─────────────────────────────────────────────────────────
    style = GRADE_STYLE.get(report.grade, "bold white")
    summary = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
    summary.add_column("Key",   style="bold cyan", no_wrap=True)
    summary.add_column("Value", style="white")
    summary.add_row("Attempt",    report.attempt_id)
    summary.add_row("Score",      f"{report.total_score:.2f} / {report.max_score:.0f}")
    summary.add_row("Percentage", _bar(report.percentage))
    summary.add_row("Grade",      f"[{style}]{report.grade}[/{style}]")
    summary.add_row("Correct",    f"{report.correct_count} of {len(report.evaluations)}")
    summary.add_row("Time taken", f"{report.time_taken_seconds:.0f} s")
    out.print(Panel(summary, title="[bold]Summary[/bold]", border_style="magenta"))

    # ── Category table ───────────────────────────────────────────────────────
    cat_table = Table(box=box.SIMPLE_HEAD, header_style="bold white on dark_violet", padding=(0, 1))
    cat_table.add_column("Category",  style="white", min_width=18)
    cat_table.add_column("Questions", justify="center")
    cat_table.add_column("Score",     justify="right")
    cat_table.add_column("Percentage", min_width=24)
    for category, score in report.category_scores.items():
        cat_table.add_row(
            category, str(score.count),
            f"{score.total:.2f} / {score.max_score:.0f}", _bar(score.percentage),
        )
    out.print(Panel(cat_table, title="[bold]By Category[/bold]", border_style="blue"))

    # ── Per-question table ───────────────────────────────────────────────────
    q_table = Table(box=box.SIMPLE, header_style="bold cyan", padding=(0, 1))
    q_table.add_column("#", justify="right")
    q_table.add_column("Category")
    q_table.add_column("Result", justify="center")
    q_table.add_column("Acc / Expl / Reas", justify="center")
    q_table.add_column("Total", justify="right")
    q_table.add_column("Feedback", style="dim white")
    for i, e in enumerate(report.evaluations, 1):
        q_table.add_row(
            str(i), e.category,
            "[green]✓[/green]" if e.is_correct else "[red]✗[/red]",
            f"{e.accuracy_score:.0f} / {e.explanation_score:.1f} / {e.reasoning_score:.0f}",
            f"{e.total_score:.2f}", e.feedback,
        )
    out.print(Panel(q_table, title="[bold]Questions[/bold]", border_style="cyan"))

    # ── Strengths & improvement areas ────────────────────────────────────────
    if report.strengths or report.improvement_areas:
        callout = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
        callout.add_column("Key",   style="bold", no_wrap=True)
        callout.add_column("Value", style="white")
        for f in report.strengths:
            callout.add_row("[green]Strength[/green]", f.description)
        for f in report.improvement_areas:
            callout.add_row("[yellow]Improve[/yellow]", f"{f.description}\n[dim]{f.suggestion}[/dim]")
        out.print(Panel(callout, title="[bold]Strengths & Focus Areas[/bold]", border_style="yellow"))

    out.print(Panel(
        f"[italic]{report.overall_feedback}[/italic]",
        title=f"[bold]Overall Feedback[/bold] [dim]({report.feedback_source})[/dim]",
        border_style="green",
    ))
    out.print()


# ─── Interaction ─────────────────────────────────────────────────────────────

def collect_profile() -> LearnerProfile:
    console.print(Panel(
        "Tell us a little about yourself so the quiz matches your background.",
        title="[bold]Learner Profile[/bold]", expand=False,
    ))
    fields = ", ".join(info["short_name"] for info in STUDY_FIELDS.values())
    return LearnerProfile(
        student_name    = Prompt.ask("[cyan]1.[/cyan] Your name", default="Student"),
        field_of_study  = Prompt.ask(f"[cyan]2.[/cyan] Field of study [dim]({fields})[/dim]"),
        current_skills  = Prompt.ask("[cyan]3.[/cyan] Current skills", default=""),
        interests       = Prompt.ask("[cyan]4.[/cyan] Interests", default=""),
        goals           = Prompt.ask("[cyan]5.[/cyan] Goals", default=""),
        education_level = Prompt.ask("[cyan]6.[/cyan] Education level", default=""),
    )


def run_attempt(attempt: Attempt) -> None:
    """Ask every question; stop early and time out when the limit passes."""
    total = len(attempt.questions)
    for i, q in enumerate(attempt.questions, 1):
        if attempt.is_expired():
            console.print("[bold red]Time is up; submitting your answers.[/bold red]")
            attempt.time_out()
            return

        body = "\n".join(f"  [cyan]{n}.[/cyan] {opt}" for n, opt in enumerate(q.options, 1))
        console.print(Panel(
            f"[bold]{q.question_text}[/bold]\n\n{body}",
            title=f"Question {i}/{total} · {q.category} · {q.difficulty.value}",
            border_style="blue",
        ))
        choice = IntPrompt.ask("Your answer [dim](0 to skip)[/dim]",
                               choices=[str(n) for n in range(0, len(q.options) + 1)])
        if choice:
            explanation = Prompt.ask("Why? [dim](optional)[/dim]", default="")
            attempt.record_answer(q.question_id, q.options[choice - 1], explanation)

    attempt.submit()


# ─── Main ────────────────────────────────────────────────────────────────────

def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="assess-quiz", description="Take a personalised quiz in the terminal.")
    parser.add_argument("--count", type=int, default=None, help="number of questions")
    parser.add_argument("--verbose", action="store_true", help="show debug logging")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    settings = get_settings()
    status = "  ".join(f"{name}: {badge}" for name, badge in settings.status_summary().items())
    console.print(Panel(f"[bold]Assessment Engine[/bold]\n[dim]{status}[/dim]",
                        style="on dark_violet", expand=False))

    try:
        engine = AssessmentEngine.from_settings(settings)
        profile = collect_profile()
        with console.status("[bold blue]Composing your assignment…"):
            assembled = engine.compose_assignment(profile, args.count)
        field_name = STUDY_FIELDS[assembled.study_field]["short_name"]
        console.print(
            f"[bold green]✓ {len(assembled)} question(s) ready[/bold green] "
            f"[dim](field: {field_name}, focus: {assembled.primary_category}, "
            f"limit: {engine.time_limit_minutes} min)[/dim]"
        )
        if assembled.is_short:
            console.print(f"[yellow]⚠ Only {len(assembled)} of {assembled.requested} questions were available.[/yellow]")

        attempt = engine.start_attempt(assembled, learner=profile, now=datetime.now())
        run_attempt(attempt)
        with console.status("[bold blue]Scoring your answers…"):
            report = engine.evaluate_attempt(attempt)
        render_report(report)

    except AssessmentError as e:
        console.print(f"\n[bold red]Assessment error:[/bold red] {e}")
        return 1

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
