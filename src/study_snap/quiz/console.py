"""Rich-powered console loop driving a :class:`QuizSession`.

The loop renders the current question, reads one command per prompt and
applies it to the session. All grading lives in the session; this module only
translates keystrokes into session calls and session state into Rich output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.errors import SessionStateError
from .session import GradeResult, QuizSession, SessionState

__all__ = [
    "InputProvider",
    "SessionCommand",
    "QuestionOutcome",
    "ConsoleQuizResult",
    "option_label",
    "parse_session_command",
    "run_quiz_session",
]

InputProvider = Callable[[], str]
ExitAction = Literal["finished", "quit"]


def option_label(index: int) -> str:
    """Return the letter shown for option ``index`` (0 -> 'A')."""

    return chr(ord("A") + index)


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["select", "submit", "next", "quit"]
    option: int | None = None


@dataclass(frozen=True)
class QuestionOutcome:
    """How the user fared on one question."""

    number: int
    text: str
    selected_index: int
    correct: bool
    correct_index: int | None


@dataclass(frozen=True)
class ConsoleQuizResult:
    """Return value from :func:`run_quiz_session`."""

    score: int
    total: int
    answered: int
    outcomes: tuple[QuestionOutcome, ...]
    exit_action: ExitAction

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.score / self.total


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command."""

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None
    if text in {"s", "submit"}:
        return SessionCommand("submit")
    if text in {"n", "next"}:
        return SessionCommand("next")
    if text in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    if len(text) == 1 and "a" <= text <= "z":
        return SessionCommand("select", ord(text) - ord("a"))
    if text.isdigit() and int(text) >= 1:
        return SessionCommand("select", int(text) - 1)
    return None


def run_quiz_session(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
) -> ConsoleQuizResult:
    """Run ``session`` interactively until it finishes or the user quits."""

    outcomes: list[QuestionOutcome] = []
    exit_action: ExitAction = "quit"

    _render_question(console, session)
    while not session.is_finished:
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Ending quiz early.[/]")
            break
        _apply_command(command, session, console, outcomes)
        if session.is_finished:
            exit_action = "finished"

    progress = session.progress()
    result = ConsoleQuizResult(
        score=progress.score,
        total=progress.total,
        answered=len(outcomes),
        outcomes=tuple(outcomes),
        exit_action=exit_action,
    )
    _render_summary(console, result)
    return result


def _apply_command(
    command: SessionCommand,
    session: QuizSession,
    console: Console,
    outcomes: list[QuestionOutcome],
) -> None:
    try:
        if command.type == "select" and command.option is not None:
            session.select_option(command.option)
            _render_question(console, session)
        elif command.type == "submit":
            grade = session.submit_answer()
            question = session.current_question()
            outcomes.append(
                QuestionOutcome(
                    number=session.current_index + 1,
                    text=question.text,
                    selected_index=grade.selected_index,
                    correct=grade.correct,
                    correct_index=grade.correct_index,
                )
            )
            if session.is_last_question:
                _render_feedback(console, session, grade)
                session.advance()
            else:
                _render_question(console, session)
                _render_feedback(console, session, grade)
        elif command.type == "next":
            session.advance()
            _render_question(console, session)
    except SessionStateError as exc:
        console.print(f"[red]{exc}[/red]")
    except ValueError:
        console.print(
            "[red]'%s' is not a valid choice for this question.[/red]"
            % option_label(command.option or 0)
        )


def _render_question(console: Console, session: QuizSession) -> None:
    question = session.current_question()
    progress = session.progress()
    header = Text.assemble(
        (f"Question {progress.number}", "bold cyan"),
        (f" of {progress.total}", "dim"),
        (f" | Score: {progress.score}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")

    grade = session.last_grade
    selected = session.selected_option
    for idx, option in enumerate(question.options):
        indicator = "•" if idx == selected else " "
        choice_text = Text(option) if option else Text("", style="dim")
        if grade is not None and grade.correct_index == idx:
            choice_text.stylize("bold green")
        elif grade is not None and idx == grade.selected_index:
            choice_text.stylize("bold red")
        elif idx == selected:
            choice_text.stylize("bold blue")
        row_text = Text(indicator + " ")
        row_text += choice_text
        table.add_row(option_label(idx), row_text)
    console.print(table)

    console.print(Text(_command_hint(session), style="dim"))


def _command_hint(session: QuizSession) -> str:
    state = session.state
    if state is SessionState.ANSWERED:
        return "Commands: n (next question), quit"
    keys = ", ".join(
        option_label(idx)
        for idx in range(len(session.current_question().options))
    )
    return f"Commands: choices [{keys}], s (submit), quit"


def _render_feedback(
    console: Console, session: QuizSession, grade: GradeResult
) -> None:
    if grade.correct:
        message = "[bold green]Correct! ✅[/]"
    elif grade.correct_index is None:
        message = (
            "[bold red]Incorrect.[/] This question could not be graded "
            "reliably."
        )
    else:
        message = (
            "[bold red]Wrong.[/] Correct answer: "
            f"{option_label(grade.correct_index)}."
        )
    if session.is_last_question:
        message += "\n[bold magenta]Quiz finished![/]"
    console.print(message)


def _render_summary(console: Console, result: ConsoleQuizResult) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total questions", str(result.total))
    overview.add_row("Answered", str(result.answered))
    overview.add_row("Correct", str(result.score))
    overview.add_row("Accuracy", f"{result.accuracy * 100:.1f}%")
    console.print(overview)

    if not result.outcomes:
        console.print(
            Panel(
                "No questions answered.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer")
    responses.add_column("Correct answer")
    responses.add_column("Result", justify="center")
    for outcome in result.outcomes:
        correct = (
            option_label(outcome.correct_index)
            if outcome.correct_index is not None
            else "-"
        )
        responses.add_row(
            str(outcome.number),
            outcome.text,
            option_label(outcome.selected_index),
            correct,
            "✅" if outcome.correct else "❌",
        )
    console.print(responses)
