from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.widget import Widget
from textual.widgets import Button, Static

from ..core.errors import ExtractionError, SessionStateError, UpstreamError
from .console import option_label
from .extraction import Question, Quiz
from .generation import GenerationTracker
from .session import GradeResult, QuizSession, SessionState

QuizFactory = Callable[[], Quiz]
FinishCallback = Callable[[QuizSession], None]


def progress_text(session: QuizSession) -> str:
    progress = session.progress()
    return (
        f"Question {progress.number} of {progress.total} | "
        f"Score: {progress.score}"
    )


def feedback_text(grade: GradeResult, *, is_last: bool) -> str:
    if grade.correct:
        text = "Correct! ✅"
    elif grade.correct_index is None:
        text = "Wrong. This question has no reliable answer key."
    else:
        text = f"Wrong. Correct answer: {option_label(grade.correct_index)}."
    if is_last:
        text += "\nQuiz finished!"
    return text


def option_classes(session: QuizSession, index: int) -> List[str]:
    """CSS classes for option ``index`` given the session state."""

    grade = session.last_grade
    if grade is not None:
        if grade.correct_index == index:
            return ["correct"]
        if grade.selected_index == index:
            return ["wrong"]
        return []
    if session.selected_option == index:
        return ["selected"]
    return []


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.selected { background: $accent; color: black; }
#choices Button.correct { background: green; }
#choices Button.wrong { background: red; }
#status { color: $text-muted; }
"""
    BINDINGS = [
        ("a", "select(0)", "Select A"),
        ("b", "select(1)", "Select B"),
        ("c", "select(2)", "Select C"),
        ("d", "select(3)", "Select D"),
        ("s", "submit", "Submit"),
        ("enter", "submit", "Submit"),
        ("n", "next", "Next"),
        ("r", "new_quiz", "New quiz"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        questions: Optional[Sequence[Question]] = None,
        *,
        generate: Optional[QuizFactory] = None,
        on_finish: Optional[FinishCallback] = None,
        tracker: Optional[GenerationTracker] = None,
    ) -> None:
        super().__init__()
        self._generate_quiz = generate
        self._on_finish = on_finish
        self._tracker = tracker or GenerationTracker()
        self._quiz_session: Optional[QuizSession] = (
            QuizSession(questions) if questions else None
        )
        self._status_message = (
            "" if self._quiz_session else "No quiz loaded."
        )
        self._feedback_message = ""

    @property
    def session(self) -> Optional[QuizSession]:
        return self._quiz_session

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def feedback_message(self) -> str:
        return self._feedback_message

    def compose(self) -> ComposeResult:
        yield Static(self._status_message, id="status")
        with Container(id="stage"):
            if self._quiz_session is not None:
                yield QuestionView(self._quiz_session)
        with Container(id="footer"):
            yield Button("Submit", id="submit")
            yield Button("Next Question", id="next")
            yield Button("New Quiz", id="new")
            yield Static(self._feedback_message, id="feedback")

    def on_mount(self) -> None:
        if self._quiz_session is None and self._generate_quiz is not None:
            self.start_generation()

    # Pure helpers (testable without running App)
    def start_generation(self) -> int:
        """Supersede any earlier request and generate a fresh quiz."""

        generation_id = self._tracker.begin()
        self._quiz_session = None
        self._feedback_message = ""
        self._status_message = "Generating quiz..."
        self._update_quiz_view()
        if self._generate_quiz is not None and self.is_running:
            self.run_worker(
                lambda: self._generate_in_thread(generation_id),
                thread=True,
                exclusive=True,
            )
        return generation_id

    def _generate_in_thread(self, generation_id: int) -> None:
        assert self._generate_quiz is not None
        try:
            quiz = self._generate_quiz()
        except (UpstreamError, ExtractionError, ValueError) as exc:
            self.call_from_thread(self.generation_failed, generation_id, exc)
            return
        self.call_from_thread(self.deliver_quiz, generation_id, quiz)

    def deliver_quiz(
        self, generation_id: int, quiz: Sequence[Question]
    ) -> bool:
        session = self._tracker.accept(generation_id, quiz)
        if session is None:
            return False
        self._quiz_session = session
        self._status_message = "Quiz generated. Answer questions below:"
        self._feedback_message = ""
        self._update_quiz_view()
        return True

    def generation_failed(self, generation_id: int, error: Exception) -> bool:
        if not self._tracker.is_current(generation_id):
            return False
        self._tracker.cancel()
        self._status_message = f"Error: {error}"
        self._update_quiz_view()
        return True

    def select_answer(self, index: int) -> bool:
        if self._quiz_session is None:
            return False
        try:
            self._quiz_session.select_option(index)
        except SessionStateError as exc:
            self._feedback_message = str(exc)
            self._update_quiz_view()
            return False
        except ValueError:
            return False
        self._update_quiz_view()
        return True

    def submit(self) -> Optional[GradeResult]:
        session = self._quiz_session
        if session is None or session.is_finished:
            return None
        try:
            grade = session.submit_answer()
        except SessionStateError as exc:
            self._feedback_message = str(exc)
            self._update_quiz_view()
            return None
        self._feedback_message = feedback_text(
            grade, is_last=session.is_last_question
        )
        if session.is_last_question:
            session.advance()
            if self._on_finish is not None:
                self._on_finish(session)
        self._update_quiz_view()
        return grade

    def next_question(self) -> bool:
        session = self._quiz_session
        if session is None or session.state is not SessionState.ANSWERED:
            return False
        if session.is_last_question:
            return False
        session.advance()
        self._feedback_message = ""
        self._update_quiz_view()
        return True

    def _update_quiz_view(self) -> None:
        if not self.is_running:
            return
        self.query_one("#status", Static).update(self._status_message)
        self.query_one("#feedback", Static).update(self._feedback_message)
        stage = self.query_one("#stage", Container)
        stage.remove_children()
        if self._quiz_session is not None:
            stage.mount(QuestionView(self._quiz_session))

    def action_select(self, index: int) -> None:
        self.select_answer(index)

    def action_submit(self) -> None:
        self.submit()

    def action_next(self) -> None:
        self.next_question()

    def action_new_quiz(self) -> None:
        if self._generate_quiz is None:
            self._status_message = "No source text to build a new quiz from."
            self._update_quiz_view()
            return
        self.start_generation()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-"):
            self.select_answer(int(bid.split("-", 1)[1]))
        elif bid == "submit":
            self.action_submit()
        elif bid == "next":
            self.action_next()
        elif bid == "new":
            self.action_new_quiz()


class QuestionView(Widget):
    """Renders the current question, its options and the progress line."""

    def __init__(self, session: QuizSession) -> None:
        super().__init__()
        self.session = session

    def compose(self) -> ComposeResult:
        question = self.session.current_question()
        yield Static(question.text, id="question")
        with Vertical(id="choices"):
            for idx, option in enumerate(question.options):
                btn = Button(
                    f"({option_label(idx)}) {option}", id=f"choice-{idx}"
                )
                for name in option_classes(self.session, idx):
                    btn.add_class(name)
                yield btn
        yield Static(progress_text(self.session), id="progress")
