"""
Quiz session engine: question sequence, answer capture, checking, scoring and lifecycle.

States: setup (no session) -> running (each question unanswered/answered) -> complete.
Practice mode checks answers on demand; test mode grades each question when moving on.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from engine import DEFAULT_PRACTICE_COUNT
from examprep.errors import EmptySelectionError, QuizStateError
from examprep.mastery import MasteryTracker
from examprep.models import HintLevel, Question, QuizMode
from examprep.results import Report, finalize
from examprep.selector import ALL, filter_by_categories, random_exam_size, select_exam, select_practice
from examprep.utils import arrays_equal, utcnow

logger = logging.getLogger(__name__)

Answer = Union[str, List[str]]

NO_HINT = "No hint available for this level"


class SessionState(str, Enum):
    SETUP = "setup"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass
class AnswerCheck:
    position: int
    question_id: str
    is_correct: bool


@dataclass
class Session:
    """One quiz run. Discarded on reset or replaced by the next start()."""

    questions: List[Question]
    mode: QuizMode
    started_at: datetime
    position: int = 0
    answers: Dict[str, Answer] = field(default_factory=dict)
    checks: List[AnswerCheck] = field(default_factory=list)
    score: int = 0
    revealed: bool = False
    # Exam positions already recorded in mastery history
    recorded_positions: Set[int] = field(default_factory=set)

    def outcome_at(self, position: int) -> Optional[bool]:
        """Latest check result for a position, None if it was never checked."""
        for check in reversed(self.checks):
            if check.position == position:
                return check.is_correct
        return None

    @property
    def outcomes(self) -> List[Optional[bool]]:
        return [self.outcome_at(i) for i in range(len(self.questions))]

    @property
    def results(self) -> List[bool]:
        """Correctness of every check event, in the order they happened."""
        return [c.is_correct for c in self.checks]


def is_answer_correct(question: Question, answer: Optional[Answer]) -> bool:
    """Exact match: single-choice against the sole correct letter, multiple-choice as sorted sets."""
    if question.is_multiple_choice:
        return arrays_equal(sorted(answer or []), sorted(question.correct_answers))
    return answer == question.correct_answers[0]


class QuizApp:
    """Drives a quiz over the loaded question bank, one session at a time."""

    def __init__(
        self,
        questions: Iterable[Question],
        mastery: Optional[MasteryTracker] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            questions: Validated question bank
            mastery: Tracker receiving every answer check (in-memory tracker if omitted)
            rng: Random source for selection and exam size
            clock: Returns the current time (UTC)
        """
        self.all_questions: List[Question] = list(questions)
        self.mastery = mastery or MasteryTracker(clock=clock)
        self.rng = rng
        self.clock = clock

        # Configuration
        self.mode = QuizMode.PRACTICE
        self.selected_categories: Set[str] = set()
        self.question_count: Union[int, str] = DEFAULT_PRACTICE_COUNT

        # Hints (practice mode only)
        self.show_hints = False
        self.hint_level = HintLevel.EASY

        self.state = SessionState.SETUP
        self.session: Optional[Session] = None
        self.report: Optional[Report] = None
        self.reviewing = False

    # ============= Configuration =============

    def set_mode(self, mode: Union[QuizMode, str]):
        self.mode = QuizMode(mode)

    def toggle_category(self, category: str):
        if category in self.selected_categories:
            self.selected_categories.discard(category)
        else:
            self.selected_categories.add(category)

    def set_question_count(self, count: Union[int, str]):
        if count != ALL:
            count = int(count)
            if count < 1:
                raise ValueError(f"Question count must be positive or '{ALL}', got {count}")
        self.question_count = count

    def categories(self) -> List[str]:
        """Categories present in the bank, in first-appearance order."""
        return list(dict.fromkeys(q.category for q in self.all_questions))

    # ============= Lifecycle =============

    def start(
        self,
        mode: Union[QuizMode, str, None] = None,
        category_filter: Optional[Iterable[str]] = None,
        question_count: Union[int, str, None] = None,
    ) -> Session:
        """
        Build a new session and enter the running state.

        Practice mode takes `question_count` questions (or all); test mode draws a
        random 40-60 question exam by category weight and ignores the count.

        Raises:
            EmptySelectionError: no questions match the filter; no session is created
        """
        # Configuration is applied only once selection succeeds
        previous = (self.mode, self.selected_categories, self.question_count)
        try:
            if mode is not None:
                self.set_mode(mode)
            if category_filter is not None:
                self.selected_categories = set(category_filter)
            if question_count is not None:
                self.set_question_count(question_count)

            pool = filter_by_categories(self.all_questions, self.selected_categories)
            if self.mode == QuizMode.TEST:
                questions = select_exam(pool, random_exam_size(self.rng), self.rng)
            else:
                questions = select_practice(pool, self.question_count, self.rng)
            if not questions:
                raise EmptySelectionError()
        except (EmptySelectionError, ValueError):
            self.mode, self.selected_categories, self.question_count = previous
            raise

        self.session = Session(questions=questions, mode=self.mode, started_at=self.clock())
        self.state = SessionState.RUNNING
        self.report = None
        self.reviewing = False
        self.show_hints = False
        logger.info(f"Started {self.mode.value} session with {len(questions)} questions "
                    f"(pool {len(pool)}, categories {sorted(self.selected_categories) or 'all'})")
        return self.session

    def reset(self):
        self.session = None
        self.report = None
        self.reviewing = False
        self.show_hints = False
        self.state = SessionState.SETUP

    # ============= Current question =============

    def _require_session(self) -> Session:
        if self.session is None or self.state == SessionState.SETUP:
            raise QuizStateError("No active session")
        return self.session

    def _require_navigable(self) -> Session:
        session = self._require_session()
        if self.state == SessionState.COMPLETE and not self.reviewing:
            raise QuizStateError("Session is complete")
        return session

    def current_question(self) -> Optional[Question]:
        if self.session is None or not self.session.questions:
            return None
        return self.session.questions[self.session.position]

    @property
    def is_answered(self) -> bool:
        """True once the current question's answer has been revealed."""
        return self.session is not None and self.session.revealed

    def answer_for(self, question_id) -> Optional[Answer]:
        if self.session is None:
            return None
        return self.session.answers.get(str(question_id))

    # ============= Answering =============

    def select_answer(self, question_id, option_letter: str):
        """Set (single-choice) or toggle (multiple-choice) an option. Ignored once answered."""
        session = self._require_session()
        if session.revealed or self.state != SessionState.RUNNING:
            return
        question = self.current_question()
        if str(question_id) != question.id:
            raise QuizStateError(f"Question {question_id} is not the current question ({question.id})")
        if option_letter not in question.letters:
            raise QuizStateError(f"Option {option_letter} not found in question {question.id}")

        if question.is_multiple_choice:
            current = list(session.answers.get(question.id) or [])
            if option_letter in current:
                current.remove(option_letter)
            else:
                current.append(option_letter)
            session.answers[question.id] = current
        else:
            session.answers[question.id] = option_letter

    def can_check_answer(self) -> bool:
        if self.session is None or self.state != SessionState.RUNNING or self.session.revealed:
            return False
        answer = self.answer_for(self.current_question().id)
        return bool(answer)

    def check_answer(self) -> bool:
        """
        Grade the current question, record the attempt and reveal the answer.

        Returns:
            Whether the answer was correct

        Raises:
            QuizStateError: not running, already answered, or nothing selected
        """
        if not self.can_check_answer():
            raise QuizStateError("Check answer is not available: select an answer on an unanswered question")
        return self._grade(record_attempt=True)

    def _grade(self, record_attempt: bool) -> bool:
        session = self.session
        question = self.current_question()
        is_correct = is_answer_correct(question, session.answers.get(question.id))

        if record_attempt:
            self.mastery.record_attempt(question.id, is_correct)

        previous = session.outcome_at(session.position)
        if previous:
            session.score -= 1
        if is_correct:
            session.score += 1
        session.checks.append(AnswerCheck(session.position, question.id, is_correct))
        session.revealed = True
        self.show_hints = False

        logger.debug(f"Checked Q={question.id} position={session.position} correct={is_correct} score={session.score}")
        return is_correct

    # ============= Navigation =============

    def next(self):
        """Advance to the next question, or complete the session after the last one."""
        session = self._require_navigable()
        if self.state == SessionState.RUNNING and session.mode == QuizMode.TEST and not session.revealed:
            question = self.current_question()
            # Unanswered exam questions count as wrong but are not practice attempts.
            # Re-grading after prev() updates the score only; one attempt per position.
            record = bool(self.answer_for(question.id)) and session.position not in session.recorded_positions
            if record:
                session.recorded_positions.add(session.position)
            self._grade(record_attempt=record)

        if session.position < len(session.questions) - 1:
            session.position += 1
            session.revealed = self.reviewing
            self.show_hints = False
        elif self.reviewing:
            self.reviewing = False
        else:
            self._complete()

    def prev(self):
        """Step back one question. The answer is hidden again, even if it was checked."""
        session = self._require_navigable()
        if session.position > 0:
            session.position -= 1
            session.revealed = self.reviewing
            self.show_hints = False

    def _complete(self):
        session = self.session
        self.state = SessionState.COMPLETE
        session.revealed = False
        self.report = finalize(
            session.mode,
            session.questions,
            session.outcomes,
            session.started_at,
            mastery=self.mastery,
            all_question_ids=[q.id for q in self.all_questions],
            now=self.clock(),
        )

    def review_answers(self):
        """After completion, walk the session again with every answer revealed."""
        session = self._require_session()
        if self.state != SessionState.COMPLETE:
            raise QuizStateError("Answers can only be reviewed after the session is complete")
        session.position = 0
        session.revealed = True
        self.reviewing = True

    # ============= Hints =============

    def toggle_hints(self):
        self.show_hints = not self.show_hints

    def set_hint_level(self, level: Union[HintLevel, str]):
        self.hint_level = HintLevel(level)

    def hints_available(self) -> bool:
        question = self.current_question()
        return (
            self.state == SessionState.RUNNING
            and self.mode == QuizMode.PRACTICE
            and not self.is_answered
            and question is not None
            and bool(question.hints)
        )

    def current_hint(self) -> Optional[str]:
        """Hint text at the selected level, or None when hints are hidden or unavailable."""
        if not self.show_hints or not self.hints_available():
            return None
        return self.current_question().hints.get(self.hint_level.value) or NO_HINT

    # ============= Progress =============

    def progress(self) -> Dict:
        """Real-time summary for display during a session."""
        session = self._require_session()
        answered = sum(1 for q in session.questions if session.answers.get(q.id))
        return {
            "current_question": session.position + 1,
            "total_questions": len(session.questions),
            "questions_answered": answered,
            "score": session.score,
            "time_elapsed_sec": int((self.clock() - session.started_at).total_seconds()),
        }

