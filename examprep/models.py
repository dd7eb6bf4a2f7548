"""
Question bank records and the fixed PL-600 category table.
Validation happens once, at ingestion: malformed records never reach the pool.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from examprep.errors import QuestionValidationError

logger = logging.getLogger(__name__)


class Category(Enum):
    """Official exam skill areas with their weight ranges (min, max)."""

    ENVISIONING = ("Perform solution envisioning and requirement analysis", 0.45, 0.50)
    ARCHITECTURE = ("Architect a solution", 0.35, 0.40)
    IMPLEMENTATION = ("Implement the solution", 0.15, 0.20)

    def __init__(self, title: str, min_weight: float, max_weight: float):
        self.title = title
        self.min_weight = min_weight
        self.max_weight = max_weight

    @property
    def midpoint(self) -> float:
        return (self.min_weight + self.max_weight) / 2

    @property
    def weight_label(self) -> str:
        return f"{round(self.min_weight * 100)}-{round(self.max_weight * 100)}%"

    @classmethod
    def from_title(cls, title: str) -> Optional["Category"]:
        for category in cls:
            if category.title == title:
                return category
        return None


def official_categories() -> List[str]:
    return [c.title for c in Category]


def category_weight_label(title: str) -> str:
    category = Category.from_title(title)
    return category.weight_label if category else "N/A"


class QuizMode(str, Enum):
    PRACTICE = "practice"
    TEST = "test"


class HintLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MasteryStatus(Enum):
    """Derived per-question status, with the label and colour shown to the user."""

    UNSEEN = ("unseen", "New", "#5f6368")
    WEAK = ("weak", "Needs Practice", "#ea4335")
    LEARNING = ("learning", "Learning", "#fbbc04")
    MASTERED = ("mastered", "Mastered", "#34a853")

    def __init__(self, key: str, label: str, color: str):
        self.key = key
        self.label = label
        self.color = color


@dataclass(frozen=True)
class Option:
    letter: str
    text: str


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    category: str
    options: Tuple[Option, ...]
    correct_answers: Tuple[str, ...]
    is_multiple_choice: bool = False
    hints: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    key_words: Tuple[str, ...] = ()
    concepts_tested: Tuple[str, ...] = ()
    explanation: str = ""
    reference: str = ""

    @property
    def letters(self) -> List[str]:
        return [o.letter for o in self.options]

    @property
    def official_category(self) -> Optional[Category]:
        return Category.from_title(self.category)

    @staticmethod
    def from_dict(raw: Dict) -> "Question":
        """
        Build a Question from a bank record (camelCase keys, as exported by the web app).

        Raises:
            QuestionValidationError: missing fields, fewer than 2 options,
                malformed options, or a correct answer not among the options
        """
        if not isinstance(raw, dict):
            raise QuestionValidationError("Record is not an object")

        required = ["id", "text", "options", "correctAnswers", "category"]
        missing = [name for name in required if not raw.get(name)]
        if missing:
            raise QuestionValidationError(f"Missing fields: {', '.join(missing)}")

        raw_options = raw["options"]
        if not isinstance(raw_options, list) or len(raw_options) < 2:
            raise QuestionValidationError("Question must have at least 2 options")

        correct = raw["correctAnswers"]
        if isinstance(correct, str):
            correct = [correct]
        if not isinstance(correct, list) or len(correct) == 0:
            raise QuestionValidationError("Question must have at least one correct answer")

        options = []
        for opt in raw_options:
            if not isinstance(opt, dict) or not opt.get("letter") or not opt.get("text"):
                raise QuestionValidationError("Each option must have a letter and text")
            letter = str(opt["letter"]).strip()
            if len(letter) != 1:
                raise QuestionValidationError(f"Option letter {letter!r} must be a single character")
            options.append(Option(letter=letter, text=str(opt["text"])))

        letters = [o.letter for o in options]
        if len(set(letters)) != len(letters):
            raise QuestionValidationError("Option letters must be unique")
        for answer in correct:
            if answer not in letters:
                raise QuestionValidationError(f"Correct answer {answer} not found in options")

        is_multiple = raw.get("isMultipleChoice")
        if is_multiple is None:
            is_multiple = len(correct) > 1
        if not is_multiple and len(correct) != 1:
            raise QuestionValidationError("Single-choice question must have exactly one correct answer")

        hints = raw.get("hints") or {}
        if not isinstance(hints, dict):
            hints = {}

        return Question(
            id=str(raw["id"]),
            text=str(raw["text"]),
            category=str(raw["category"]),
            options=tuple(options),
            correct_answers=tuple(str(a) for a in correct),
            is_multiple_choice=bool(is_multiple),
            hints={str(k): str(v) for k, v in hints.items()},
            key_words=tuple(raw.get("keyWords") or ()),
            concepts_tested=tuple(raw.get("conceptsTested") or ()),
            explanation=raw.get("explanation") or "",
            reference=raw.get("reference") or "",
        )


def validate_questions(records: List[Dict]) -> Tuple[List[Question], List[Tuple[int, str]]]:
    """
    Filter raw records down to valid Questions.

    Returns:
        (questions, diagnostics) where diagnostics is a list of (record index, error message).
        Duplicate ids are dropped after the first occurrence.
    """
    questions: List[Question] = []
    diagnostics: List[Tuple[int, str]] = []
    seen_ids = set()

    for idx, raw in enumerate(records):
        try:
            question = Question.from_dict(raw)
        except QuestionValidationError as e:
            logger.warning(f"Invalid question detected at index {idx}: {e}")
            diagnostics.append((idx, str(e)))
            continue
        if question.id in seen_ids:
            logger.warning(f"Duplicate question id {question.id} at index {idx}, skipping")
            diagnostics.append((idx, f"Duplicate id {question.id}"))
            continue
        seen_ids.add(question.id)
        questions.append(question)

    return questions, diagnostics


@dataclass
class QuestionHistory:
    """Attempt record for one question. Mutated only by MasteryTracker.record_attempt."""

    first_seen: str
    attempts: int = 0
    correct: int = 0
    incorrect: int = 0
    last_attempt: Optional[str] = None
    mastered: bool = False
    retention_score: int = 100

    def to_dict(self) -> Dict:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "lastAttempt": self.last_attempt,
            "firstSeen": self.first_seen,
            "mastered": self.mastered,
            "retentionScore": self.retention_score,
        }

    @staticmethod
    def from_dict(raw: Dict) -> "QuestionHistory":
        attempts = max(0, int(raw.get("attempts", 0)))
        correct = min(attempts, max(0, int(raw.get("correct", 0))))
        return QuestionHistory(
            first_seen=raw.get("firstSeen") or "",
            attempts=attempts,
            correct=correct,
            incorrect=attempts - correct,
            last_attempt=raw.get("lastAttempt"),
            mastered=bool(raw.get("mastered", False)),
            retention_score=min(100, max(0, int(raw.get("retentionScore", 100)))),
        )
