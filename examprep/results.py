"""Session results: per-category breakdown and the final report."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from engine import PASSING_SCORE
from examprep.mastery import MasteryStats, MasteryTracker
from examprep.models import Question, QuizMode
from examprep.utils import calculate_scaled_score, round_half_up, utcnow

logger = logging.getLogger(__name__)


@dataclass
class CategoryScore:
    category: str
    correct: int
    total: int
    percentage: int


@dataclass
class Report:
    mode: QuizMode
    correct_count: int
    total_questions: int
    raw_percentage: int
    categories: List[CategoryScore] = field(default_factory=list)
    # Test mode only
    scaled_score: Optional[int] = None
    passed: Optional[bool] = None
    duration_seconds: Optional[int] = None
    # Practice mode only
    mastery: Optional[MasteryStats] = None


def category_breakdown(questions: Sequence[Question], outcomes: Sequence[Optional[bool]]) -> List[CategoryScore]:
    """
    Group results by category in order of first appearance.
    outcomes[i] is the result for questions[i]; missing or None counts as incorrect.
    """
    tallies = {}
    for index, question in enumerate(questions):
        tally = tallies.setdefault(question.category, {"correct": 0, "total": 0})
        tally["total"] += 1
        if index < len(outcomes) and outcomes[index]:
            tally["correct"] += 1

    return [
        CategoryScore(
            category=name,
            correct=data["correct"],
            total=data["total"],
            percentage=round_half_up(data["correct"] / data["total"] * 100),
        )
        for name, data in tallies.items()
    ]


def finalize(
    mode: QuizMode,
    questions: Sequence[Question],
    outcomes: Sequence[Optional[bool]],
    start_time: Optional[datetime],
    mastery: Optional[MasteryTracker] = None,
    all_question_ids: Iterable = (),
    now: Optional[datetime] = None,
) -> Report:
    """
    Build the end-of-session report.

    Test mode adds the scaled score, pass status (scaled >= 700) and duration.
    Practice mode adds mastery counts over the whole question bank.
    """
    mode = QuizMode(mode)
    total = len(questions)
    correct_count = sum(1 for o in outcomes if o)
    raw_percentage = round_half_up(correct_count / total * 100) if total > 0 else 0

    report = Report(
        mode=mode,
        correct_count=correct_count,
        total_questions=total,
        raw_percentage=raw_percentage,
        categories=category_breakdown(questions, outcomes),
    )

    if mode == QuizMode.TEST:
        report.scaled_score = calculate_scaled_score(raw_percentage)
        report.passed = report.scaled_score >= PASSING_SCORE
        end = now or utcnow()
        report.duration_seconds = round_half_up((end - start_time).total_seconds()) if start_time else 0
        logger.info(f"Exam finished: {correct_count}/{total} raw={raw_percentage}% "
                    f"scaled={report.scaled_score} {'PASS' if report.passed else 'FAIL'}")
    else:
        if mastery is not None:
            report.mastery = mastery.aggregate_stats(all_question_ids)
        logger.info(f"Practice finished: {correct_count}/{total} ({raw_percentage}%)")

    return report
