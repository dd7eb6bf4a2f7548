#!/usr/bin/env python3
"""
Integration test: bank loading + session engine + persisted mastery.
Demonstrates:
1. Weighted exam selection over the bundled bank
2. Practice checking and mastery persistence across app restarts
3. Exam scoring and report
"""
import logging
import random

from conftest import FakeClock, make_pool
from examprep.config import PROJECT_ROOT
from examprep.engine import QuizApp, SessionState
from examprep.mastery import MasteryTracker
from examprep.models import MasteryStatus, QuizMode
from examprep.storage import JsonFileHistoryStore
from importer import load_question_bank

logger = logging.getLogger(__name__)


def answer_correctly(quiz: QuizApp):
    question = quiz.current_question()
    for letter in question.correct_answers:
        quiz.select_answer(question.id, letter)


def test_practice_mastery_survives_restart(tmp_path):
    """Three practice sessions answering everything correctly master the whole bank."""
    bank, _ = load_question_bank(PROJECT_ROOT / "data" / "questions.json")
    store = JsonFileHistoryStore(tmp_path / "history.json")
    clock = FakeClock()
    logger.info(f"Loaded {len(bank)} questions")

    for run in range(3):
        # New tracker each run simulates an app restart reading the same file
        quiz = QuizApp(bank, MasteryTracker(store, clock=clock), rng=random.Random(run), clock=clock)
        quiz.start(QuizMode.PRACTICE, question_count="all")
        while quiz.state == SessionState.RUNNING:
            answer_correctly(quiz)
            assert quiz.check_answer() is True
            quiz.next()
        report = quiz.report
        logger.info(f"Run {run + 1}: {report.correct_count}/{report.total_questions}, "
                    f"mastered {report.mastery.mastered}/{report.mastery.total}")
        assert report.raw_percentage == 100
        clock.advance(days=1)

    tracker = MasteryTracker(store, clock=clock)
    assert all(tracker.classify(q.id) == MasteryStatus.MASTERED for q in bank)
    assert report.mastery.mastered == len(bank)


def test_mock_exam_workflow():
    """Full exam: weighted selection, answer roughly 70%, pass with a scaled score."""
    pool = make_pool(envisioning=40, architecture=35, implementation=20, other=10)
    clock = FakeClock()
    quiz = QuizApp(pool, rng=random.Random(42), clock=clock)

    session = quiz.start(QuizMode.TEST)
    total = len(session.questions)
    logger.info(f"Generated {total} exam questions")
    assert 40 <= total <= 60

    to_answer = round(total * 0.7)
    for i in range(total):
        if i < to_answer:
            answer_correctly(quiz)
        else:
            question = quiz.current_question()
            quiz.select_answer(question.id, "B")
        clock.advance(seconds=50)
        quiz.next()

    report = quiz.report
    logger.info(f"Score: {report.scaled_score} raw={report.raw_percentage}% "
                f"{'PASS' if report.passed else 'FAIL'} in {report.duration_seconds}s")
    assert quiz.state == SessionState.COMPLETE
    assert report.correct_count == to_answer
    assert report.scaled_score >= 700
    assert report.passed
    assert report.duration_seconds == total * 50
    assert sum(c.total for c in report.categories) == total
