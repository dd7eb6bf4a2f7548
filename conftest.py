"""Shared fixtures: question factories, seeded randomness, in-memory history."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from examprep.mastery import MasteryTracker
from examprep.models import Category, Question
from examprep.storage import InMemoryHistoryStore


def make_question(qid, category=Category.ENVISIONING.title, correct=("A",), multiple=None, letters="ABCD", hints=None):
    raw = {
        "id": qid,
        "text": f"Question {qid}?",
        "category": category,
        "options": [{"letter": letter, "text": f"Option {letter}"} for letter in letters],
        "correctAnswers": list(correct),
    }
    if multiple is not None:
        raw["isMultipleChoice"] = multiple
    if hints is not None:
        raw["hints"] = hints
    return Question.from_dict(raw)


def make_pool(envisioning=0, architecture=0, implementation=0, other=0):
    pool = []
    for prefix, category, n in (
        ("env", Category.ENVISIONING.title, envisioning),
        ("arc", Category.ARCHITECTURE.title, architecture),
        ("imp", Category.IMPLEMENTATION.title, implementation),
        ("oth", "Governance and licensing", other),
    ):
        pool.extend(make_question(f"{prefix}-{i}", category=category) for i in range(n))
    return pool


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def rng():
    return random.Random(600)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def tracker(store, clock):
    return MasteryTracker(store, clock=clock)
