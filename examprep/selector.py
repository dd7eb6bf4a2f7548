"""
Question selection for practice and exam sessions.
Exam selection follows the PL-600 skill-area weights, filling shortfalls from the rest of the pool.
"""
import logging
import random
from typing import Iterable, List, Optional, Sequence, Union

from engine import EXAM_MAX_QUESTIONS, EXAM_MIN_QUESTIONS
from examprep.errors import EmptySelectionError
from examprep.models import Category, Question
from examprep.utils import round_half_up, shuffle

logger = logging.getLogger(__name__)

ALL = "all"


def filter_by_categories(pool: Sequence[Question], categories: Optional[Iterable[str]]) -> List[Question]:
    """Keep questions whose category is selected. No selection means no filter."""
    selected = set(categories or ())
    if not selected:
        return list(pool)
    return [q for q in pool if q.category in selected]


def random_exam_size(rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    return rng.randint(EXAM_MIN_QUESTIONS, EXAM_MAX_QUESTIONS)


def select_practice(
    pool: Sequence[Question],
    count: Union[int, str, None] = ALL,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Shuffle the pool and take `count` questions ("all" or None = whole pool)."""
    if not pool:
        raise EmptySelectionError()
    shuffled = shuffle(pool, rng)
    if count is None or count == ALL:
        return shuffled
    return shuffled[:max(0, int(count))]


def select_exam(
    pool: Sequence[Question],
    target_total: int,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """
    Select an exam following the official category weights.

    Args:
        pool: Questions available after any category filter
        target_total: Exam size (40-60 for a real exam)
        rng: Random source, defaults to the module-level generator

    Returns:
        Up to target_total questions in random order

    Raises:
        EmptySelectionError: if the pool is empty
    """
    if not pool:
        raise EmptySelectionError()

    by_category = {category: [] for category in Category}
    for q in pool:
        category = q.official_category
        if category is not None:
            by_category[category].append(q)

    selected: List[Question] = []
    for category, questions in by_category.items():
        target_count = round_half_up(target_total * category.midpoint)
        picked = shuffle(questions, rng)[:target_count]
        if len(picked) < target_count:
            logger.warning(f"Only {len(picked)} questions for '{category.title}', need {target_count}")
        selected.extend(picked)

    if len(selected) < target_total:
        remaining = target_total - len(selected)
        selected_ids = {q.id for q in selected}
        unused = [q for q in pool if q.id not in selected_ids]
        additional = shuffle(unused, rng)[:remaining]
        selected.extend(additional)
        logger.info(f"Filled {len(additional)} of {remaining} missing exam questions from other categories")

    exam = shuffle(selected, rng)[:target_total]
    logger.info(f"Selected {len(exam)} exam questions (target {target_total}, pool {len(pool)})")
    return exam
