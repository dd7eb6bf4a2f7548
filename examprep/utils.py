"""
Shuffling, scaled scoring and small formatting helpers.
Scaled score mirrors the Microsoft model: 0-1000, pass at 700 (~65% raw).
"""
import math
import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from engine import MAX_SCALED_SCORE, PASSING_RAW_RATIO, PASSING_SCORE

# Forgetting curve: ~20 retention points lost per week without practice
RETENTION_LOSS_PER_WEEK = 20


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def shuffle(items: Sequence, rng: Optional[random.Random] = None) -> List:
    """
    Return a new list with the items in uniformly random order (Fisher-Yates).
    The input is never mutated.
    """
    rng = rng or random
    arr = list(items)
    for i in range(len(arr) - 1, 0, -1):
        j = rng.randint(0, i)
        arr[i], arr[j] = arr[j], arr[i]
    return arr


def random_elements(items: Sequence, count: int, rng: Optional[random.Random] = None) -> List:
    """Shuffle and take the first `count` items (fewer if the input is smaller)."""
    return shuffle(items, rng)[:max(0, count)]


def arrays_equal(a: Sequence, b: Sequence) -> bool:
    """Element-wise equality. Callers sort first when order carries no meaning."""
    if len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if x != y:
            return False
    return True


def calculate_scaled_score(raw_percentage: float) -> int:
    """
    Map a raw percentage (0-100) onto the 0-1000 scaled score.

    Below the 65% breakpoint the curve spans 0-699, above it 700-1000,
    so a raw score of exactly 65 maps to the 700 pass mark.
    """
    raw = min(100.0, max(0.0, float(raw_percentage)))
    if raw == 0:
        return 0
    if raw == 100:
        return MAX_SCALED_SCORE

    ratio = raw / 100
    if ratio < PASSING_RAW_RATIO:
        return round_half_up(ratio / PASSING_RAW_RATIO * (PASSING_SCORE - 1))
    above_passing = (ratio - PASSING_RAW_RATIO) / (1 - PASSING_RAW_RATIO)
    return round_half_up(PASSING_SCORE + above_passing * (MAX_SCALED_SCORE - PASSING_SCORE))


def format_time(seconds: int) -> str:
    """Format a duration as m:ss, or h:mm:ss from one hour up."""
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO timestamp (with or without trailing Z). Returns None if unparseable."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def calculate_retention(last_attempt, retention_score: float, now: Optional[datetime] = None) -> float:
    """
    Decay a stored retention score by the time since the last attempt.

    Args:
        last_attempt: ISO timestamp or datetime of the last attempt (None = never)
        retention_score: stored score (0-100)
        now: reference time, defaults to current UTC time

    Returns:
        Decayed retention, floored at 0
    """
    last = parse_timestamp(last_attempt)
    if last is None:
        return retention_score
    now = now or utcnow()
    days_passed = (now - last).total_seconds() / 86400
    weeks_passed = max(0.0, days_passed) / 7
    return max(0.0, retention_score - weeks_passed * RETENTION_LOSS_PER_WEEK)
