"""
Mastery tracking: per-question attempt history, retention score and status classification.

History is loaded once from the injected store and written back after every attempt.
If the store fails, tracking continues in memory for the rest of the process.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

from examprep.errors import StorageUnavailable
from examprep.models import MasteryStatus, QuestionHistory
from examprep.storage import HistoryStore
from examprep.utils import calculate_retention, round_half_up, utcnow

logger = logging.getLogger(__name__)


@dataclass
class MasteryStats:
    mastered: int = 0
    weak: int = 0
    learning: int = 0
    unseen: int = 0
    total: int = 0


class MasteryTracker:
    """Owns the process-wide {question_id: QuestionHistory} mapping."""

    # Mastery rule
    MASTERY_MIN_CORRECT = 3
    MASTERED_MIN_RETENTION = 70
    WEAK_MAX_RETENTION = 50

    # Retention adjustments
    RETENTION_GAIN = 10
    RETENTION_LOSS = 20
    RETENTION_MIN = 0
    RETENTION_MAX = 100

    def __init__(self, store: Optional[HistoryStore] = None, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.persistent = store is not None
        self.history: Dict[str, QuestionHistory] = self._load()

    def _load(self) -> Dict[str, QuestionHistory]:
        if self.store is None:
            return {}
        try:
            raw = self.store.load()
        except StorageUnavailable as e:
            logger.warning(f"History storage not available, using in-memory storage: {e}")
            self.persistent = False
            return {}

        history = {}
        for question_id, entry in (raw or {}).items():
            try:
                history[str(question_id)] = QuestionHistory.from_dict(entry)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Dropping unreadable history for {question_id}: {e}")
        logger.info(f"Loaded history for {len(history)} questions")
        return history

    def _save(self):
        if not self.persistent:
            return
        try:
            self.store.save({qid: h.to_dict() for qid, h in self.history.items()})
        except StorageUnavailable as e:
            logger.warning(f"Unable to save history, continuing in memory: {e}")
            self.persistent = False

    def get(self, question_id) -> Optional[QuestionHistory]:
        return self.history.get(str(question_id))

    def record_attempt(self, question_id, is_correct: bool) -> QuestionHistory:
        """
        Record one answer check for a question and persist the mapping.

        Mastered requires at least 3 correct answers and no incorrect ones;
        any incorrect answer clears it. Retention gains 10 on a correct
        answer and loses 20 on an incorrect one, clamped to [0, 100].
        """
        qid = str(question_id)
        now = self.clock().isoformat()
        history = self.history.get(qid)
        if history is None:
            history = QuestionHistory(first_seen=now)

        history.attempts += 1
        history.last_attempt = now

        if is_correct:
            history.correct += 1
            if history.correct >= self.MASTERY_MIN_CORRECT and history.incorrect == 0:
                history.mastered = True
            history.retention_score = min(self.RETENTION_MAX, history.retention_score + self.RETENTION_GAIN)
        else:
            history.incorrect += 1
            history.mastered = False
            history.retention_score = max(self.RETENTION_MIN, history.retention_score - self.RETENTION_LOSS)

        self.history[qid] = history
        logger.debug(f"History {qid}: attempts={history.attempts} correct={history.correct} "
                     f"retention={history.retention_score} mastered={history.mastered}")
        self._save()
        return history

    def classify(self, question_id) -> MasteryStatus:
        history = self.get(question_id)
        if history is None:
            return MasteryStatus.UNSEEN
        if history.mastered and history.retention_score >= self.MASTERED_MIN_RETENTION:
            return MasteryStatus.MASTERED
        if history.incorrect > history.correct or history.retention_score < self.WEAK_MAX_RETENTION:
            return MasteryStatus.WEAK
        return MasteryStatus.LEARNING

    def aggregate_stats(self, question_ids: Iterable) -> MasteryStats:
        stats = MasteryStats()
        for qid in question_ids:
            status = self.classify(qid)
            setattr(stats, status.key, getattr(stats, status.key) + 1)
            stats.total += 1
        return stats

    def success_rate(self, question_id) -> Optional[int]:
        """Rounded percentage of correct attempts, None before the first attempt."""
        history = self.get(question_id)
        if history is None or history.attempts == 0:
            return None
        return round_half_up(history.correct / history.attempts * 100)

    def difficulty(self, question_id) -> str:
        """easy / medium / hard from the success rate, unknown before the first attempt."""
        history = self.get(question_id)
        if history is None or history.attempts == 0:
            return "unknown"
        rate = history.correct / history.attempts
        if rate >= 0.8:
            return "easy"
        if rate >= 0.5:
            return "medium"
        return "hard"

    def effective_retention(self, question_id, now: Optional[datetime] = None) -> Optional[float]:
        """Stored retention decayed by time since the last attempt (display only)."""
        history = self.get(question_id)
        if history is None:
            return None
        return calculate_retention(history.last_attempt, history.retention_score, now or self.clock())
