"""Pure exam constants: scaled scoring, exam size, practice sizes. No UI."""
# Scaled score: 0-1000, pass at 700 (~65% raw)
# Exam size: uniform random 40-60 questions

PASSING_SCORE = 700
MAX_SCALED_SCORE = 1000
PASSING_RAW_RATIO = 0.65
EXAM_MIN_QUESTIONS = 40
EXAM_MAX_QUESTIONS = 60
DEFAULT_PRACTICE_COUNT = 10
PRACTICE_COUNT_CHOICES = (5, 10, 15, 20, "all")
HISTORY_KEY = "pl600_questionHistory"
