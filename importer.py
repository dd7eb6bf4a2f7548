"""Load and validate a question bank (.json array or .jsonl); report counts by category."""
import json
import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from examprep.config import get_settings
from examprep.models import Question, category_weight_label, validate_questions

logger = logging.getLogger(__name__)


def parse_line(line: str) -> Dict | None:
    """Parse one JSONL line into a raw record. Returns None for blank or undecodable lines."""
    line = line.strip()
    if not line:
        return None
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("Skipping undecodable line: %s", line[:80])
        return None
    return raw


def iter_records(path: Path) -> Iterator[Dict]:
    """Yield raw records from a JSON array file or a JSONL file."""
    if path.suffix == ".jsonl":
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                raw = parse_line(line)
                if raw is not None:
                    yield raw
        return
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of questions")
    yield from data


def load_question_bank(path: Path | None = None) -> Tuple[List[Question], List[Tuple[int, str]]]:
    """
    Read and validate a bank. Invalid records are dropped and returned as diagnostics.

    Raises:
        FileNotFoundError: if the bank file does not exist
    """
    path = Path(path or get_settings().question_bank_path)
    if not path.exists():
        raise FileNotFoundError(f"Question bank not found: {path}")
    questions, diagnostics = validate_questions(list(iter_records(path)))
    logger.info("Loaded %d questions from %s (%d dropped)", len(questions), path, len(diagnostics))
    return questions, diagnostics


def run_import(path: Path | None = None, strict: bool = False) -> int:
    questions, diagnostics = load_question_bank(path)
    by_category = Counter(q.category for q in questions)
    multi = sum(1 for q in questions if q.is_multiple_choice)

    print(f"Valid questions: {len(questions)} ({multi} multiple-choice)")
    for name, count in sorted(by_category.items(), key=lambda x: -x[1]):
        print(f"  {count:5d}  {name}  [weight {category_weight_label(name)}]")
    if diagnostics:
        print(f"Dropped records: {len(diagnostics)}")
        for idx, message in diagnostics:
            print(f"  #{idx}: {message}")
    return 1 if strict and diagnostics else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Validate a question bank and report counts by category.")
    parser.add_argument(
        "bank",
        nargs="?",
        default=None,
        help="Path to .json or .jsonl (default: QUESTION_BANK_PATH or data/questions.json)",
    )
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 if any record was dropped")
    args = parser.parse_args()
    sys.exit(run_import(Path(args.bank) if args.bank else None, strict=args.strict))
