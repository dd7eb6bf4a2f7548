"""Question bank loading (.json / .jsonl) and the validation report."""
import json

import pytest

from examprep.config import PROJECT_ROOT
from examprep.models import official_categories
from importer import load_question_bank, parse_line, run_import

GOOD = {
    "id": "q1",
    "text": "Pick A",
    "category": "Architect a solution",
    "options": [{"letter": "A", "text": "A"}, {"letter": "B", "text": "B"}],
    "correctAnswers": ["A"],
}
BAD = {"id": "q2", "text": "No options", "category": "Architect a solution", "correctAnswers": ["A"]}


def test_bundled_bank_is_valid():
    questions, diagnostics = load_question_bank(PROJECT_ROOT / "data" / "questions.json")
    assert diagnostics == []
    assert len(questions) >= 10
    categories = {q.category for q in questions}
    assert set(official_categories()) <= categories
    assert any(q.is_multiple_choice for q in questions)


def test_json_array_drops_invalid_records(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps([GOOD, BAD]), encoding="utf-8")
    questions, diagnostics = load_question_bank(path)
    assert [q.id for q in questions] == ["q1"]
    assert diagnostics == [(1, "Missing fields: options")]


def test_json_object_with_questions_key(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps({"questions": [GOOD]}), encoding="utf-8")
    questions, _ = load_question_bank(path)
    assert len(questions) == 1


def test_jsonl_skips_blank_and_broken_lines(tmp_path):
    path = tmp_path / "bank.jsonl"
    path.write_text(json.dumps(GOOD) + "\n\n{broken\n" + json.dumps(BAD) + "\n", encoding="utf-8")
    questions, diagnostics = load_question_bank(path)
    assert [q.id for q in questions] == ["q1"]
    assert len(diagnostics) == 1


def test_parse_line():
    assert parse_line("   ") is None
    assert parse_line("{oops") is None
    assert parse_line('{"id": "x"}') == {"id": "x"}


def test_missing_bank_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_question_bank(tmp_path / "nope.json")


def test_run_import_strict_exit_status(tmp_path, capsys):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps([GOOD, BAD]), encoding="utf-8")
    assert run_import(path) == 0
    assert run_import(path, strict=True) == 1
    out = capsys.readouterr().out
    assert "Valid questions: 1" in out
    assert "35-40%" in out
    assert "#1: Missing fields: options" in out
