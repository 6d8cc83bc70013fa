from datetime import datetime, timezone

import pytest

from question_bank.curation import GeneratedMCQ
from question_bank.models import QuestionRecord
from question_bank.utils import (
    read_jsonl,
    write_extraction_report,
    write_generation_report,
    write_jsonl,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _mcq(n):
    return GeneratedMCQ(
        question=f"Question {n}?",
        options={"A": "alpha", "B": "beta", "C": "gamma", "D": "delta"},
        correct_answer="C",
        explanation="See paragraph 2",
        difficulty=4,
        topic="Six Kingdoms",
        question_type_name="Rhetoric",
    )


def test_extraction_report_layout(tmp_path):
    records = [
        QuestionRecord(
            topic="Six Kingdoms",
            question="Explain the thesis.",
            subject="DSE Chinese",
            answer="Bribery weakened the states",
            question_number=3,
            question_year=2019,
            difficulty=2,
            question_type_id="qt-1",
            metadata={"source_image": "p1.jpg"},
        )
    ]

    path = write_extraction_report(records, tmp_path / "out" / "extracted.txt", now=NOW)
    text = path.read_text(encoding="utf-8")

    assert text.startswith("=== EXTRACTED PAST PAPER QUESTIONS ===\nTotal Questions: 1\n")
    assert "Generated: 2024-05-01T12:00:00+00:00" in text
    assert "  Year: 2019" in text
    assert "  Question Number: 3" in text
    assert "  Difficulty: 2/5" in text
    assert '"source_image": "p1.jpg"' in text
    assert "-" * 80 in text


def test_generation_report_layout(tmp_path):
    path = write_generation_report(
        [_mcq(1), _mcq(2)], tmp_path / "gen.txt", topic="Six Kingdoms", now=NOW
    )
    text = path.read_text(encoding="utf-8")

    assert text.startswith("=== GENERATED MCQ QUESTIONS ===")
    assert "Question Types: All types" in text
    assert "Total Questions: 2" in text
    assert "Question 2:\nQuestion 2?\n\nA. alpha\nB. beta\nC. gamma\nD. delta\n" in text
    assert "Correct Answer: C" in text
    assert text.count("-" * 80) == 2


def test_jsonl_hand_off(tmp_path):
    path = write_jsonl([_mcq(1), _mcq(2)], tmp_path / "gen.jsonl")
    # A reviewer blanks out a rejected item.
    lines = path.read_text(encoding="utf-8").splitlines()
    path.write_text(lines[0] + "\n\n", encoding="utf-8")

    items = read_jsonl(path, GeneratedMCQ)

    assert items == [_mcq(1)]


def test_read_jsonl_reports_bad_line(tmp_path):
    path = tmp_path / "gen.jsonl"
    path.write_text('{"question": "incomplete"}\n', encoding="utf-8")

    with pytest.raises(ValueError, match="gen.jsonl:1"):
        read_jsonl(path, GeneratedMCQ)
