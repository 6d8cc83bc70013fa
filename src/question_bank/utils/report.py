"""Plain-text review reports and JSONL hand-off files."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, TypeVar

from pydantic import BaseModel

from question_bank.models import OPTION_LABELS, QuestionRecord

ModelT = TypeVar("ModelT", bound=BaseModel)

RULE_WIDTH = 80


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _write(path: Path, content: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


def write_extraction_report(
    records: list[QuestionRecord], path: Path, now: Optional[datetime] = None
) -> Path:
    """Write extracted questions for human review."""
    lines = [
        "=== EXTRACTED PAST PAPER QUESTIONS ===",
        f"Total Questions: {len(records)}",
        f"Generated: {_timestamp(now)}",
        "=" * RULE_WIDTH,
        "",
    ]

    for index, q in enumerate(records, 1):
        lines += [
            f"Question {index}:",
            f"  Topic: {q.topic}",
            f"  Year: {q.question_year}",
            f"  Question Number: {q.question_number}",
            f"  Subject: {q.subject}",
            f"  Grade Level: {q.grade_level}",
            f"  Question Type ID: {q.question_type_id}",
            f"  Difficulty: {q.difficulty}/5",
            f"  Explanation: {q.explanation}",
            f"  Question: {q.question}",
            f"  Answer: {q.answer}",
            f"  Metadata: {json.dumps(q.metadata, ensure_ascii=False, indent=2)}",
            "-" * RULE_WIDTH,
            "",
        ]

    return _write(path, "\n".join(lines) + "\n")


def write_generation_report(
    items: list,
    path: Path,
    topic: Optional[str] = None,
    question_types: Optional[list[str]] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Write generated multiple choice questions for human review.

    ``items`` are generated questions exposing ``question``, ``options``
    (A-D), ``correct_answer``, ``difficulty``, ``topic``,
    ``question_type_name`` and ``explanation``.
    """
    lines = [
        "=== GENERATED MCQ QUESTIONS ===",
        f"Generated: {_timestamp(now)}",
        f"Topic: {topic or 'All topics'}",
        f"Question Types: {', '.join(question_types) if question_types else 'All types'}",
        f"Total Questions: {len(items)}",
        "=" * RULE_WIDTH,
        "",
    ]

    for index, mcq in enumerate(items, 1):
        lines += [f"Question {index}:", mcq.question, ""]
        lines += [f"{label}. {getattr(mcq.options, label)}" for label in OPTION_LABELS]
        lines += [
            "",
            f"Correct Answer: {mcq.correct_answer}",
            f"Difficulty: {mcq.difficulty}/5",
            f"Topic: {mcq.topic}",
            f"Question Type: {mcq.question_type_name}",
            f"Explanation: {mcq.explanation}",
            "-" * RULE_WIDTH,
            "",
        ]

    return _write(path, "\n".join(lines) + "\n")


def write_jsonl(items: Iterable[BaseModel], path: Path) -> Path:
    """Write pydantic items one JSON object per line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for item in items:
            json.dump(item.model_dump(mode="json"), f, ensure_ascii=False)
            f.write("\n")
    return path


def read_jsonl(path: Path, item_model: type[ModelT]) -> list[ModelT]:
    """Read and validate a JSONL file written by :func:`write_jsonl`.

    Blank lines are skipped, so reviewers may delete items by clearing lines.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a line is not a valid item (line number in the message)
    """
    path = Path(path)
    items = []
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                items.append(item_model.model_validate_json(line))
            except ValueError as e:
                raise ValueError(f"{path.name}:{line_number}: invalid item: {e}") from e
    return items
