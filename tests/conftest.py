"""Shared fixtures for question bank tests."""

import pytest

from question_bank.curation import Vocabulary
from question_bank.models import VocabularyTerm
from question_bank.store import MemoryStore

SUBJECT = "DSE Chinese"


@pytest.fixture
def subject():
    return SUBJECT


@pytest.fixture
def question_types():
    return Vocabulary(
        "question_type",
        SUBJECT,
        [
            VocabularyTerm(id="qt-1", name="Comprehension", subject=SUBJECT),
            VocabularyTerm(id="qt-2", name="Rhetoric", subject=SUBJECT),
            VocabularyTerm(id="qt-3", name="Vocabulary", subject=SUBJECT),
        ],
    )


@pytest.fixture
def topics():
    return Vocabulary(
        "topic",
        SUBJECT,
        [
            VocabularyTerm(id="Six Kingdoms", name="Six Kingdoms", subject=SUBJECT),
            VocabularyTerm(id="Teacher's Discourse", name="Teacher's Discourse", subject=SUBJECT),
        ],
    )


def make_question_rows(subject=SUBJECT):
    """A small corpus: 2 topics x 5 difficulty levels x 2 question types."""
    rows = []
    for topic in ("Six Kingdoms", "Teacher's Discourse"):
        for difficulty in range(1, 6):
            for type_id in ("qt-1", "qt-2"):
                rows.append(
                    {
                        "topic": topic,
                        "question": f"{topic} question d{difficulty} {type_id}",
                        "subject": subject,
                        "options": {"A": "a", "B": "b", "C": "c", "D": "d"},
                        "correct_answer": "A",
                        "explanation": "because",
                        "difficulty": difficulty,
                        "question_type_id": type_id,
                        "embedding": [0.1, 0.2],
                    }
                )
    rows.append(
        {
            "topic": "Six Kingdoms",
            "question": "Other subject question",
            "subject": "Mathematics",
            "difficulty": 1,
            "question_type_id": "qt-1",
        }
    )
    return rows


@pytest.fixture
def corpus_store():
    """Store holding a question corpus, its question types and reference texts."""
    return MemoryStore(
        {
            "mcqs": make_question_rows(),
            "pastpapers": make_question_rows(),
            "question_types": [
                {"id": "qt-1", "name": "Comprehension", "subject": SUBJECT},
                {"id": "qt-2", "name": "Rhetoric", "subject": SUBJECT},
                {"id": "qt-3", "name": "Vocabulary", "subject": SUBJECT},
                {"id": "qt-9", "name": "Proof", "subject": "Mathematics"},
            ],
            "textbooks": [
                {"topic": "Six Kingdoms", "subject": SUBJECT, "content": "The six states..."},
                {"topic": "Teacher's Discourse", "subject": SUBJECT, "content": "Teachers..."},
            ],
        }
    )
