"""Type definitions for the question bank."""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

OPTION_LABELS = ("A", "B", "C", "D")


@dataclass
class QuestionRecord:
    """A question in the bank.

    Extracted past-paper questions carry a free-text ``answer``; multiple
    choice questions carry ``options`` plus ``correct_answer``. Either kind
    may appear in a set.

    Attributes:
        topic: Reference text the question belongs to
        question: Question text
        subject: Subject scope of the controlled vocabularies
        answer: Free-text answer (past-paper questions)
        options: Option label to option text (multiple choice)
        correct_answer: Label of the correct option
        explanation: How the question is answered
        difficulty: 1 (easiest) to 5 (hardest), None if unknown
        grade_level: Exam / grade label
        question_type_id: Resolved question-type vocabulary id
        question_number: Number in the source exam paper
        question_year: Year of the source exam paper
        embedding: Semantic vector over question, answer and explanation
        metadata: Provenance and the raw classification label
    """

    topic: str
    question: str
    subject: str
    answer: Optional[str] = None
    options: Optional[dict[str, str]] = None
    correct_answer: Optional[str] = None
    explanation: str = ""
    difficulty: Optional[int] = None
    grade_level: Optional[str] = None
    question_type_id: Optional[str] = None
    question_number: Optional[int] = None
    question_year: Optional[int] = None
    embedding: Optional[list[float]] = None
    metadata: dict = field(default_factory=dict)
    id: Optional[str] = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def answer_text(self) -> str:
        """Answer as plain text, resolving the correct option for MCQs."""
        if self.options and self.correct_answer:
            option = self.options.get(self.correct_answer, "")
            return f"{self.correct_answer}. {option}".strip()
        return self.answer or ""

    def embedding_text(self) -> str:
        """Text the embedding is computed from."""
        return "\n".join([self.question, self.answer_text(), self.explanation])

    def to_row(self) -> dict:
        """Convert to a store row, leaving out unset columns."""
        row = {
            "topic": self.topic,
            "question": self.question,
            "subject": self.subject,
            "answer": self.answer,
            "options": self.options,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "grade_level": self.grade_level,
            "question_type_id": self.question_type_id,
            "question_number": self.question_number,
            "question_year": self.question_year,
            "embedding": self.embedding,
            "metadata": self.metadata,
        }
        if self.id is not None:
            row["id"] = self.id
        return {k: v for k, v in row.items() if v is not None}

    @classmethod
    def from_row(cls, row: dict) -> "QuestionRecord":
        """Create a record from a store row."""
        row_id = row.get("id")
        return cls(
            id=str(row_id) if row_id is not None else None,
            topic=row.get("topic", ""),
            question=row.get("question", ""),
            subject=row.get("subject", ""),
            answer=row.get("answer"),
            options=row.get("options"),
            correct_answer=row.get("correct_answer"),
            explanation=row.get("explanation") or "",
            difficulty=row.get("difficulty"),
            grade_level=row.get("grade_level"),
            question_type_id=row.get("question_type_id"),
            question_number=row.get("question_number"),
            question_year=row.get("question_year"),
            embedding=row.get("embedding"),
            metadata=row.get("metadata") or {},
        )


@dataclass(frozen=True)
class VocabularyTerm:
    """A named category in a subject-scoped controlled vocabulary."""

    id: str
    name: str
    subject: str

    @classmethod
    def from_row(cls, row: dict) -> "VocabularyTerm":
        return cls(id=str(row["id"]), name=row["name"], subject=row.get("subject", ""))


@dataclass(frozen=True)
class ReferenceContent:
    """Reference text (e.g. a prescribed reading) that questions are grounded in."""

    topic: str
    subject: str
    content: str
    grade_level: Optional[str] = None
    embedding: Optional[tuple[float, ...]] = None
    metadata: dict = field(default_factory=dict, hash=False, compare=False)

    def to_row(self) -> dict:
        row = {
            "topic": self.topic,
            "subject": self.subject,
            "content": self.content,
            "grade_level": self.grade_level,
            "embedding": list(self.embedding) if self.embedding else None,
            "metadata": self.metadata,
        }
        return {k: v for k, v in row.items() if v is not None}

    @classmethod
    def from_row(cls, row: dict) -> "ReferenceContent":
        embedding = row.get("embedding")
        return cls(
            topic=row["topic"],
            subject=row.get("subject", ""),
            content=row.get("content", ""),
            grade_level=row.get("grade_level"),
            embedding=tuple(embedding) if embedding else None,
            metadata=row.get("metadata") or {},
        )


@dataclass(frozen=True)
class QuestionSet:
    """A curated practice set."""

    id: str
    topic: str
    subject: str
    description: Optional[str] = None


@dataclass(frozen=True)
class SetMembership:
    """Ordered link between a set and one of its questions."""

    set_id: str
    question_id: str
    order_index: int

    def to_row(self) -> dict:
        return {
            "mcqset_id": self.set_id,
            "mcq_id": self.question_id,
            "order_index": self.order_index,
        }


@dataclass(frozen=True)
class ItemFailure:
    """A single item that could not be processed."""

    item: str
    reason: str


@dataclass
class BatchResult(Generic[T]):
    """Outcome of processing a batch item by item.

    Failures of one item never abort the batch; they are collected here
    alongside the successes.
    """

    successes: list[T] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def add_failure(self, item: str, reason: str) -> None:
        self.failures.append(ItemFailure(item=item, reason=reason))

    def merge(self, other: "BatchResult[T]") -> "BatchResult[T]":
        """Combine two results, successes first-in-first-out."""
        return BatchResult(
            successes=self.successes + other.successes,
            failures=self.failures + other.failures,
        )
