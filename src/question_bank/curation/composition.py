"""Set and batch composition: ordering, linking and persisting records."""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from question_bank.models import BatchResult, QuestionRecord, QuestionSet, SetMembership
from question_bank.store import ContentStore, StoreError

logger = logging.getLogger(__name__)


class CompositionError(Exception):
    """Raised when a set or its memberships cannot be persisted."""


def order_by_difficulty(records: Iterable[QuestionRecord]) -> list[QuestionRecord]:
    """Easiest first; records without difficulty last; ties keep input order."""
    return sorted(records, key=lambda r: (r.difficulty is None, r.difficulty or 0))


def build_memberships(set_id: str, records: Iterable[QuestionRecord]) -> list[SetMembership]:
    """Memberships with contiguous order_index 1..N by ascending difficulty."""
    return [
        SetMembership(set_id=set_id, question_id=record.id, order_index=index)
        for index, record in enumerate(order_by_difficulty(records), 1)
    ]


@dataclass
class ComposedSet:
    """A persisted set and its ordered memberships."""

    question_set: QuestionSet
    memberships: list[SetMembership]

    @property
    def size(self) -> int:
        return len(self.memberships)


class SetComposer:
    """Create a question set and link its records in difficulty order.

    Linking is all-or-nothing: the memberships go to the store as a single
    batch, and any failure is fatal for the run.
    """

    def __init__(self, store: ContentStore, sets_table: str, members_table: str):
        self.store = store
        self.sets_table = sets_table
        self.members_table = members_table

    def compose(
        self,
        topic: str,
        description: Optional[str],
        subject: str,
        records: list[QuestionRecord],
    ) -> ComposedSet:
        """Create the set and persist its memberships.

        Raises:
            CompositionError: If records are unpersisted, or the set or its
                memberships cannot be stored
        """
        missing = [r.question[:40] for r in records if r.id is None]
        if missing:
            raise CompositionError(f"{len(missing)} record(s) have no id and cannot be linked")

        question_set = self.create_set(topic, description, subject)
        memberships = self.link(question_set.id, records)
        return ComposedSet(question_set=question_set, memberships=memberships)

    def create_set(self, topic: str, description: Optional[str], subject: str) -> QuestionSet:
        try:
            rows = self.store.insert(
                self.sets_table,
                {"topic": topic, "description": description, "subject": subject},
            )
        except StoreError as e:
            raise CompositionError(f"Failed to create question set: {e}") from e

        if not rows:
            raise CompositionError("Failed to create question set: store returned no row")

        row = rows[0]
        return QuestionSet(
            id=str(row["id"]),
            topic=row.get("topic", topic),
            subject=row.get("subject", subject),
            description=row.get("description", description),
        )

    def link(self, set_id: str, records: list[QuestionRecord]) -> list[SetMembership]:
        memberships = build_memberships(set_id, records)
        if not memberships:
            return memberships

        try:
            self.store.insert(self.members_table, [m.to_row() for m in memberships])
        except StoreError as e:
            raise CompositionError(f"Failed to link questions to set: {e}") from e
        return memberships


def insert_records(
    store: ContentStore,
    table: str,
    records: Iterable[QuestionRecord],
    progress_callback: Callable[[QuestionRecord, Optional[str]], None] | None = None,
) -> BatchResult[QuestionRecord]:
    """Insert records one by one, folding per-record failures into the result.

    Records without an embedding are refused. Successes carry the id the
    store assigned. ``progress_callback(record, error)`` fires per record.
    """
    result: BatchResult[QuestionRecord] = BatchResult()

    for record in records:
        item = _describe(record)
        error = None
        if not record.has_embedding:
            error = "record has no embedding"
        else:
            try:
                rows = store.insert(table, record.to_row())
                result.successes.append(replace(record, id=str(rows[0]["id"])))
            except (StoreError, IndexError, KeyError) as e:
                error = f"Failed to upload question: {e}"

        if error:
            logger.error("%s: %s", item, error)
            result.add_failure(item, error)
        if progress_callback:
            progress_callback(record, error)

    return result


def _describe(record: QuestionRecord) -> str:
    if record.question_number is not None:
        return f"Q{record.question_number}"
    return record.question[:40]


def difficulty_label(difficulty: Optional[int]) -> str:
    if difficulty is None:
        return "Unknown"
    if difficulty <= 2:
        return "Easy"
    if difficulty == 3:
        return "Medium"
    return "Hard"


@dataclass
class SelectionSummary:
    """Counts by topic and difficulty plus a few sample questions."""

    total: int
    by_topic: dict[str, int]
    by_difficulty: dict[Optional[int], int]
    samples: list[QuestionRecord]


def summarize_selection(records: list[QuestionRecord], sample_size: int = 3) -> SelectionSummary:
    by_topic: dict[str, int] = {}
    for record in records:
        by_topic[record.topic] = by_topic.get(record.topic, 0) + 1

    by_difficulty: dict[Optional[int], int] = {}
    for record in order_by_difficulty(records):
        by_difficulty[record.difficulty] = by_difficulty.get(record.difficulty, 0) + 1

    return SelectionSummary(
        total=len(records),
        by_topic=by_topic,
        by_difficulty=by_difficulty,
        samples=records[:sample_size],
    )
