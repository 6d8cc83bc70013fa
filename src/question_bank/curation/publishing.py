"""Publish reviewed generated questions to the question bank."""

import logging
from typing import Callable, Optional, Union

from question_bank.models import BatchResult, ItemFailure, QuestionRecord
from question_bank.store import ContentStore

from .composition import insert_records
from .embedding import EmbeddingError, RecordEmbedder
from .generation import GeneratedMCQ
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)


def to_record(
    item: GeneratedMCQ,
    subject: str,
    question_types: Vocabulary,
    grade_level: Optional[str] = None,
) -> Union[QuestionRecord, ItemFailure]:
    """Convert a generated item to an (unembedded) record, resolving its type."""
    resolution = question_types.resolve(item.question_type_name)
    if not resolution.found:
        return ItemFailure(
            item=item.question[:40],
            reason=f'Question type "{item.question_type_name}" not found in available types',
        )

    return QuestionRecord(
        topic=item.topic,
        question=item.question,
        subject=subject,
        options=item.options.model_dump(),
        correct_answer=item.correct_answer,
        explanation=item.explanation,
        difficulty=item.difficulty,
        grade_level=grade_level,
        question_type_id=resolution.id,
        metadata={"question_type_name": item.question_type_name, "origin": "generated"},
    )


class Publisher:
    """Resolve, embed and insert reviewed generated questions item by item."""

    def __init__(
        self,
        store: ContentStore,
        table: str,
        embedder: RecordEmbedder,
        subject: str,
        question_types: Vocabulary,
        grade_level: Optional[str] = None,
    ):
        self.store = store
        self.table = table
        self.embedder = embedder
        self.subject = subject
        self.question_types = question_types
        self.grade_level = grade_level

    def publish(
        self,
        items: list[GeneratedMCQ],
        progress_callback: Callable[[QuestionRecord, Optional[str]], None] | None = None,
    ) -> BatchResult[QuestionRecord]:
        prepared: BatchResult[QuestionRecord] = BatchResult()

        for item in items:
            outcome = to_record(item, self.subject, self.question_types, self.grade_level)
            if isinstance(outcome, ItemFailure):
                logger.warning("%s: %s", outcome.item, outcome.reason)
                prepared.failures.append(outcome)
                continue
            try:
                prepared.successes.append(self.embedder.embed(outcome))
            except EmbeddingError as e:
                logger.error("%s: %s", outcome.question[:40], e)
                prepared.add_failure(outcome.question[:40], str(e))

        inserted = insert_records(self.store, self.table, prepared.successes, progress_callback)
        return BatchResult(
            successes=inserted.successes,
            failures=prepared.failures + inserted.failures,
        )
