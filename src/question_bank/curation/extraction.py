"""Structured extraction of exam questions from scanned pages."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import BaseModel, Field

from question_bank.models import BatchResult, ItemFailure, QuestionRecord, VLMClient

from .embedding import EmbeddingError, RecordEmbedder
from .prompts import build_extraction_prompt
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png")


class ExtractedQuestion(BaseModel):
    """One question as returned by the extraction model."""

    topic: str = Field(description="The reference text this question relates to")
    question: str = Field(description="The full question text extracted from the image")
    answer: str = Field(description="The answer to the question")
    question_number: int = Field(description="The question number in the exam paper")
    question_year: int = Field(description="The year this question appeared in the exam")
    subject: str = Field(description="The subject area")
    explanation: str = Field(
        description="How the question can be answered, including key points and analysis"
    )
    difficulty: int = Field(ge=1, le=5, description="Difficulty from 1 (easiest) to 5 (hardest)")
    grade_level: str = Field(description="Grade level")
    question_type_name: str = Field(
        description="The question type; must be one of the provided question types"
    )


def closed_schema(topics: list[str], question_types: list[str]) -> dict:
    """Item JSON schema with topic and question type narrowed to closed sets."""
    schema = ExtractedQuestion.model_json_schema()
    properties = schema["properties"]
    if topics:
        properties["topic"]["enum"] = list(topics)
    if question_types:
        properties["question_type_name"]["enum"] = list(question_types)
    return schema


def list_source_images(folder: Path) -> list[Path]:
    """Image files directly inside ``folder``, sorted by name.

    Raises:
        FileNotFoundError: If the folder does not exist
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Source folder not found: {folder}")
    return sorted(
        p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
    )


@dataclass
class SourceReport:
    """Per-image outcome."""

    source: str
    candidates: int = 0
    succeeded: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def extracted(self) -> bool:
        return self.error is None


@dataclass
class ExtractionRun:
    """Outcome of extracting a batch of images."""

    result: BatchResult[QuestionRecord] = field(default_factory=BatchResult)
    sources: list[SourceReport] = field(default_factory=list)

    @property
    def records(self) -> list[QuestionRecord]:
        return self.result.successes

    @property
    def sources_extracted(self) -> int:
        return sum(1 for s in self.sources if s.extracted)

    @property
    def sources_failed(self) -> int:
        return sum(1 for s in self.sources if not s.extracted)


class ExtractionEngine:
    """Turn scanned exam pages into classified, embedded question records.

    Every candidate is processed on its own: an unknown question-type label
    or a failed embedding drops that candidate only, and a failed extraction
    call drops that image only.
    """

    def __init__(
        self,
        vlm_client: VLMClient,
        embedder: RecordEmbedder,
        subject: str,
        question_types: Vocabulary,
        topics: Vocabulary,
        grade_level: Optional[str] = None,
        now: Callable[[], datetime] | None = None,
    ):
        """Initialize extraction engine.

        Args:
            vlm_client: Vision model exposing ``extract``
            embedder: Record embedder
            subject: Subject every record is filed under
            question_types: Closed question-type vocabulary
            topics: Closed topic vocabulary
            grade_level: Grade level override (model output is used if None)
            now: Clock for provenance timestamps
        """
        self.vlm_client = vlm_client
        self.embedder = embedder
        self.subject = subject
        self.question_types = question_types
        self.topics = topics
        self.grade_level = grade_level
        self.now = now or (lambda: datetime.now(timezone.utc))

        self.instructions = build_extraction_prompt(
            subject, topics.names, question_types.names, grade_level
        )
        self.schema = closed_schema(topics.names, question_types.names)

    def run(
        self,
        image_paths: list[Path],
        progress_callback: Callable[[SourceReport], None] | None = None,
    ) -> ExtractionRun:
        """Extract every image in turn, folding outcomes into one run."""
        run = ExtractionRun()
        for image_path in image_paths:
            report, result = self.extract_source(Path(image_path))
            run.sources.append(report)
            run.result = run.result.merge(result)
            if progress_callback:
                progress_callback(report)
        return run

    def extract_source(self, image_path: Path) -> tuple[SourceReport, BatchResult[QuestionRecord]]:
        """Extract and post-process all candidates of one image."""
        source = image_path.name
        report = SourceReport(source=source)
        result: BatchResult[QuestionRecord] = BatchResult()

        candidates = self._extract_candidates(image_path)
        if isinstance(candidates, ItemFailure):
            report.error = candidates.reason
            result.failures.append(candidates)
            return report, result

        report.candidates = len(candidates)
        for candidate in candidates:
            outcome = self.process_candidate(candidate, source)
            if isinstance(outcome, ItemFailure):
                result.failures.append(outcome)
                report.failed += 1
            else:
                result.successes.append(outcome)
                report.succeeded += 1

        return report, result

    def _extract_candidates(self, image_path: Path) -> Union[list[ExtractedQuestion], ItemFailure]:
        try:
            return self.vlm_client.extract(
                self.instructions, ExtractedQuestion, image_path, json_schema=self.schema
            )
        except Exception as e:
            logger.error("Extraction failed for %s: %s: %s", image_path.name, type(e).__name__, e)
            return ItemFailure(item=image_path.name, reason=f"extraction failed: {e}")

    def process_candidate(
        self, candidate: ExtractedQuestion, source: str
    ) -> Union[QuestionRecord, ItemFailure]:
        """Resolve, embed and annotate one extracted candidate."""
        item = f"{source}#Q{candidate.question_number}"

        resolution = self.question_types.resolve(candidate.question_type_name)
        if not resolution.found:
            logger.warning("%s: unknown question type %r", item, candidate.question_type_name)
            return ItemFailure(
                item=item,
                reason=f'Question type "{candidate.question_type_name}" not found in available types',
            )

        if candidate.topic not in self.topics:
            logger.warning("%s: topic %r is not a known reference text", item, candidate.topic)

        record = QuestionRecord(
            topic=candidate.topic,
            question=candidate.question,
            answer=candidate.answer,
            question_number=candidate.question_number,
            question_year=candidate.question_year,
            subject=self.subject,
            explanation=candidate.explanation,
            difficulty=candidate.difficulty,
            grade_level=self.grade_level or candidate.grade_level,
            question_type_id=resolution.id,
            metadata={
                "source_image": source,
                "extracted_at": self.now().isoformat(),
                "question_type_name": candidate.question_type_name,
            },
        )

        try:
            return self.embedder.embed(record)
        except EmbeddingError as e:
            logger.error("%s: %s", item, e)
            return ItemFailure(item=item, reason=str(e))
