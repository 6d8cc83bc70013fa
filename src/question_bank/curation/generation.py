"""Grounded generation of multiple choice questions."""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field

from question_bank.config import DifficultyMode, GenerationConfig
from question_bank.models import LLMClient, Message, QuestionRecord, ReferenceContent

from .prompts import DIFFICULTY_RANGES, build_generation_prompt
from .sampling import band_of
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when a generation call fails or its output misses the request."""


class GeneratedOptions(BaseModel):
    """The four options of a generated question."""

    A: str = Field(description="Option A")
    B: str = Field(description="Option B")
    C: str = Field(description="Option C")
    D: str = Field(description="Option D")


class GeneratedMCQ(BaseModel):
    """A generated multiple choice question, pending human review."""

    question: str = Field(description="The multiple choice question text")
    options: GeneratedOptions = Field(description="Four options for the question")
    correct_answer: Literal["A", "B", "C", "D"] = Field(
        description="The correct answer (A, B, C, or D)"
    )
    explanation: str = Field(description="Detailed explanation of why the answer is correct")
    difficulty: int = Field(ge=1, le=5, description="Difficulty from 1 (easiest) to 5 (hardest)")
    topic: str = Field(default="", description="The topic this question relates to")
    question_type_name: str = Field(
        description="The question type; must be one of the available question types"
    )


def closed_schema(question_types: list[str]) -> dict:
    """Item JSON schema with the question type narrowed to a closed set."""
    schema = GeneratedMCQ.model_json_schema()
    if question_types:
        schema["properties"]["question_type_name"]["enum"] = list(question_types)
    return schema


class GenerationEngine:
    """Generate new questions from a reference text and exemplar questions.

    A call is atomic: it either returns exactly the requested number of
    questions, all within the requested difficulty range and all labelled
    with a known question type, or raises :class:`GenerationError`.
    Output is neither embedded nor persisted here.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        subject: str,
        config: GenerationConfig,
        question_types: Vocabulary,
    ):
        self.llm_client = llm_client
        self.subject = subject
        self.config = config
        self.question_types = question_types
        self.last_prompt: Optional[str] = None

    def generate(
        self,
        reference: ReferenceContent,
        exemplars: list[QuestionRecord],
        count: Optional[int] = None,
        difficulty: Optional[DifficultyMode] = None,
    ) -> list[GeneratedMCQ]:
        """Generate questions grounded in ``reference``.

        Args:
            reference: Reference text to ground the questions in
            exemplars: Example questions for style and difficulty calibration
            count: Number of questions (defaults to the configured target)
            difficulty: Difficulty mode (defaults to the configured mode)

        Returns:
            Exactly ``count`` generated questions

        Raises:
            GenerationError: If the call fails or the output misses the request
        """
        count = count if count is not None else self.config.target_count
        if count < 1:
            raise GenerationError(f"Question count must be at least 1, got {count}")
        difficulty = DifficultyMode(difficulty or self.config.difficulty)

        prompt = build_generation_prompt(
            self.subject, reference, exemplars, count, difficulty, self.question_types.names
        )
        self.last_prompt = prompt

        try:
            items = self.llm_client.generate_structured(
                [Message(role="user", content=prompt)],
                GeneratedMCQ,
                json_schema=closed_schema(self.question_types.names),
            )
        except Exception as e:
            raise GenerationError(f"Generation call failed: {type(e).__name__}: {e}") from e

        items = [
            item if item.topic else item.model_copy(update={"topic": reference.topic})
            for item in items
        ]
        self._check(items, count, difficulty)
        return items

    def _check(self, items: list[GeneratedMCQ], count: int, difficulty: DifficultyMode) -> None:
        if len(items) != count:
            raise GenerationError(f"Expected {count} questions, model returned {len(items)}")

        allowed = DIFFICULTY_RANGES[difficulty]
        off_range = [i for i, item in enumerate(items, 1) if item.difficulty not in allowed]
        if off_range:
            raise GenerationError(
                f"Questions {off_range} fall outside the {difficulty.value} range {allowed}"
            )

        unknown = sorted(
            {item.question_type_name for item in items} - set(self.question_types.names)
        )
        if unknown:
            raise GenerationError(f"Unknown question types in output: {', '.join(unknown)}")

        if difficulty == DifficultyMode.MIXED and count >= 3:
            bands = {band_of(item.difficulty) for item in items}
            if len(bands) < 3:
                logger.warning("Mixed generation did not cover every difficulty band")
