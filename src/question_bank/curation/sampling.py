"""Sampling engine: filtered and difficulty-stratified selection of questions.

Filters are equality predicates evaluated by the store. The question-type
filter is resolved to vocabulary ids in-process first. With a difficulty
distribution, every non-empty band is queried and sampled on its own, so a
shortage in one band is never made up from another.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, TypeVar

from question_bank.config import SamplingConfig
from question_bank.models import QuestionRecord
from question_bank.store import ContentStore, StoreError

from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DifficultyBand(str, Enum):
    """Disjoint difficulty bands."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def levels(self) -> tuple[int, ...]:
        return BAND_LEVELS[self]


BAND_LEVELS = {
    DifficultyBand.EASY: (1, 2),
    DifficultyBand.MEDIUM: (3,),
    DifficultyBand.HARD: (4, 5),
}


def band_of(difficulty: Optional[int]) -> Optional[DifficultyBand]:
    """Band a difficulty level falls into, None if unknown."""
    for band, levels in BAND_LEVELS.items():
        if difficulty in levels:
            return band
    return None


class UniformSampler:
    """Uniform sampling without replacement (partial Fisher-Yates shuffle).

    The random source is injectable so runs can be made deterministic.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def sample(self, items: Sequence[T], k: int) -> list[T]:
        """Pick ``min(k, len(items))`` distinct items uniformly at random."""
        pool = list(items)
        count = max(0, min(k, len(pool)))
        for i in range(count):
            j = self.rng.randrange(i, len(pool))
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:count]


@dataclass
class BandReport:
    """How one query/sample step went."""

    label: str
    levels: tuple[int, ...]
    requested: int
    available: int
    selected: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.selected


@dataclass
class Selection:
    """Records picked by the sampling engine and a report per band."""

    records: list[QuestionRecord] = field(default_factory=list)
    bands: list[BandReport] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """No record matched: distinct from a partial shortfall."""
        return not self.records

    @property
    def requested(self) -> int:
        return sum(b.requested for b in self.bands)

    @property
    def shortfall(self) -> int:
        return sum(b.shortfall for b in self.bands)


class SamplingEngine:
    """Select questions from a store table by filters and difficulty targets."""

    def __init__(
        self,
        store: ContentStore,
        table: str,
        subject: Optional[str],
        config: SamplingConfig,
        question_types: Optional[Vocabulary] = None,
        sampler: Optional[UniformSampler] = None,
    ):
        """Initialize sampling engine.

        Args:
            store: Content store
            table: Table holding the question corpus
            subject: Subject filter (None matches all subjects)
            config: Topic / type filters and limit or distribution
            question_types: Vocabulary used to resolve the type filter
            sampler: Sampler (seeded in tests)
        """
        if config.question_types and question_types is None:
            raise ValueError("A question-type vocabulary is required to filter by type")

        self.store = store
        self.table = table
        self.subject = subject
        self.config = config
        self.question_types = question_types
        self.sampler = sampler or UniformSampler()

    def select(self) -> Selection:
        """Run the configured selection.

        Returns:
            Selection; empty if nothing matched

        Raises:
            StoreError: If a query fails
        """
        filters = self._base_filters()
        selection = Selection()

        distribution = self.config.distribution
        if distribution is not None:
            plan = [
                (DifficultyBand.EASY, distribution.easy),
                (DifficultyBand.MEDIUM, distribution.medium),
                (DifficultyBand.HARD, distribution.hard),
            ]
            for band, requested in plan:
                if requested > 0:
                    self._draw(selection, filters, band.value, band.levels, requested)
        else:
            self._draw(selection, filters, "any", (), self.config.limit)

        return selection

    def _base_filters(self) -> Optional[dict]:
        """Equality filters shared by every band; None if nothing can match."""
        filters = {}
        if self.subject:
            filters["subject"] = self.subject
        if self.config.topic:
            filters["topic"] = self.config.topic

        if self.config.question_types:
            type_ids = self.question_types.ids_for(self.config.question_types)
            unknown = [n for n in self.config.question_types if n not in self.question_types]
            if unknown:
                logger.warning("Unknown question types ignored in filter: %s", ", ".join(unknown))
            if not type_ids:
                return None
            filters["question_type_id"] = sorted(type_ids)

        return filters

    def _draw(
        self,
        selection: Selection,
        filters: Optional[dict],
        label: str,
        levels: tuple[int, ...],
        requested: int,
    ) -> None:
        if filters is None:
            rows = []
        else:
            band_filters = dict(filters)
            if levels:
                band_filters["difficulty"] = list(levels)
            try:
                rows = self.store.query(self.table, band_filters)
            except StoreError as e:
                raise StoreError(f"Failed to fetch questions: {e}") from e

        if not rows:
            logger.warning("No questions found for band '%s'", label)

        picked = self.sampler.sample(rows, requested)
        selection.records.extend(QuestionRecord.from_row(r) for r in picked)
        selection.bands.append(
            BandReport(
                label=label,
                levels=levels,
                requested=requested,
                available=len(rows),
                selected=len(picked),
            )
        )
