"""Curation engines: vocabulary, sampling, extraction, generation, composition."""

from .composition import (
    ComposedSet,
    CompositionError,
    SelectionSummary,
    SetComposer,
    build_memberships,
    difficulty_label,
    insert_records,
    order_by_difficulty,
    summarize_selection,
)
from .embedding import EmbeddingError, RecordEmbedder
from .extraction import (
    ExtractedQuestion,
    ExtractionEngine,
    ExtractionRun,
    SourceReport,
    list_source_images,
)
from .generation import GeneratedMCQ, GeneratedOptions, GenerationEngine, GenerationError
from .publishing import Publisher, to_record
from .references import ReferenceIngestor, fetch_reference, list_reference_files
from .sampling import (
    BAND_LEVELS,
    BandReport,
    DifficultyBand,
    SamplingEngine,
    Selection,
    UniformSampler,
    band_of,
)
from .vocabulary import Resolution, Vocabulary, fetch_question_types, fetch_topics

__all__ = [
    "BAND_LEVELS",
    "BandReport",
    "ComposedSet",
    "CompositionError",
    "DifficultyBand",
    "EmbeddingError",
    "ExtractedQuestion",
    "ExtractionEngine",
    "ExtractionRun",
    "GeneratedMCQ",
    "GeneratedOptions",
    "GenerationEngine",
    "GenerationError",
    "Publisher",
    "RecordEmbedder",
    "ReferenceIngestor",
    "Resolution",
    "SamplingEngine",
    "Selection",
    "SelectionSummary",
    "SetComposer",
    "SourceReport",
    "UniformSampler",
    "Vocabulary",
    "band_of",
    "build_memberships",
    "difficulty_label",
    "fetch_question_types",
    "fetch_reference",
    "fetch_topics",
    "insert_records",
    "list_reference_files",
    "list_source_images",
    "order_by_difficulty",
    "summarize_selection",
    "to_record",
]
