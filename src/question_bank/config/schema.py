"""Configuration schema definitions using Pydantic."""

import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

load_dotenv()


class ConfigurationError(Exception):
    """Raised when required configuration is missing or inconsistent."""


class DifficultyMode(str, Enum):
    """Target difficulty for generated questions.

    - EASY: difficulty 1-2
    - MEDIUM: difficulty 3
    - HARD: difficulty 4-5
    - MIXED: balanced spread across all levels
    """

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    MIXED = "mixed"


def _resolve_env(v):
    if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
        return os.getenv(v[2:-1], "")
    return v


class FrozenModel(BaseModel):
    """Base for immutable configuration values."""

    model_config = ConfigDict(frozen=True)


class TableNames(FrozenModel):
    """Store table names."""

    pastpapers: str = "pastpapers"
    mcqs: str = "mcqs"
    references: str = "textbooks"
    question_types: str = "question_types"
    sets: str = "mcqsets"
    set_members: str = "mcqset_questions"


class StoreConfig(FrozenModel):
    """Configuration for the content store (PostgREST / Supabase REST)."""

    url: str = Field(default="${SUPABASE_URL}", validate_default=True)
    api_key: str = Field(default="${SUPABASE_ANON_KEY}", validate_default=True)
    timeout: float = Field(default=60.0, gt=0)
    tables: TableNames = Field(default_factory=TableNames)

    @field_validator("url", "api_key", mode="before")
    @classmethod
    def resolve_env_var(cls, v: str) -> str:
        """Resolve environment variables."""
        return _resolve_env(v)


class ModelEndpoint(FrozenModel):
    """Configuration for a model endpoint."""

    name: str
    base_url: str
    api_key: str = Field(default="")
    model_name: str | None = None
    max_tokens: int = Field(default=8192, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout: float = Field(default=300.0, gt=0)

    @field_validator("base_url", "api_key", "model_name", mode="before")
    @classmethod
    def resolve_env_var(cls, v: str) -> str:
        """Resolve environment variables."""
        return _resolve_env(v)


class ModelConfig(FrozenModel):
    """Configuration for model endpoints."""

    endpoints: list[ModelEndpoint] = Field(default_factory=list)

    def get_endpoint(self, name: str) -> ModelEndpoint | None:
        """Get endpoint configuration by name."""
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        return None


class CurationConfig(FrozenModel):
    """Subject scope and the model used for each collaborator."""

    subject: str
    grade_level: str | None = None
    vision_model: str = "vision"
    generation_model: str = "generation"
    summary_model: str = "generation"
    embedding_model: str = "embedding"


class DifficultyDistribution(FrozenModel):
    """Requested number of questions per difficulty band."""

    easy: int = Field(default=0, ge=0)
    medium: int = Field(default=0, ge=0)
    hard: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.easy + self.medium + self.hard


class SamplingConfig(FrozenModel):
    """Filters and targets for selecting questions from the bank."""

    topic: str | None = None
    question_types: list[str] | None = None
    limit: int = Field(default=10, ge=0)
    distribution: DifficultyDistribution | None = None


class GenerationConfig(FrozenModel):
    """Settings for grounded question generation."""

    topic: str | None = None
    exemplar_count: int = Field(default=5, ge=0)
    target_count: int = Field(default=10, ge=1)
    difficulty: DifficultyMode = DifficultyMode.MIXED


class SetConfig(FrozenModel):
    """Identity of the question set created by a compose run."""

    topic: str
    description: str | None = None
    subject: str | None = None


class PathsConfig(FrozenModel):
    """Input folders and output destinations."""

    images_dir: Path = Field(default=Path("pastpapers/images"))
    references_dir: Path = Field(default=Path("textbooks"))
    extraction_report: Path = Field(default=Path("pastpapers/extracted-questions.txt"))
    generation_report: Path = Field(default=Path("generated-mcqs.txt"))
    generated_jsonl: Path = Field(default=Path("generated-mcqs.jsonl"))


class PipelineConfig(FrozenModel):
    """Complete pipeline configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    curation: CurationConfig
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    question_set: SetConfig | None = None
    paths: PathsConfig = Field(default_factory=PathsConfig)

    seed: int | None = None

    @classmethod
    def from_yaml(cls, path: Path) -> "PipelineConfig":
        """Load configuration from YAML file.

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the file is not a valid configuration mapping
        """
        import yaml

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}:\n{e}") from e

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def require_store(self) -> None:
        """Fail fast when store credentials are missing."""
        if not self.store.url or not self.store.api_key:
            raise ConfigurationError(
                "Missing store url or api key (set SUPABASE_URL and SUPABASE_ANON_KEY)"
            )

    def require_models(self, *names: str) -> None:
        """Fail fast when a model endpoint is not configured or lacks a URL."""
        for name in names:
            endpoint = self.models.get_endpoint(name)
            if endpoint is None:
                raise ConfigurationError(f"Model endpoint not configured: {name}")
            if not endpoint.base_url:
                raise ConfigurationError(f"Model endpoint has no base_url: {name}")

    def require_generation_topic(self) -> str:
        """Grounded generation needs a topic to fetch reference content."""
        topic = self.generation.topic or self.sampling.topic
        if not topic:
            raise ConfigurationError("Topic must be specified for reference content retrieval")
        return topic
