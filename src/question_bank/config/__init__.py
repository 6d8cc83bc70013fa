"""Configuration schemas and loaders."""

from .schema import (
    ConfigurationError,
    CurationConfig,
    DifficultyDistribution,
    DifficultyMode,
    GenerationConfig,
    ModelConfig,
    ModelEndpoint,
    PathsConfig,
    PipelineConfig,
    SamplingConfig,
    SetConfig,
    StoreConfig,
    TableNames,
)

__all__ = [
    "ConfigurationError",
    "CurationConfig",
    "DifficultyDistribution",
    "DifficultyMode",
    "GenerationConfig",
    "ModelConfig",
    "ModelEndpoint",
    "PathsConfig",
    "PipelineConfig",
    "SamplingConfig",
    "SetConfig",
    "StoreConfig",
    "TableNames",
]
