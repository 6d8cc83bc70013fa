"""Model clients and utilities."""

from .client import (
    LLMClient,
    Message,
    StructuredOutputError,
    VLMClient,
    parse_structured_items,
)
from .registry import ModelRegistry

__all__ = [
    "LLMClient",
    "Message",
    "ModelRegistry",
    "StructuredOutputError",
    "VLMClient",
    "parse_structured_items",
]
