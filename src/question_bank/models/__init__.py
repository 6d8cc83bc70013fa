"""Model clients and question bank types."""

from models import LLMClient, Message, ModelRegistry, StructuredOutputError, VLMClient

from question_bank.config import ModelConfig

from .types import (
    OPTION_LABELS,
    BatchResult,
    ItemFailure,
    QuestionRecord,
    QuestionSet,
    ReferenceContent,
    SetMembership,
    VocabularyTerm,
)

__all__ = [
    "BatchResult",
    "ItemFailure",
    "LLMClient",
    "Message",
    "ModelRegistry",
    "OPTION_LABELS",
    "QuestionRecord",
    "QuestionSet",
    "ReferenceContent",
    "SetMembership",
    "StructuredOutputError",
    "VLMClient",
    "VocabularyTerm",
]


# Adapter for question_bank config compatibility
class QuestionBankModelRegistry(ModelRegistry):
    """Adapter registering endpoints from a question_bank ModelConfig."""

    def __init__(self, config: ModelConfig):
        super().__init__()
        from models.registry import ModelEndpoint

        for endpoint in config.endpoints:
            self.register_endpoint(
                ModelEndpoint(
                    name=endpoint.name,
                    base_url=endpoint.base_url,
                    api_key=endpoint.api_key,
                    model_name=endpoint.model_name,
                    max_tokens=endpoint.max_tokens,
                    temperature=endpoint.temperature,
                    timeout=endpoint.timeout,
                )
            )


# Replace ModelRegistry with the adapter
ModelRegistry = QuestionBankModelRegistry
