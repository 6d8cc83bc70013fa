"""Attach semantic vectors to question records."""

from dataclasses import replace

from question_bank.models import LLMClient, QuestionRecord


class EmbeddingError(Exception):
    """Raised when an embedding cannot be computed for a record."""


class RecordEmbedder:
    """Compute and attach an embedding over question, answer and explanation."""

    def __init__(self, client: LLMClient):
        self.client = client

    def embed_text(self, text: str) -> list[float]:
        """Embed arbitrary text.

        Raises:
            EmbeddingError: If the collaborator fails or returns no vector
        """
        try:
            vector = self.client.embed(text)
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {type(e).__name__}: {e}") from e
        if not vector:
            raise EmbeddingError("Embedding collaborator returned an empty vector")
        return list(vector)

    def embed(self, record: QuestionRecord) -> QuestionRecord:
        """Return a copy of ``record`` carrying its embedding."""
        return replace(record, embedding=self.embed_text(record.embedding_text()))
