"""Reference text ingestion and lookup."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from question_bank.models import BatchResult, LLMClient, Message, ReferenceContent
from question_bank.store import ContentStore, StoreError

from .embedding import EmbeddingError, RecordEmbedder
from .prompts import build_summary_prompt

logger = logging.getLogger(__name__)


def list_reference_files(folder: Path) -> list[Path]:
    """``.txt`` files directly inside ``folder``, sorted by name.

    Raises:
        FileNotFoundError: If the folder does not exist
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Reference folder not found: {folder}")
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix == ".txt")


def fetch_reference(store: ContentStore, table: str, subject: str, topic: str) -> ReferenceContent:
    """Fetch the reference text of one topic.

    Raises:
        StoreError: If the query fails or no reference text exists for the topic
    """
    try:
        rows = store.query(table, {"subject": subject, "topic": topic})
    except StoreError as e:
        raise StoreError(f"Failed to fetch reference content: {e}") from e
    if not rows:
        raise StoreError(f"No reference content for topic '{topic}' in subject '{subject}'")
    if len(rows) > 1:
        logger.warning("%d reference rows for topic '%s', using the first", len(rows), topic)
    return ReferenceContent.from_row(rows[0])


class ReferenceIngestor:
    """Summarize, embed and store reference texts one file at a time.

    The full text is stored as content; the embedding is computed over a
    model-written summary, which is kept in metadata.
    """

    def __init__(
        self,
        store: ContentStore,
        table: str,
        summary_client: LLMClient,
        embedder: RecordEmbedder,
        subject: str,
        grade_level: Optional[str] = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.table = table
        self.summary_client = summary_client
        self.embedder = embedder
        self.subject = subject
        self.grade_level = grade_level
        self.now = now or (lambda: datetime.now(timezone.utc))

    def ingest(
        self,
        paths: list[Path],
        progress_callback: Callable[[Path, Optional[str]], None] | None = None,
    ) -> BatchResult[ReferenceContent]:
        """Ingest every file; a failing file is recorded and skipped."""
        result: BatchResult[ReferenceContent] = BatchResult()

        for path in paths:
            path = Path(path)
            error = None
            try:
                result.successes.append(self.ingest_file(path))
            except (OSError, UnicodeDecodeError, EmbeddingError, StoreError) as e:
                error = str(e)
            except Exception as e:
                error = f"Summary failed: {type(e).__name__}: {e}"

            if error:
                logger.error("%s: %s", path.name, error)
                result.add_failure(path.name, error)
            if progress_callback:
                progress_callback(path, error)

        return result

    def ingest_file(self, path: Path) -> ReferenceContent:
        """Read, summarize, embed and insert one reference file."""
        content = path.read_text(encoding="utf-8")
        summary = self.summary_client.generate(
            [Message(role="user", content=build_summary_prompt(self.subject, content))]
        )
        embedding = self.embedder.embed_text(summary)

        reference = ReferenceContent(
            topic=path.stem,
            subject=self.subject,
            content=content,
            grade_level=self.grade_level,
            embedding=tuple(embedding),
            metadata={
                "filename": path.name,
                "summary": summary,
                "uploaded_at": self.now().isoformat(),
            },
        )

        try:
            self.store.insert(self.table, reference.to_row())
        except StoreError as e:
            raise StoreError(f"Failed to upload reference: {e}") from e
        return reference
