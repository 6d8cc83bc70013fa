"""Controlled vocabularies: subject-scoped closed sets of category names."""

from dataclasses import dataclass
from typing import Iterable, Optional

from question_bank.models import VocabularyTerm
from question_bank.store import ContentStore, StoreError


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a free-text label against a vocabulary."""

    label: str
    term: Optional[VocabularyTerm] = None

    @property
    def found(self) -> bool:
        return self.term is not None

    @property
    def id(self) -> Optional[str]:
        return self.term.id if self.term else None


class Vocabulary:
    """In-memory name to term map built once per run.

    Lookup is an exact match on the term name; resolution returns a
    :class:`Resolution` instead of raising so batch loops can branch on it.
    """

    def __init__(self, kind: str, subject: str, terms: Iterable[VocabularyTerm]):
        self.kind = kind
        self.subject = subject
        self._terms: dict[str, VocabularyTerm] = {}
        for term in terms:
            self._terms.setdefault(term.name, term)

    @property
    def names(self) -> list[str]:
        """Term names in the order they were fetched."""
        return list(self._terms)

    @property
    def terms(self) -> list[VocabularyTerm]:
        return list(self._terms.values())

    def resolve(self, label: str) -> Resolution:
        return Resolution(label=label, term=self._terms.get(label))

    def ids_for(self, names: Iterable[str]) -> set[str]:
        """Ids of the given names; names not in the vocabulary are skipped."""
        return {self._terms[name].id for name in names if name in self._terms}

    def __contains__(self, name: str) -> bool:
        return name in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def __repr__(self) -> str:
        return f"Vocabulary(kind={self.kind!r}, subject={self.subject!r}, size={len(self)})"


def fetch_question_types(store: ContentStore, table: str, subject: str) -> Vocabulary:
    """Fetch the question-type vocabulary of a subject.

    Raises:
        StoreError: If the query fails
    """
    try:
        rows = store.query(table, {"subject": subject})
    except StoreError as e:
        raise StoreError(f"Failed to fetch question types: {e}") from e
    return Vocabulary("question_type", subject, (VocabularyTerm.from_row(r) for r in rows))


def fetch_topics(store: ContentStore, table: str, subject: str) -> Vocabulary:
    """Fetch the topic vocabulary of a subject from its reference contents.

    Topics are identified by their name, which is unique within a subject.

    Raises:
        StoreError: If the query fails
    """
    try:
        rows = store.query(table, {"subject": subject})
    except StoreError as e:
        raise StoreError(f"Failed to fetch topics: {e}") from e
    terms = (VocabularyTerm(id=r["topic"], name=r["topic"], subject=subject) for r in rows)
    return Vocabulary("topic", subject, terms)
