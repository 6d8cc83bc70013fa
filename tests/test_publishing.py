from question_bank.curation import GeneratedMCQ, Publisher, RecordEmbedder, to_record
from question_bank.store import MemoryStore


class MockEmbeddingClient:
    """Mock embedding client."""

    def embed(self, text):
        return [float(len(text))]


def _mcq(question, question_type="Comprehension"):
    return GeneratedMCQ(
        question=question,
        options={"A": "one", "B": "two", "C": "three", "D": "four"},
        correct_answer="D",
        explanation="Because",
        difficulty=2,
        topic="Six Kingdoms",
        question_type_name=question_type,
    )


def test_to_record_resolves_type(question_types):
    record = to_record(_mcq("Why?"), "DSE Chinese", question_types, grade_level="DSE")

    assert record.question_type_id == "qt-1"
    assert record.options == {"A": "one", "B": "two", "C": "three", "D": "four"}
    assert record.answer_text() == "D. four"
    assert record.metadata["question_type_name"] == "Comprehension"


def test_publish_embeds_and_inserts_each_item(question_types):
    store = MemoryStore()
    publisher = Publisher(
        store, "mcqs", RecordEmbedder(MockEmbeddingClient()), "DSE Chinese", question_types
    )

    result = publisher.publish([_mcq("First?"), _mcq("Second?", "Poetry"), _mcq("Third?")])

    assert result.success_count == 2
    assert result.failure_count == 1
    assert "Poetry" in result.failures[0].reason
    rows = store.rows("mcqs")
    assert [r["question"] for r in rows] == ["First?", "Third?"]
    assert all(r["embedding"] for r in rows)
    assert all(r["correct_answer"] == "D" for r in rows)
    assert [s.id for s in result.successes] == [r["id"] for r in rows]
