import pytest

from question_bank.config import DifficultyMode, GenerationConfig
from question_bank.curation import GeneratedMCQ, GenerationEngine, GenerationError
from question_bank.curation.generation import closed_schema
from question_bank.models import QuestionRecord, ReferenceContent

REFERENCE = ReferenceContent(
    topic="Six Kingdoms", subject="DSE Chinese", content="The six states were destroyed..."
)

EXEMPLARS = [
    QuestionRecord(
        topic="Six Kingdoms",
        question="What does the author argue?",
        subject="DSE Chinese",
        answer="Bribing Qin weakened the states",
        explanation="Paragraph 1 states the thesis",
        difficulty=3,
    )
]


def _mcq(difficulty=1, question_type="Comprehension", topic="Six Kingdoms"):
    return GeneratedMCQ(
        question=f"Generated question at {difficulty}?",
        options={"A": "one", "B": "two", "C": "three", "D": "four"},
        correct_answer="B",
        explanation="Because the text says so",
        difficulty=difficulty,
        topic=topic,
        question_type_name=question_type,
    )


class MockLLMClient:
    """Mock LLM client returning a fixed list of structured items."""

    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.calls = []

    def generate_structured(self, messages, item_model, json_schema=None, **kwargs):
        self.calls.append((messages, item_model, json_schema))
        if self.error:
            raise self.error
        return list(self.items)


def _engine(client, question_types, difficulty=DifficultyMode.MIXED, target_count=5):
    return GenerationEngine(
        client,
        "DSE Chinese",
        GenerationConfig(difficulty=difficulty, target_count=target_count),
        question_types,
    )


def test_easy_generation_returns_exact_count_in_range(question_types):
    client = MockLLMClient([_mcq(1), _mcq(2), _mcq(1), _mcq(2), _mcq(1)])
    engine = _engine(client, question_types, difficulty=DifficultyMode.EASY)

    items = engine.generate(REFERENCE, EXEMPLARS, count=5)

    assert len(items) == 5
    assert all(item.difficulty in (1, 2) for item in items)
    assert "difficulty 1-2/5" in engine.last_prompt
    messages, item_model, schema = client.calls[0]
    assert messages[0].content == engine.last_prompt
    assert item_model is GeneratedMCQ
    assert schema["properties"]["question_type_name"]["enum"] == question_types.names


def test_prompt_is_grounded(question_types):
    client = MockLLMClient([_mcq(3)])
    engine = _engine(client, question_types, difficulty=DifficultyMode.MEDIUM)

    engine.generate(REFERENCE, EXEMPLARS, count=1)

    prompt = engine.last_prompt
    assert "The six states were destroyed..." in prompt
    assert "What does the author argue?" in prompt
    assert "- Vocabulary" in prompt
    assert "Write exactly 1 questions." in prompt


def test_count_mismatch_raises(question_types):
    engine = _engine(MockLLMClient([_mcq(1)] * 4), question_types, DifficultyMode.EASY)
    with pytest.raises(GenerationError, match="Expected 5"):
        engine.generate(REFERENCE, EXEMPLARS, count=5)


def test_difficulty_out_of_range_raises(question_types):
    engine = _engine(MockLLMClient([_mcq(1), _mcq(4)]), question_types, DifficultyMode.EASY)
    with pytest.raises(GenerationError, match="outside the easy range"):
        engine.generate(REFERENCE, EXEMPLARS, count=2)


def test_unknown_question_type_raises(question_types):
    engine = _engine(MockLLMClient([_mcq(3, question_type="Poetry")]), question_types)
    with pytest.raises(GenerationError, match="Poetry"):
        engine.generate(REFERENCE, EXEMPLARS, count=1)


def test_collaborator_failure_is_wrapped(question_types):
    engine = _engine(MockLLMClient(error=ValueError("Response violates schema")), question_types)
    with pytest.raises(GenerationError, match="violates schema"):
        engine.generate(REFERENCE, EXEMPLARS, count=1)


def test_zero_count_is_rejected_before_calling_model(question_types):
    client = MockLLMClient([_mcq(1)])
    engine = _engine(client, question_types, target_count=3)

    with pytest.raises(GenerationError, match="at least 1"):
        engine.generate(REFERENCE, EXEMPLARS, count=0)
    assert client.calls == []


def test_defaults_come_from_config(question_types):
    items = [_mcq(d) for d in (1, 3, 5)]
    engine = _engine(MockLLMClient(items), question_types, target_count=3)

    assert len(engine.generate(REFERENCE, [])) == 3
    assert "(none)" in engine.last_prompt


def test_missing_topic_defaults_to_reference(question_types):
    engine = _engine(MockLLMClient([_mcq(2, topic="")]), question_types)
    assert engine.generate(REFERENCE, EXEMPLARS, count=1)[0].topic == "Six Kingdoms"


def test_invalid_answer_label_rejected_by_model():
    with pytest.raises(ValueError):
        GeneratedMCQ(
            question="q",
            options={"A": "1", "B": "2", "C": "3", "D": "4"},
            correct_answer="E",
            explanation="x",
            difficulty=1,
            question_type_name="Comprehension",
        )


def test_closed_schema():
    schema = closed_schema(["A type"])
    assert schema["properties"]["question_type_name"]["enum"] == ["A type"]
    assert "correct_answer" in schema["required"]
