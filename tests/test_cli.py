import re

import pytest
from typer.testing import CliRunner

from question_bank.cli import commands
from question_bank.cli.main import app
from question_bank.curation import ExtractedQuestion, GeneratedMCQ

runner = CliRunner()

CONFIG = """
store:
  url: https://db.example
  api_key: key
curation:
  subject: DSE Chinese
sampling:
  topic: {topic}
  limit: 4
question_set:
  topic: Practice set
  description: Four questions
seed: 1
"""


@pytest.fixture
def config_file(tmp_path):
    def write(topic="Six Kingdoms", text=CONFIG):
        path = tmp_path / "config.yaml"
        path.write_text(text.format(topic=topic), encoding="utf-8")
        return path

    return write


@pytest.fixture
def patched_store(monkeypatch, corpus_store):
    monkeypatch.setattr(commands, "build_store", lambda config: corpus_store)
    return corpus_store


def test_compose_creates_ordered_set(config_file, patched_store):
    result = runner.invoke(app, ["compose", "--config", str(config_file())])

    assert result.exit_code == 0, result.output
    assert "Question set created" in result.output
    sets = patched_store.rows("mcqsets")
    links = patched_store.rows("mcqset_questions")
    assert [s["topic"] for s in sets] == ["Practice set"]
    assert sorted(link["order_index"] for link in links) == [1, 2, 3, 4]


def test_compose_dry_run_creates_nothing(config_file, patched_store):
    result = runner.invoke(app, ["compose", "--config", str(config_file()), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert patched_store.rows("mcqsets") == []


def test_compose_reports_no_matching_records(config_file, patched_store):
    result = runner.invoke(app, ["compose", "--config", str(config_file(topic="Unknown"))])

    assert result.exit_code == 0, result.output
    assert "No matching records" in result.output
    assert patched_store.rows("mcqsets") == []


def test_compose_link_failure_exits_nonzero(config_file, patched_store):
    patched_store.read_only.add("mcqset_questions")

    result = runner.invoke(app, ["compose", "--config", str(config_file())])

    assert result.exit_code == 1
    assert "CompositionError" in result.output


def test_compose_requires_question_set(tmp_path, patched_store):
    path = tmp_path / "config.yaml"
    path.write_text("curation:\n  subject: DSE Chinese\n", encoding="utf-8")

    result = runner.invoke(app, ["compose", "--config", str(path)])

    assert result.exit_code == 1
    assert "question_set" in result.output


def test_validate_config_reports_missing_endpoints(config_file):
    result = runner.invoke(app, ["validate-config", "--config", str(config_file())])

    assert result.exit_code == 1
    assert "Model endpoint not configured" in result.output


PIPELINE_CONFIG = """
store:
  url: https://db.example
  api_key: key
models:
  endpoints:
    - {{name: vision, base_url: "http://vlm/v1"}}
    - {{name: generation, base_url: "http://llm/v1"}}
    - {{name: embedding, base_url: "http://emb/v1"}}
curation:
  subject: DSE Chinese
generation:
  topic: {topic}
  exemplar_count: 2
  target_count: 3
paths:
  images_dir: {root}/images
  extraction_report: {root}/out/extracted.txt
  generation_report: {root}/out/generated.txt
  generated_jsonl: {root}/out/generated.jsonl
seed: 3
"""


class MockVLMClient:
    """Mock vision client returning the same candidates for every image."""

    def __init__(self, candidates):
        self.candidates = candidates

    def extract(self, instructions, item_model, image_path, json_schema=None, temperature=0.1):
        return list(self.candidates)


class MockLLMClient:
    """Mock text client serving both embeddings and structured generation."""

    def __init__(self, items=None):
        self.items = items or []
        self.calls = 0

    def embed(self, text):
        return [0.1, 0.2]

    def generate_structured(self, messages, item_model, json_schema=None, **kwargs):
        self.calls += 1
        return list(self.items)


class MockRegistry:
    """Mock model registry handing out fixed clients."""

    def __init__(self, vlm=None, llm=None):
        self.vlm = vlm
        self.llm = llm or MockLLMClient()
        self.closed = False

    def get_vlm_client(self, name):
        return self.vlm

    def get_llm_client(self, name):
        return self.llm

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.closed = True


def _candidate(number, question_type="Comprehension"):
    return ExtractedQuestion(
        topic="Six Kingdoms",
        question=f"Question {number}?",
        answer=f"Answer {number}",
        question_number=number,
        question_year=2021,
        subject="DSE Chinese",
        explanation="Explained",
        difficulty=3,
        grade_level="S6",
        question_type_name=question_type,
    )


def _generated(difficulty):
    return GeneratedMCQ(
        question=f"Generated at {difficulty}?",
        options={"A": "one", "B": "two", "C": "three", "D": "four"},
        correct_answer="C",
        explanation="Because",
        difficulty=difficulty,
        topic="Six Kingdoms",
        question_type_name="Rhetoric",
    )


def _summary_count(output, label):
    match = re.search(rf"{label}\W+(\d+)", output)
    assert match, output
    return int(match.group(1))


@pytest.fixture
def pipeline_config(tmp_path):
    def write(topic="Six Kingdoms"):
        path = tmp_path / "pipeline.yaml"
        path.write_text(PIPELINE_CONFIG.format(topic=topic, root=tmp_path), encoding="utf-8")
        return path

    return write


@pytest.fixture
def patched_registry(monkeypatch):
    def install(registry):
        monkeypatch.setattr(commands, "build_registry", lambda config: registry)
        return registry

    return install


def test_extract_writes_report_even_when_upload_fails(
    tmp_path, pipeline_config, patched_store, patched_registry
):
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "page1.jpg").write_bytes(b"")
    registry = patched_registry(
        MockRegistry(vlm=MockVLMClient([_candidate(1), _candidate(2, "Poetry"), _candidate(3)]))
    )
    patched_store.read_only.add("pastpapers")
    stored_before = len(patched_store.rows("pastpapers"))

    result = runner.invoke(app, ["extract", "--config", str(pipeline_config())])

    assert result.exit_code == 0, result.output
    report = (tmp_path / "out" / "extracted.txt").read_text(encoding="utf-8")
    assert "Question 1?" in report
    assert "Question 3?" in report
    assert "Question 2?" not in report
    assert len(patched_store.rows("pastpapers")) == stored_before
    assert _summary_count(result.output, "Questions extracted") == 2
    assert _summary_count(result.output, "Questions failed") == 1
    assert _summary_count(result.output, "Upload failures") == 2
    assert registry.closed


def test_extract_uploads_records(tmp_path, pipeline_config, patched_store, patched_registry):
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "page1.png").write_bytes(b"")
    patched_registry(MockRegistry(vlm=MockVLMClient([_candidate(4, "Rhetoric")])))
    stored_before = len(patched_store.rows("pastpapers"))

    result = runner.invoke(app, ["extract", "--config", str(pipeline_config())])

    assert result.exit_code == 0, result.output
    rows = patched_store.rows("pastpapers")
    assert len(rows) == stored_before + 1
    assert rows[-1]["question_type_id"] == "qt-2"
    assert rows[-1]["embedding"] == [0.1, 0.2]


def test_generate_writes_review_and_publish_files(
    tmp_path, pipeline_config, patched_store, patched_registry
):
    llm = MockLLMClient([_generated(1), _generated(3), _generated(5)])
    registry = patched_registry(MockRegistry(llm=llm))

    result = runner.invoke(app, ["generate", "--config", str(pipeline_config())])

    assert result.exit_code == 0, result.output
    assert llm.calls == 1
    assert "Generated at 3?" in (tmp_path / "out" / "generated.txt").read_text(encoding="utf-8")
    lines = (tmp_path / "out" / "generated.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert _summary_count(result.output, "Exemplars used") == 2
    assert registry.closed
    assert not any(r["question"].startswith("Generated") for r in patched_store.rows("mcqs"))


def test_generate_without_exemplars_exits_cleanly(
    tmp_path, pipeline_config, patched_store, patched_registry
):
    llm = MockLLMClient([_generated(1)])
    patched_registry(MockRegistry(llm=llm))

    result = runner.invoke(app, ["generate", "--config", str(pipeline_config(topic="Unknown"))])

    assert result.exit_code == 0, result.output
    assert "No matching past paper questions" in result.output
    assert llm.calls == 0
    assert not (tmp_path / "out").exists()


def test_generate_without_topic_aborts_before_store_access(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(commands, "build_store", lambda config: calls.append("store"))
    monkeypatch.setattr(commands, "build_registry", lambda config: calls.append("registry"))
    path = tmp_path / "config.yaml"
    path.write_text(PIPELINE_CONFIG.format(topic="null", root=tmp_path), encoding="utf-8")

    result = runner.invoke(app, ["generate", "--config", str(path)])

    assert result.exit_code == 1
    assert "✗" in result.output
    assert "Topic must be specified" in result.output
    assert calls == []


def test_generate_rejects_zero_count(pipeline_config, patched_store, patched_registry):
    llm = MockLLMClient([_generated(1)])
    patched_registry(MockRegistry(llm=llm))

    result = runner.invoke(app, ["generate", "--config", str(pipeline_config()), "--count", "0"])

    assert result.exit_code == 2
    assert llm.calls == 0


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", "must be a mapping"),
        ("sampling:\n  limit: 3\n", "curation"),
        ("curation: [unclosed\n", "Invalid YAML"),
    ],
)
@pytest.mark.parametrize("command", ["compose", "extract", "generate", "publish", "info"])
def test_unusable_config_exits_with_error_line(tmp_path, command, text, message):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")

    result = runner.invoke(app, [command, "--config", str(path)])

    assert result.exit_code == 1
    assert "✗ ConfigurationError" in result.output
    assert message in result.output


def test_generate_failure_still_closes_clients(
    tmp_path, pipeline_config, patched_store, patched_registry
):
    registry = patched_registry(MockRegistry(llm=MockLLMClient([_generated(1)])))

    result = runner.invoke(app, ["generate", "--config", str(pipeline_config())])

    assert result.exit_code == 1
    assert "✗ GenerationError" in result.output
    assert registry.closed
    assert not (tmp_path / "out" / "generated.jsonl").exists()
