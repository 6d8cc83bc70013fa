"""Prompt templates for extraction, generation and summarization."""

from question_bank.config import DifficultyMode
from question_bank.models import QuestionRecord, ReferenceContent

DIFFICULTY_RANGES: dict[DifficultyMode, tuple[int, ...]] = {
    DifficultyMode.EASY: (1, 2),
    DifficultyMode.MEDIUM: (3,),
    DifficultyMode.HARD: (4, 5),
    DifficultyMode.MIXED: (1, 2, 3, 4, 5),
}

DIFFICULTY_GUIDANCE: dict[DifficultyMode, str] = {
    DifficultyMode.EASY: (
        "All questions must be easy (difficulty 1-2/5): suitable for beginners, "
        "testing basic concepts and direct comprehension."
    ),
    DifficultyMode.MEDIUM: (
        "All questions must be of medium difficulty (difficulty 3/5): suitable for "
        "typical students, requiring some analysis."
    ),
    DifficultyMode.HARD: (
        "All questions must be hard (difficulty 4-5/5): suitable for advanced "
        "students, requiring deep thinking and synthesis."
    ),
    DifficultyMode.MIXED: (
        "Spread difficulty evenly (easy 1-2, medium 3 and hard 4-5 must all appear) "
        "to cover students of different levels."
    ),
}

EXTRACTION_PROMPT = """You are an expert exam analyst for {subject}. Carefully analyse the exam questions in this image and extract every question. Return an array of questions.

For each question provide:
1. topic: the reference text the question is about, chosen from this list:
{topics}
2. question: the full question text
3. answer: the answer to the question
4. question_number: the question number shown in the image (integer)
5. question_year: the exam year shown in the image (integer)
6. subject: {subject}
7. explanation: how the question is answered, with key points and analysis
8. difficulty: integer from 1 (easiest) to 5 (hardest)
9. grade_level: {grade_level}
10. question_type_name: the question type, chosen from this list:
{question_types}

Make sure that:
- all text is transcribed accurately
- question numbers and years are identified correctly
- topic and question_type_name are taken from the lists above, verbatim
- difficulty is assessed sensibly
- if the image holds several questions, all of them are extracted"""

GENERATION_PROMPT = """You are an expert question writer for {subject}. Using the reference text and the example questions below, write {count} high-quality multiple choice questions.

[Reference text]
Title: {topic}
Content:
{content}

[Example questions]
{exemplars}

[Available question types]
Choose the most suitable type for each question from this list only:
{question_types}

[Requirements]
1. Every question has exactly four options labelled A, B, C and D
2. Questions test understanding of the reference text: meaning of passages, main ideas and feelings, rhetorical devices, vocabulary, the author's views, structure
3. Distractors are plausible but exactly one option is correct
4. {difficulty_guidance}
5. Every question has a detailed explanation
6. Follow the style of the example questions without copying them
7. Every answer must be supported by the reference text
8. topic is "{topic}" unless a question is clearly about another reference text

Write exactly {count} questions."""

EXEMPLAR_TEMPLATE = """Example {index}:
Question: {question}
Answer: {answer}
Explanation: {explanation}
Difficulty: {difficulty}/5"""

SUMMARY_PROMPT = """The following is a reference text for {subject}. Condense and consolidate its content so it can be embedded for semantic search:

{content}"""


def bullet_list(names: list[str]) -> str:
    return "\n".join(f"- {name}" for name in names)


def build_extraction_prompt(
    subject: str,
    topics: list[str],
    question_types: list[str],
    grade_level: str | None,
) -> str:
    return EXTRACTION_PROMPT.format(
        subject=subject,
        topics=bullet_list(topics),
        question_types=bullet_list(question_types),
        grade_level=grade_level or "as shown in the image",
    )


def format_exemplars(exemplars: list[QuestionRecord]) -> str:
    if not exemplars:
        return "(none)"
    return "\n\n".join(
        EXEMPLAR_TEMPLATE.format(
            index=i,
            question=q.question,
            answer=q.answer_text(),
            explanation=q.explanation,
            difficulty=q.difficulty if q.difficulty is not None else "?",
        )
        for i, q in enumerate(exemplars, 1)
    )


def build_generation_prompt(
    subject: str,
    reference: ReferenceContent,
    exemplars: list[QuestionRecord],
    count: int,
    difficulty: DifficultyMode,
    question_types: list[str],
) -> str:
    return GENERATION_PROMPT.format(
        subject=subject,
        count=count,
        topic=reference.topic,
        content=reference.content,
        exemplars=format_exemplars(exemplars),
        question_types=bullet_list(question_types),
        difficulty_guidance=DIFFICULTY_GUIDANCE[difficulty],
    )


def build_summary_prompt(subject: str, content: str) -> str:
    return SUMMARY_PROMPT.format(subject=subject, content=content)
