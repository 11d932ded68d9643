#!/usr/bin/env python3
"""
Prompt templates for lesson generation.
"""

from .state import LessonSpec

# =============================================================================
# LESSON - One lesson as a single JSON object
# =============================================================================

LESSON_PROMPT = """You are a coding education assistant similar to Codecademy and Coddy. Generate one educational lesson following these rules:

LANGUAGE: {language}
DIFFICULTY: {difficulty}
LESSON TYPE: {lesson_type}
TOPIC: {topic}
{history}
TEACHING STYLE:
1. Explain what the concept is, why it exists, and how {language} differs from other languages here ({concept_count} core concept(s)).
2. Break the concept down into 3-6 short steps.
3. Give {example_count} worked code example(s) in {language}, each with a line-by-line explanation. Treat each example as a complete file named main.{extension}.
4. End with ONE exercise whose answer is short and exact: the precise output a correct {language} program prints, or the single value or expression asked for. Use hardcoded values; do not require reading input.
5. Match the complexity to the {difficulty} level.

OUTPUT FORMAT (JSON):
{{
  "language": "{language}",
  "title": "Short lesson title",
  "explanation": "Clear explanation of the concept (5-7 sentences)",
  "steps": ["Step 1: ...", "Step 2: ..."],
  "code_examples": [
    {{"code": "example {language} code", "explanation": "What each line does and why"}}
  ],
  "exercise_prompt": "Exercise instructions. Must name {language} explicitly, e.g. 'Write a {language} program that ...'",
  "expected_answer": "The exact expected output or value, nothing else",
  "hints": ["Hint 1", "Hint 2"]
}}

JSON RULES:
- Output ONLY valid JSON - no markdown code fences, no text before or after
- Escape quotes inside strings and close every bracket
- "title", "explanation", "exercise_prompt" and "expected_answer" are REQUIRED and must not be empty

Generate the lesson now. Output ONLY the JSON object:"""


HISTORY_LINE = "ALREADY COVERED (build on these, do not repeat them): {topics}\n"


# Appended after a malformed response
STRICT_FOLLOWUP = """

IMPORTANT: Your previous answer could not be used. Respond with exactly one JSON object and nothing else.
It MUST contain non-empty string fields "title", "explanation", "exercise_prompt" and "expected_answer".
"language" must be "{language}", and "exercise_prompt" must mention {language} by name."""


def build_prompt(spec: LessonSpec) -> str:
    """Render the prompt for a spec; identical specs give identical prompts"""
    history = ''
    if spec.covered_topics:
        history = HISTORY_LINE.format(topics=', '.join(spec.covered_topics))

    prompt = LESSON_PROMPT.format(
        language=spec.language.display_name,
        difficulty=spec.difficulty.display_name,
        lesson_type=spec.lesson_type.display_name,
        topic=spec.topic,
        history=history,
        concept_count=spec.lesson_type.concept_count,
        example_count=spec.lesson_type.exercise_count,
        extension=spec.language.file_extension,
    )
    if spec.strict:
        prompt += STRICT_FOLLOWUP.format(language=spec.language.display_name)
    return prompt
