#!/usr/bin/env python3
"""
Validation boundary for model output.
Turns raw backend text into either a GeneratedLesson or a typed Rejection;
nothing downstream inspects raw model text.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .state import CodeExample, GeneratedLesson, Language

REQUIRED_FIELDS = ('title', 'explanation', 'exercise_prompt', 'expected_answer')

# Keys some models use instead of ours
FIELD_ALIASES = {
    'title': ('lesson_title', 'name'),
    'explanation': ('concept', 'description'),
    'exercise_prompt': ('exercise', 'task', 'exercise_description'),
    'expected_answer': ('answer', 'expected_output', 'solution_output'),
    'steps': ('step_by_step',),
    'hints': ('hint',),
}


@dataclass(frozen=True)
class Rejection:
    """Why a response was not accepted"""
    reason: str
    raw: str = ''


ParseResult = Union[GeneratedLesson, Rejection]


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Find the lesson object in a response: fenced block, or first balanced {...}"""
    candidates = []

    # Handle markdown code blocks
    match = re.search(r'```json\s*(.*?)\s*```', text, re.DOTALL)
    if match:
        candidates.append(match.group(1))
    match = re.search(r'```\s*(.*?)\s*```', text, re.DOTALL)
    if match:
        candidates.append(match.group(1))
    candidates.append(text.strip())

    balanced = _first_balanced_object(text)
    if balanced:
        candidates.append(balanced)

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _first_balanced_object(text: str) -> Optional[str]:
    """Slice out the first {...} whose braces balance, ignoring braces in strings"""
    start = text.find('{')
    if start < 0:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == '\\':
            escape_next = True
        elif ch == '"':
            in_string = not in_string
        elif ch == '{' and not in_string:
            depth += 1
        elif ch == '}' and not in_string:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _lookup(data: Dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    for alias in FIELD_ALIASES.get(key, ()):
        if alias in data:
            return data[alias]
    return None


def _clean_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return ''
    lines = [line.rstrip() for line in value.strip().splitlines()]
    return '\n'.join(lines)


def _clean_list(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    return tuple(s for s in (_clean_text(v) for v in value) if s)


def _clean_examples(value: Any) -> Tuple[CodeExample, ...]:
    if not isinstance(value, list):
        return ()
    examples: List[CodeExample] = []
    for item in value:
        if isinstance(item, dict):
            code = _clean_text(item.get('code'))
            if code:
                examples.append(CodeExample(code=code, explanation=_clean_text(item.get('explanation'))))
        elif isinstance(item, str) and item.strip():
            examples.append(CodeExample(code=_clean_text(item)))
    return tuple(examples)


def mentions_language(text: str, language: Language) -> bool:
    """Check if text names the language (display name or alias)"""
    lowered = text.lower()
    for alias in language.aliases:
        # "c++" has no word boundary after it, so test boundaries by hand
        pattern = r'(?<![a-z0-9])' + re.escape(alias) + r'(?![a-z0-9])'
        if re.search(pattern, lowered):
            return True
    return False


def parse_lesson(raw: str, language: Language) -> ParseResult:
    """
    Validate a backend response for a lesson in `language`.

    Returns:
        GeneratedLesson when every required field is present and non-empty,
        the declared language (if any) matches, and the exercise prompt
        mentions the language; otherwise a Rejection with the reason.
    """
    if not raw or not raw.strip():
        return Rejection("empty response", raw)

    data = extract_json(raw)
    if data is None:
        return Rejection("response is not a JSON object", raw[:1000])

    fields = {key: _clean_text(_lookup(data, key)) for key in REQUIRED_FIELDS}
    missing = [key for key, value in fields.items() if not value]
    if missing:
        return Rejection(f"missing or empty field(s): {', '.join(missing)}", raw[:1000])

    declared = data.get('language')
    if isinstance(declared, str) and declared.strip():
        try:
            declared_lang = Language.parse(declared)
        except ValueError:
            declared_lang = None
        if declared_lang is not language:
            return Rejection(
                f"language mismatch: asked for {language.display_name}, got {declared.strip()}",
                raw[:1000],
            )

    if not mentions_language(fields['exercise_prompt'], language):
        return Rejection(
            f"exercise prompt does not mention {language.display_name}", raw[:1000]
        )

    return GeneratedLesson(
        title=fields['title'],
        explanation=fields['explanation'],
        exercise_prompt=fields['exercise_prompt'],
        expected_answer=fields['expected_answer'],
        language=language,
        steps=_clean_list(_lookup(data, 'steps')),
        code_examples=_clean_examples(data.get('code_examples')),
        hints=_clean_list(_lookup(data, 'hints')),
    )
