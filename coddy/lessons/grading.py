"""
Answer comparison.

Kept separate from the engine so a stricter check (for example compiling and
running the learner's code) can replace it without touching the state machine.
"""

import re

_WHITESPACE = re.compile(r'\s+')
_WRAPPERS = '`"\''


def normalize_answer(text: str) -> str:
    """Collapse whitespace, fold case, and drop wrapping quotes or backticks."""
    text = (text or '').strip()
    # ```lang ... ``` fences around a one-line answer
    if text.startswith('```') and text.endswith('```') and len(text) >= 6:
        text = text[3:-3]
        first, _, rest = text.partition('\n')
        if rest and ' ' not in first.strip():
            text = rest
    text = text.strip().strip(_WRAPPERS).strip()
    return _WHITESPACE.sub(' ', text).casefold()


def answers_match(answer: str, expected: str) -> bool:
    """
    True when the answer equals the expected answer after normalization.

    Whitespace runs collapse to one space but are not removed, so whether
    tokens are separated at all still counts: "x = 1" matches "x  =  1" but not "x=1".
    An empty answer never matches.
    """
    normalized = normalize_answer(answer)
    return bool(normalized) and normalized == normalize_answer(expected)
