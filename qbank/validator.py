"""
Shape validation for question data coming from snapshots and imports.
"""
import logging
import math
from numbers import Real
from typing import Any, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("topic", "stem", "explanation")


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid id or answer
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    # ints of any size are exact; math.isfinite overflows on huge ones
    return isinstance(value, int) or math.isfinite(value)


def question_problem(candidate: Any) -> Optional[str]:
    """
    Describe why a decoded value is not a valid question.

    Expected structure:
    {
        "id": str | number,
        "topic": str,
        "stem": str,
        "choices": [str, ...],   # at least one
        "answer": int,           # index into choices
        "explanation": str
    }

    Args:
        candidate: Any decoded JSON value

    Returns:
        None if the value is a valid question, otherwise a short reason
    """
    if not isinstance(candidate, dict):
        return "question must be an object"

    if "id" not in candidate:
        return "missing 'id' field"
    question_id = candidate["id"]
    if not (isinstance(question_id, str) or _is_number(question_id)):
        return "'id' must be a string or a number"

    for name in TEXT_FIELDS:
        if name not in candidate:
            return f"missing '{name}' field"
        if not isinstance(candidate[name], str):
            return f"'{name}' must be a string"

    choices = candidate.get("choices")
    if not isinstance(choices, list):
        return "'choices' must be an array"
    if not choices:
        return "choices must not be empty"
    if not all(isinstance(choice, str) for choice in choices):
        return "every choice must be a string"

    answer = candidate.get("answer")
    if not _is_number(answer):
        return "'answer' must be a finite number"
    if not isinstance(answer, int) and not float(answer).is_integer():
        return "'answer' must be a whole number"
    if answer < 0 or answer >= len(choices):
        return f"'answer' is out of range for {len(choices)} choices"

    return None


def is_valid_question(candidate: Any) -> bool:
    """Return True if ``candidate`` has exactly the question shape."""
    return question_problem(candidate) is None


def find_invalid_question(items: Sequence[Any]) -> Optional[Tuple[int, str]]:
    """
    Find the first element of a collection that is not a valid question.

    Args:
        items: Sequence of decoded values

    Returns:
        (position, reason) of the first invalid element, or None if all pass
    """
    for position, item in enumerate(items):
        problem = question_problem(item)
        if problem is not None:
            logger.debug(f"Question {position} rejected: {problem}")
            return position, problem
    return None
