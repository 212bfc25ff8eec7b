"""
Quiz engine core logic for the question bank.
Handles question ordering and index navigation.
"""
import math
import random
import logging
from numbers import Real
from typing import Any, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle_questions(questions: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly shuffled copy of ``questions``.

    Fisher-Yates: walk from the last position down to 1, swapping each
    position with a uniformly drawn position in [0, i].

    Args:
        questions: Sequence to shuffle (left untouched)
        rng: Optional random source, defaults to the ``random`` module

    Returns:
        New list with the same elements in random order
    """
    source = rng if rng is not None else random
    shuffled = list(questions)
    for i in range(len(shuffled) - 1, 0, -1):
        j = source.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def clamp_index(index: Any, length: int) -> int:
    """
    Normalize a navigation index into [0, length - 1].

    Args:
        index: Candidate index, possibly corrupted or out of range
        length: Number of questions in the bank

    Returns:
        0 for an empty bank or a non-finite/non-numeric index, otherwise
        the index restricted to the bank bounds
    """
    if length <= 0:
        return 0
    if not isinstance(index, Real) or isinstance(index, bool):
        return 0
    if isinstance(index, int):
        return max(0, min(index, length - 1))
    if not math.isfinite(index):
        return 0
    return max(0, min(int(math.floor(index)), length - 1))


class QuizEngine:
    """Question ordering and navigation for a single bank."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the quiz engine.

        Args:
            rng: Optional random source used for every shuffle
        """
        self._rng = rng

    def shuffle_questions(self, questions: Sequence[T]) -> List[T]:
        """Shuffle questions into a new list."""
        shuffled = shuffle_questions(questions, self._rng)
        logger.debug(f"Shuffled {len(shuffled)} questions")
        return shuffled

    def next_index(self, index: int, length: int) -> int:
        """
        Index of the question after ``index``, wrapping to 0 at the end.

        Returns 0 for an empty bank.
        """
        if length <= 0:
            return 0
        return (clamp_index(index, length) + 1) % length
