"""
Per-topic correctness statistics.

Stats are plain ``dict[str, TopicScore]`` values. Every function here
returns a new mapping and never mutates its argument, so a session can hand
out its stats without worrying about callers changing them.
"""
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import TopicAccuracy, TopicScore

logger = logging.getLogger(__name__)

TopicStats = Dict[str, TopicScore]


def record_answer(stats: Mapping[str, TopicScore], topic: str, is_correct: bool) -> TopicStats:
    """
    Record one checked answer under ``topic``.

    Args:
        stats: Current stats (not modified)
        topic: Topic of the answered question
        is_correct: Whether the selected choice was the answer

    Returns:
        New stats mapping with the topic's counters incremented
    """
    current = stats.get(topic, TopicScore())
    updated = dict(stats)
    updated[topic] = TopicScore(
        correct=current.correct + (1 if is_correct else 0),
        total=current.total + 1,
    )
    return updated


def accuracy_percent(correct: int, total: int) -> int:
    """Whole-number percentage, halves rounded up."""
    return int(math.floor((correct / total) * 100 + 0.5))


def _topic_sort_key(topic: str) -> Tuple[str, str]:
    return topic.casefold(), topic


def summarize(stats: Mapping[str, TopicScore]) -> List[TopicAccuracy]:
    """
    Build the accuracy summary shown to the user.

    Topics that were never answered are left out, so no percentage is ever
    computed from a zero total.

    Returns:
        TopicAccuracy entries ordered by topic name
    """
    summary = []
    for topic in sorted(stats, key=_topic_sort_key):
        score = stats[topic]
        if score.total <= 0:
            continue
        summary.append(TopicAccuracy(
            topic=topic,
            correct=score.correct,
            total=score.total,
            percent=accuracy_percent(score.correct, score.total),
        ))
    return summary


def overall_accuracy(stats: Mapping[str, TopicScore]) -> Dict[str, Optional[int]]:
    """
    Totals across every topic.

    Returns:
        Dictionary with 'correct', 'total' and 'percent' (None when nothing
        has been answered yet)
    """
    correct = sum(score.correct for score in stats.values())
    total = sum(score.total for score in stats.values())
    return {
        'correct': correct,
        'total': total,
        'percent': accuracy_percent(correct, total) if total > 0 else None,
    }


def stats_from_dict(raw: Any) -> Optional[TopicStats]:
    """
    Rebuild stats from a decoded snapshot value.

    Args:
        raw: The decoded ``stats`` field

    Returns:
        Stats mapping, or None if ``raw`` is not an object. Entries that are
        not well-formed counters are dropped individually.
    """
    if not isinstance(raw, dict):
        return None

    stats: TopicStats = {}
    for topic, entry in raw.items():
        if not isinstance(topic, str) or not isinstance(entry, dict):
            logger.warning(f"Dropping malformed stats entry for topic {topic!r}")
            continue
        correct = entry.get("correct")
        total = entry.get("total")
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (correct, total)):
            logger.warning(f"Dropping stats entry with non-integer counters for topic {topic!r}")
            continue
        if correct < 0 or total < 0 or correct > total:
            logger.warning(f"Dropping inconsistent stats entry for topic {topic!r}: {correct}/{total}")
            continue
        stats[topic] = TopicScore(correct=correct, total=total)
    return stats
