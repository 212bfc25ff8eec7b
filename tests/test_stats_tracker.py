"""
Unit tests for per-topic statistics.
"""
import unittest

from qbank.models import SessionSnapshot, TopicAccuracy, TopicScore
from qbank.stats_tracker import (
    accuracy_percent,
    overall_accuracy,
    record_answer,
    stats_from_dict,
    summarize,
)


class TestRecordAnswer(unittest.TestCase):
    """Test cases for record_answer."""

    def test_first_correct_answer(self):
        stats = record_answer({}, "Physiology", True)
        self.assertEqual(stats, {"Physiology": TopicScore(correct=1, total=1)})

    def test_then_incorrect_answer(self):
        stats = record_answer(record_answer({}, "Physiology", True), "Physiology", False)
        self.assertEqual(stats["Physiology"], TopicScore(correct=1, total=2))

    def test_first_incorrect_answer(self):
        stats = record_answer({}, "Anatomy", False)
        self.assertEqual(stats["Anatomy"], TopicScore(correct=0, total=1))

    def test_does_not_mutate_input(self):
        original = {"Physiology": TopicScore(1, 1)}
        updated = record_answer(original, "Physiology", True)

        self.assertIsNot(updated, original)
        self.assertEqual(original, {"Physiology": TopicScore(1, 1)})
        self.assertEqual(updated["Physiology"], TopicScore(2, 2))

    def test_other_topics_untouched(self):
        stats = record_answer({"Anatomy": TopicScore(2, 3)}, "Physiology", True)
        self.assertEqual(stats["Anatomy"], TopicScore(2, 3))


class TestSummarize(unittest.TestCase):
    """Test cases for summarize and overall_accuracy."""

    def test_sorted_by_topic(self):
        stats = {
            "physiology": TopicScore(1, 1),
            "Anatomy": TopicScore(0, 1),
            "Coronary Physiology": TopicScore(1, 2),
        }
        topics = [entry.topic for entry in summarize(stats)]
        self.assertEqual(topics, ["Anatomy", "Coronary Physiology", "physiology"])

    def test_skips_unanswered_topics(self):
        stats = {"Empty": TopicScore(0, 0), "Used": TopicScore(1, 3)}
        self.assertEqual(summarize(stats), [TopicAccuracy("Used", 1, 3, 33)])

    def test_empty_stats(self):
        self.assertEqual(summarize({}), [])

    def test_percent_rounding(self):
        self.assertEqual(accuracy_percent(1, 3), 33)
        self.assertEqual(accuracy_percent(2, 3), 67)
        self.assertEqual(accuracy_percent(1, 8), 13)
        self.assertEqual(accuracy_percent(1, 2), 50)
        self.assertEqual(accuracy_percent(0, 5), 0)
        self.assertEqual(accuracy_percent(5, 5), 100)

    def test_overall_accuracy(self):
        stats = {"A": TopicScore(1, 2), "B": TopicScore(2, 2)}
        self.assertEqual(overall_accuracy(stats), {'correct': 3, 'total': 4, 'percent': 75})

    def test_overall_accuracy_nothing_answered(self):
        self.assertEqual(overall_accuracy({}), {'correct': 0, 'total': 0, 'percent': None})


class TestStatsSerialization(unittest.TestCase):
    """Test cases for stats_from_dict."""

    def test_round_trip(self):
        stats = {"Physiology": TopicScore(1, 2)}
        stored = SessionSnapshot(question_bank=[], stats=stats).to_dict()["stats"]
        self.assertEqual(stats_from_dict(stored), stats)

    def test_non_object_rejected(self):
        for raw in (None, [], "stats", 3):
            with self.subTest(raw=raw):
                self.assertIsNone(stats_from_dict(raw))

    def test_malformed_entries_dropped(self):
        raw = {
            "Good": {"correct": 1, "total": 2},
            "Text": {"correct": "1", "total": 2},
            "Inverted": {"correct": 3, "total": 2},
            "Negative": {"correct": -1, "total": 2},
            "Bool": {"correct": True, "total": 2},
            "NotObject": 5,
        }
        self.assertEqual(stats_from_dict(raw), {"Good": TopicScore(1, 2)})


if __name__ == '__main__':
    unittest.main()
