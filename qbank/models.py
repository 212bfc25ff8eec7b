"""
Core data models for the question bank.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question. Immutable once loaded."""
    id: Union[str, int]
    topic: str
    stem: str
    choices: Tuple[str, ...]
    answer: int
    explanation: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """
        Build a Question from an already validated mapping.

        Args:
            data: Mapping that passed ``is_valid_question``

        Returns:
            Question instance
        """
        return cls(
            id=data["id"],
            topic=data["topic"],
            stem=data["stem"],
            choices=tuple(data["choices"]),
            answer=int(data["answer"]),
            explanation=data["explanation"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the import/snapshot question shape."""
        return {
            "id": self.id,
            "topic": self.topic,
            "stem": self.stem,
            "choices": list(self.choices),
            "answer": self.answer,
            "explanation": self.explanation,
        }

    def is_correct(self, choice_index: int) -> bool:
        return choice_index == self.answer


@dataclass(frozen=True)
class TopicScore:
    """Correct/total counters for one topic."""
    correct: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"correct": self.correct, "total": self.total}


@dataclass(frozen=True)
class TopicAccuracy:
    """One line of the accuracy summary."""
    topic: str
    correct: int
    total: int
    percent: int


@dataclass
class BankSettings:
    """Configuration settings for a question bank session."""
    storage_path: str = "./data/qbank_state.json"
    storage_key: str = "peds-card-qbank:v1"
    seed_file: Optional[str] = None
    max_import_bytes: int = 10 * 1024 * 1024
    owner_id: Optional[int] = None


@dataclass
class SessionSnapshot:
    """The persisted unit of session state."""
    question_bank: List[Question]
    index: int = 0
    show_accuracy: bool = False
    stats: Dict[str, TopicScore] = field(default_factory=dict)
    schema_version: int = 1
    saved_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the storage field names."""
        return {
            "questionBank": [q.to_dict() for q in self.question_bank],
            "index": self.index,
            "showAccuracy": self.show_accuracy,
            "stats": {topic: score.to_dict() for topic, score in self.stats.items()},
            "schemaVersion": self.schema_version,
            "savedAt": self.saved_at,
        }
