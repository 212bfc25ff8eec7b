"""
Quiz session controller for the question bank.
Owns the active bank, navigation, per-question state and statistics.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .models import BankSettings, Question, SessionSnapshot, TopicAccuracy
from .quiz_engine import QuizEngine, clamp_index
from .data_manager import DataManager, JsonFileStore, QuestionImportError, SessionStore
from .stats_tracker import TopicStats, record_answer, stats_from_dict, summarize, overall_accuracy
from .validator import find_invalid_question

Listener = Callable[["QuizSession"], None]


class QuizSession:
    """
    The single source of truth for one quiz session.

    The session restores itself from its store on construction and writes
    a new snapshot after every change that affects persisted state. Moving
    to a different question (next, shuffle, import, reset) always clears the
    selection, the reveal and the explanation toggle.

    Presentation code reads the properties below and calls the operations;
    it can either compare ``version`` between renders or ``subscribe`` to be
    called after every change.
    """

    def __init__(
        self,
        session_store: SessionStore,
        data_manager: Optional[DataManager] = None,
        quiz_engine: Optional[QuizEngine] = None,
    ):
        """
        Initialize the session and restore any stored snapshot.

        Args:
            session_store: Persistence for snapshots
            data_manager: Source of the seed bank and import parsing
            quiz_engine: Shuffling and navigation helper
        """
        self.logger = logging.getLogger(__name__)
        self.session_store = session_store
        self.data_manager = data_manager or DataManager()
        self.quiz_engine = quiz_engine or QuizEngine()

        self._bank: List[Question] = []
        self._index = 0
        self._stats: TopicStats = {}
        self._show_accuracy = False

        self._selected: Optional[int] = None
        self._revealed = False
        self._explanation_visible = False

        self._import_error = ""
        self._version = 0
        self._listeners: List[Listener] = []
        self.restored_from_snapshot = False

        self._load()

    # Loading and persistence

    def _load(self) -> None:
        saved = self.session_store.load()
        bank_adopted = False

        if saved is None:
            self.logger.info("No stored session found, starting from the seed bank")
        else:
            stored_bank = saved.get("questionBank")
            if isinstance(stored_bank, list) and find_invalid_question(stored_bank) is None:
                self._bank = [Question.from_dict(item) for item in stored_bank]
                self._index = clamp_index(saved.get("index"), len(self._bank))
                bank_adopted = True
                self.restored_from_snapshot = True
                self.logger.info(f"Restored session with {len(self._bank)} questions at index {self._index}")
            else:
                self.logger.warning("Stored question bank is malformed, falling back to the seed bank")

            show_accuracy = saved.get("showAccuracy")
            if isinstance(show_accuracy, bool):
                self._show_accuracy = show_accuracy

            stats = stats_from_dict(saved.get("stats"))
            if stats is not None:
                self._stats = stats

        if not bank_adopted:
            self._bank = self.quiz_engine.shuffle_questions(self.data_manager.load_seed_questions())
            self._index = 0

        self._persist()

    def _snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            question_bank=list(self._bank),
            index=self._index,
            show_accuracy=self._show_accuracy,
            stats=dict(self._stats),
        )

    def _persist(self) -> None:
        self.session_store.save(self._snapshot())

    def _changed(self, persist: bool = True) -> None:
        self._version += 1
        if persist:
            self._persist()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                self.logger.exception("Session listener failed")

    def _reset_question_state(self) -> None:
        self._selected = None
        self._revealed = False
        self._explanation_visible = False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener(session)`` after every change.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Read API

    @property
    def current_question(self) -> Optional[Question]:
        if not self._bank:
            return None
        return self._bank[clamp_index(self._index, len(self._bank))]

    @property
    def questions(self) -> List[Question]:
        return list(self._bank)

    @property
    def total_questions(self) -> int:
        return len(self._bank)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def selected_choice(self) -> Optional[int]:
        return self._selected

    @property
    def answer_revealed(self) -> bool:
        return self._revealed

    @property
    def explanation_visible(self) -> bool:
        return self._explanation_visible

    @property
    def show_accuracy(self) -> bool:
        return self._show_accuracy

    @property
    def stats(self) -> TopicStats:
        return dict(self._stats)

    @property
    def import_error(self) -> str:
        return self._import_error

    @property
    def version(self) -> int:
        return self._version

    def accuracy_summary(self) -> List[TopicAccuracy]:
        return summarize(self._stats)

    def get_status(self) -> Dict[str, Any]:
        """
        Everything a renderer needs in one dictionary.

        Returns:
            Dictionary describing the current question and session flags
        """
        return {
            'question': self.current_question,
            'current_index': self._index,
            'total_questions': len(self._bank),
            'selected_choice': self._selected,
            'answer_revealed': self._revealed,
            'explanation_visible': self._explanation_visible,
            'show_accuracy': self._show_accuracy,
            'accuracy': self.accuracy_summary(),
            'overall': overall_accuracy(self._stats),
            'import_error': self._import_error,
            'version': self._version,
        }

    # Operations

    def select_choice(self, choice_index: int) -> bool:
        """
        Select a choice for the current question.

        Returns:
            True if the selection changed state, False if it was ignored
        """
        question = self.current_question
        if question is None or self._revealed:
            return False
        if not isinstance(choice_index, int) or not 0 <= choice_index < len(question.choices):
            self.logger.debug(f"Ignoring out-of-range choice {choice_index!r}")
            return False

        self._selected = choice_index
        self._changed(persist=False)
        return True

    def check_answer(self) -> Optional[bool]:
        """
        Reveal the answer and record the result.

        Returns:
            Whether the selected choice was correct, or None if there was
            nothing to check (no selection or already revealed)
        """
        question = self.current_question
        if question is None or self._selected is None or self._revealed:
            return None

        is_correct = question.is_correct(self._selected)
        self._revealed = True
        self._explanation_visible = False
        self._stats = record_answer(self._stats, question.topic, is_correct)
        self.logger.debug(f"Checked question {question.id!r} ({question.topic}): "
                          f"{'correct' if is_correct else 'incorrect'}")
        self._changed()
        return is_correct

    def toggle_explanation(self) -> bool:
        """Flip explanation visibility and return the new value."""
        self._explanation_visible = not self._explanation_visible
        self._changed(persist=False)
        return self._explanation_visible

    def next_question(self) -> bool:
        """
        Advance to the next question, wrapping to the first after the last.

        Returns:
            False if the bank is empty, True otherwise
        """
        if not self._bank:
            return False

        self._index = self.quiz_engine.next_index(self._index, len(self._bank))
        self._reset_question_state()
        self._changed()
        return True

    def shuffle_bank(self) -> None:
        """Reorder the bank randomly and go back to the first question. Stats are kept."""
        self._bank = self.quiz_engine.shuffle_questions(self._bank)
        self._index = 0
        self._reset_question_state()
        self.logger.info(f"Shuffled bank of {len(self._bank)} questions")
        self._changed()

    def reset_progress(self) -> None:
        """Go back to the first question and clear all statistics. The bank order is kept."""
        self._index = 0
        self._reset_question_state()
        self._stats = {}
        self.logger.info("Progress reset")
        self._changed()

    def toggle_accuracy(self) -> bool:
        """Flip accuracy panel visibility and return the new value."""
        self._show_accuracy = not self._show_accuracy
        self._changed()
        return self._show_accuracy

    def import_questions(self, raw: Union[str, bytes]) -> Dict[str, Any]:
        """
        Replace the bank with questions from JSON content.

        The import is all-or-nothing: on failure nothing but
        ``import_error`` changes. On success the new bank is shuffled once
        and statistics start over.

        Args:
            raw: File contents as text or bytes

        Returns:
            Dictionary with success status and a user-facing message
        """
        self._import_error = ""

        try:
            imported = self.data_manager.parse_import(raw)
        except QuestionImportError as e:
            self._import_error = e.user_message
            self.logger.warning(f"Import rejected ({type(e).__name__}): {e}")
            self._changed(persist=False)
            return {
                'success': False,
                'error': str(e),
                'error_type': type(e).__name__,
                'user_message': e.user_message,
            }

        self._bank = self.quiz_engine.shuffle_questions(imported)
        self._index = 0
        self._reset_question_state()
        self._stats = {}
        self.logger.info(f"Imported {len(self._bank)} questions")
        self._changed()
        return {
            'success': True,
            'question_count': len(self._bank),
            'user_message': f"Imported {len(self._bank)} questions",
        }


def create_session(settings: BankSettings) -> QuizSession:
    """
    Build a session backed by the JSON file store named in ``settings``.

    Args:
        settings: Storage, seed and import settings

    Returns:
        Restored QuizSession
    """
    store = SessionStore(JsonFileStore(settings.storage_path), key=settings.storage_key)
    data_manager = DataManager(seed_file=settings.seed_file, max_import_bytes=settings.max_import_bytes)
    return QuizSession(store, data_manager)
