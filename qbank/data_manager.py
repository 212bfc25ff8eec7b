"""
Data manager for question bank persistence, imports and seed data.
"""
import json
import os
import time
import logging
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union
from pathlib import Path

from .models import Question, SessionSnapshot
from .validator import find_invalid_question

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "peds-card-qbank:v1"
SCHEMA_VERSION = 1
DEFAULT_MAX_IMPORT_BYTES = 10 * 1024 * 1024  # 10MB limit

SEED_QUESTIONS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "topic": "Physiology",
        "stem": "Left ventricular (LV) isovolumic contraction continues until what cardiac event occurs?",
        "choices": [
            "Mitral valve opens",
            "Passive atrial filling",
            "Increased ventricular volume",
            "Aortic valve opens",
            "Aortic pressure greater than left ventricular",
        ],
        "answer": 3,
        "explanation": (
            "During isovolumic contraction, both valves are closed. Contraction continues until "
            "LV pressure exceeds aortic pressure, causing the aortic valve to open."
        ),
    },
    {
        "id": 2,
        "topic": "Coronary Physiology",
        "stem": "Which metabolic factor regulating coronary blood flow is derived from breakdown of high-energy phosphates?",
        "choices": ["Prostaglandin", "Nitric oxide", "Endothelin-1", "Adenosine", "VEGF"],
        "answer": 3,
        "explanation": (
            "Adenosine is produced from ATP breakdown during low oxygen states and causes potent "
            "coronary vasodilation."
        ),
    },
]


class QuestionImportError(Exception):
    """Base exception for rejected question imports."""

    user_message = "Import failed."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class ImportStructureError(QuestionImportError):
    """Raised when imported data holds no non-empty question array."""

    user_message = "Import failed: JSON must be an array of questions (or { questions: [...] })."


class ImportSchemaError(QuestionImportError):
    """Raised when one or more imported questions have the wrong shape."""

    user_message = (
        "Import failed: One or more questions are missing required fields "
        "(topic/stem/choices/answer/explanation)."
    )


class ImportReadError(QuestionImportError):
    """Raised when the import source cannot be read or decoded as JSON."""

    user_message = "Import failed: Could not read/parse the JSON file."


def parse_import_data(data: Any) -> List[Question]:
    """
    Turn decoded import data into questions.

    Accepts either a top-level array of questions or an object with a
    ``questions`` array. The import is all-or-nothing.

    Args:
        data: Decoded JSON value

    Returns:
        List of Question objects in file order

    Raises:
        ImportStructureError: No usable, non-empty question array
        ImportSchemaError: At least one element is not a valid question
    """
    if isinstance(data, list):
        imported = data
    elif isinstance(data, dict):
        imported = data.get("questions")
    else:
        imported = None

    if not isinstance(imported, list) or not imported:
        raise ImportStructureError("no non-empty question array found")

    invalid = find_invalid_question(imported)
    if invalid is not None:
        position, problem = invalid
        raise ImportSchemaError(f"question {position}: {problem}")

    return [Question.from_dict(item) for item in imported]


def parse_import_text(raw: Union[str, bytes], max_bytes: Optional[int] = None) -> List[Question]:
    """
    Decode raw import content and parse it into questions.

    Args:
        raw: File contents as text or bytes
        max_bytes: Optional size limit for the content

    Returns:
        List of Question objects

    Raises:
        QuestionImportError: Any of the import failure kinds
    """
    if isinstance(raw, bytes):
        if max_bytes is not None and len(raw) > max_bytes:
            raise ImportReadError(f"content is {len(raw)} bytes, limit is {max_bytes}")
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ImportReadError(f"content is not UTF-8: {e}") from e
    elif max_bytes is not None and len(raw.encode("utf-8")) > max_bytes:
        raise ImportReadError(f"content exceeds {max_bytes} bytes")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ImportReadError(f"invalid JSON: {e}") from e

    return parse_import_data(data)


class KeyValueStore(ABC):
    """Durable string key-value storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""


class MemoryStore(KeyValueStore):
    """In-memory store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Key-value store kept in a single JSON file.

    The file holds one object mapping keys to string values. A missing or
    corrupt file reads as an empty store; writes replace the file atomically.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    def _read_all(self) -> Dict[str, str]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:
            self.logger.warning(f"Ignoring corrupt store file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring store file {self.path}: top level is not an object")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(items, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Saves and loads session snapshots under one fixed storage key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], int] = _epoch_millis,
    ):
        """
        Initialize the session store.

        Args:
            store: Backing key-value store
            key: Storage key holding the snapshot
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.key = key
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self.last_save_error: Optional[str] = None

    def save(self, snapshot: SessionSnapshot) -> bool:
        """
        Serialize and write a snapshot. Best-effort: failures are logged.

        Returns:
            True if the snapshot was written, False otherwise
        """
        snapshot.schema_version = SCHEMA_VERSION
        snapshot.saved_at = self.clock()
        try:
            payload = json.dumps(snapshot.to_dict(), ensure_ascii=False)
            self.store.set_item(self.key, payload)
        except (OSError, TypeError, ValueError) as e:
            self.last_save_error = str(e)
            self.logger.warning(f"Failed to save session snapshot under '{self.key}': {e}")
            return False

        self.last_save_error = None
        self.logger.debug(f"Saved snapshot with {len(snapshot.question_bank)} questions")
        return True

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read and decode the stored snapshot.

        Returns:
            Decoded snapshot object, or None if it is absent or unreadable
        """
        try:
            raw = self.store.get_item(self.key)
        except OSError as e:
            self.logger.warning(f"Failed to read session snapshot: {e}")
            return None

        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except (ValueError, TypeError) as e:
            self.logger.warning(f"Stored snapshot is not valid JSON: {e}")
            return None

        if not isinstance(data, dict):
            self.logger.warning("Stored snapshot is not a JSON object")
            return None

        return data

    def clear(self) -> None:
        """Remove the stored snapshot."""
        self.store.remove_item(self.key)


class DataManager:
    """Loads seed banks and reads question files for import."""

    def __init__(self, seed_file: Optional[str] = None, max_import_bytes: int = DEFAULT_MAX_IMPORT_BYTES):
        """
        Initialize DataManager.

        Args:
            seed_file: Optional JSON file (import format) replacing the built-in seed bank
            max_import_bytes: Size limit for files read for import
        """
        self.seed_file = Path(seed_file) if seed_file else None
        self.max_import_bytes = max_import_bytes
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []
        self.builtin_seed_used = False

    def load_seed_questions(self) -> List[Question]:
        """
        Load the seed bank used when no valid snapshot exists.

        Returns:
            Questions from the configured seed file, or the built-in seed
            bank when no file is configured or it cannot be used
        """
        self.load_errors.clear()
        self.builtin_seed_used = False

        if self.seed_file is not None:
            try:
                questions = parse_import_text(self.read_import_file(self.seed_file))
                self.logger.info(f"Loaded seed bank '{self.seed_file}' with {len(questions)} questions")
                return questions
            except QuestionImportError as e:
                self.logger.warning(f"Seed file {self.seed_file} rejected: {e}")
                self.load_errors.append(f"{self.seed_file.name}: {e.user_message}")

        self.builtin_seed_used = True
        return [Question.from_dict(item) for item in SEED_QUESTIONS]

    def read_import_file(self, file_path: Union[str, Path]) -> bytes:
        """
        Read a question file's bytes for import.

        Raises:
            ImportReadError: The file is missing, unreadable or too large
        """
        path = Path(file_path)
        try:
            if not path.is_file():
                raise ImportReadError(f"file not found: {path}")

            if not os.access(path, os.R_OK):
                raise ImportReadError(f"permission denied: {path}")

            file_size = path.stat().st_size
            if file_size > self.max_import_bytes:
                raise ImportReadError(
                    f"file too large ({file_size / 1024 / 1024:.1f}MB), "
                    f"maximum is {self.max_import_bytes / 1024 / 1024:.1f}MB"
                )

            return path.read_bytes()
        except OSError as e:
            raise ImportReadError(f"failed to read {path}: {e}") from e

    def parse_import(self, raw: Union[str, bytes]) -> List[Question]:
        """Parse import content with this manager's size limit."""
        return parse_import_text(raw, max_bytes=self.max_import_bytes)

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0
