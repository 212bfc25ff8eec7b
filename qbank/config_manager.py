"""
Configuration manager for question bank settings.
"""
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

from .models import BankSettings


class ConfigManager:
    """Manages storage, seed and import settings."""

    # Default configuration values
    DEFAULT_STORAGE_PATH = "./data/qbank_state.json"
    DEFAULT_STORAGE_KEY = "peds-card-qbank:v1"
    DEFAULT_MAX_IMPORT_BYTES = 10 * 1024 * 1024

    # Validation limits
    MIN_IMPORT_BYTES = 1024
    MAX_IMPORT_BYTES = 50 * 1024 * 1024

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = BankSettings(
            storage_path=self.DEFAULT_STORAGE_PATH,
            storage_key=self.DEFAULT_STORAGE_KEY,
            max_import_bytes=self.DEFAULT_MAX_IMPORT_BYTES,
        )

    def get_settings(self) -> BankSettings:
        """
        Get a copy of the current settings.

        Returns:
            BankSettings object with current configuration
        """
        return BankSettings(
            storage_path=self._settings.storage_path,
            storage_key=self._settings.storage_key,
            seed_file=self._settings.seed_file,
            max_import_bytes=self._settings.max_import_bytes,
            owner_id=self._settings.owner_id,
        )

    def _failure(self, error_msg: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error_msg)
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message,
        }

    def _success(self, message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': f"✅ {message}",
        }

    def set_storage_path(self, path: str) -> Dict[str, Any]:
        """
        Set the file used to persist the session.

        Args:
            path: Path of the JSON store file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str):
            return self._failure(
                f"Storage path must be a string, got {type(path).__name__}",
                f"❌ Invalid input: Expected a path string, got {type(path).__name__}",
            )

        if not path.strip():
            return self._failure("Storage path cannot be empty", "❌ Storage path cannot be empty")

        if Path(path).is_dir():
            return self._failure(
                f"Storage path is a directory: {path}",
                f"❌ Storage path must be a file, not a directory: {path}",
            )

        self._settings.storage_path = path
        return self._success(f"Storage path set to {path}")

    def set_storage_key(self, key: str) -> Dict[str, Any]:
        """
        Set the key the snapshot is stored under.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(key, str) or not key.strip():
            return self._failure(
                f"Storage key must be a non-empty string, got {key!r}",
                "❌ Storage key cannot be empty",
            )

        self._settings.storage_key = key
        return self._success(f"Storage key set to {key}")

    def set_seed_file(self, seed_file: Optional[str]) -> Dict[str, Any]:
        """
        Set the JSON file used as the seed bank, or None for the built-in one.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if seed_file is None:
            self._settings.seed_file = None
            return self._success("Seed bank set to the built-in questions")

        if not isinstance(seed_file, str) or not seed_file.strip():
            return self._failure(
                f"Seed file must be a non-empty path string, got {seed_file!r}",
                "❌ Invalid seed file path",
            )

        if not Path(seed_file).exists():
            # Not fatal: the built-in seed bank is used if the file never appears
            self.logger.warning(f"Seed file does not exist yet: {seed_file}")

        self._settings.seed_file = seed_file
        return self._success(f"Seed file set to {seed_file}")

    def set_max_import_bytes(self, limit: int) -> Dict[str, Any]:
        """
        Set the size limit for imported files.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(limit, int) or isinstance(limit, bool):
            return self._failure(
                f"Import size limit must be an integer, got {type(limit).__name__}",
                f"❌ Invalid input: Expected a number, got {type(limit).__name__}",
            )

        if limit < self.MIN_IMPORT_BYTES:
            return self._failure(
                f"Import size limit must be at least {self.MIN_IMPORT_BYTES} bytes",
                f"❌ Limit too small: Minimum is {self.MIN_IMPORT_BYTES} bytes",
            )

        if limit > self.MAX_IMPORT_BYTES:
            return self._failure(
                f"Import size limit cannot exceed {self.MAX_IMPORT_BYTES} bytes",
                f"❌ Limit too large: Maximum is {self.MAX_IMPORT_BYTES // (1024 * 1024)}MB",
            )

        self._settings.max_import_bytes = limit
        return self._success(f"Import size limit set to {limit} bytes")

    def set_owner_id(self, owner_id: Optional[int]) -> Dict[str, Any]:
        """
        Restrict the session to one Discord user, or None to allow anyone.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if owner_id is not None and (not isinstance(owner_id, int) or isinstance(owner_id, bool) or owner_id <= 0):
            return self._failure(
                f"Owner id must be a positive integer, got {owner_id!r}",
                "❌ Invalid owner id",
            )

        self._settings.owner_id = owner_id
        if owner_id is None:
            return self._success("Session open to every user")
        return self._success(f"Session owner set to {owner_id}")

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply settings from a config.json style mapping.

        Invalid values are reported and the previous value is kept.

        Args:
            config: Mapping with optional 'bot', 'storage' and 'quiz' sections

        Returns:
            List of user-friendly messages for the settings that were rejected
        """
        problems = []
        storage_config = config.get('storage', {}) or {}
        quiz_config = config.get('quiz', {}) or {}
        bot_config = config.get('bot', {}) or {}

        results = []
        if 'path' in storage_config:
            results.append(self.set_storage_path(storage_config['path']))
        if 'key' in storage_config:
            results.append(self.set_storage_key(storage_config['key']))
        if 'seed_file' in quiz_config:
            results.append(self.set_seed_file(quiz_config['seed_file']))
        if 'max_import_bytes' in quiz_config:
            results.append(self.set_max_import_bytes(quiz_config['max_import_bytes']))
        if 'owner_id' in bot_config:
            results.append(self.set_owner_id(bot_config['owner_id']))

        for result in results:
            if not result['success']:
                problems.append(result['user_message'])

        if problems:
            self.logger.warning(f"{len(problems)} configuration values were rejected")
        return problems

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = BankSettings(
            storage_path=self.DEFAULT_STORAGE_PATH,
            storage_key=self.DEFAULT_STORAGE_KEY,
            max_import_bytes=self.DEFAULT_MAX_IMPORT_BYTES,
        )
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if not isinstance(self._settings.storage_path, str) or not self._settings.storage_path.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid storage path: {self._settings.storage_path}")

        if not isinstance(self._settings.storage_key, str) or not self._settings.storage_key.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid storage key: {self._settings.storage_key}")

        limit = self._settings.max_import_bytes
        if not isinstance(limit, int) or not self.MIN_IMPORT_BYTES <= limit <= self.MAX_IMPORT_BYTES:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid import size limit: {limit}")

        if self._settings.seed_file is not None and not Path(self._settings.seed_file).is_file():
            validation_result["issues"].append(
                f"Seed file not found: {self._settings.seed_file} (built-in questions will be used)"
            )

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        seed_str = self._settings.seed_file or "built-in questions"
        owner_str = str(self._settings.owner_id) if self._settings.owner_id is not None else "anyone"

        return (
            f"Question Bank Settings:\n"
            f"• Storage: {self._settings.storage_path} (key {self._settings.storage_key})\n"
            f"• Seed bank: {seed_str}\n"
            f"• Import limit: {self._settings.max_import_bytes / 1024 / 1024:.1f}MB\n"
            f"• Owner: {owner_str}"
        )
