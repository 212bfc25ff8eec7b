"""
Tests for the command-line entry point.
"""
import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

import main
from qbank.quiz_controller import create_session
from tests.test_fixtures import TestFixtures


class TestMain(unittest.TestCase):
    """Test cases for config loading, --import and --stats."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.state_path = str(Path(self.temp_dir) / "state.json")
        self.config = {"storage": {"path": self.state_path}}

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _run(self, func, *args):
        output = io.StringIO()
        with redirect_stdout(output):
            code = func(*args)
        return code, output.getvalue()

    def test_missing_config_means_defaults(self):
        self.assertEqual(main.load_config(os.path.join(self.temp_dir, "absent.json")), {})

    def test_load_config(self):
        path = Path(self.temp_dir) / "config.json"
        path.write_text(json.dumps(self.config), encoding='utf-8')
        self.assertEqual(main.load_config(str(path)), self.config)

    def test_invalid_config_exits(self):
        path = Path(self.temp_dir) / "config.json"
        path.write_text("{ nope", encoding='utf-8')
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            main.load_config(str(path))

    def test_storage_path_from_environment(self):
        other = str(Path(self.temp_dir) / "other.json")
        with patch.dict(os.environ, {"QBANK_STORAGE_PATH": other}):
            config_manager = main.build_config_manager(self.config)
        self.assertEqual(config_manager.get_settings().storage_path, other)

    def test_import_file(self):
        questions_path = Path(self.temp_dir) / "questions.json"
        questions_path.write_text(TestFixtures.import_text(), encoding='utf-8')
        config_manager = main.build_config_manager(self.config)

        code, output = self._run(main.import_file, config_manager, str(questions_path))

        self.assertEqual(code, 0)
        self.assertIn("Imported 4 questions", output)
        self.assertEqual(create_session(config_manager.get_settings()).total_questions, 4)

    def test_import_invalid_file_keeps_bank(self):
        questions_path = Path(self.temp_dir) / "questions.json"
        questions_path.write_text("[]", encoding='utf-8')
        config_manager = main.build_config_manager(self.config)

        code, output = self._run(main.import_file, config_manager, str(questions_path))

        self.assertEqual(code, 1)
        self.assertIn("must be an array", output)
        self.assertEqual(create_session(config_manager.get_settings()).total_questions, 2)

    def test_import_missing_file(self):
        config_manager = main.build_config_manager(self.config)
        code, output = self._run(main.import_file, config_manager, os.path.join(self.temp_dir, "absent.json"))

        self.assertEqual(code, 1)
        self.assertIn("Could not read/parse", output)

    def test_print_stats_fresh_session(self):
        config_manager = main.build_config_manager(self.config)
        code, output = self._run(main.print_stats, config_manager)

        self.assertEqual(code, 0)
        self.assertIn("2 questions, at question 1", output)
        self.assertIn("No questions answered yet", output)


if __name__ == '__main__':
    unittest.main()
