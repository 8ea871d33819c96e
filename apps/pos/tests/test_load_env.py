from __future__ import annotations

import os
import tempfile
from pathlib import Path
from unittest import mock

from django.test import SimpleTestCase

from pos_portal.load_env import load_env_file


class LoadEnvFileTests(SimpleTestCase):
    def test_missing_file_returns_none(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsNone(load_env_file(base_dir=Path(tmp)))

    def test_reads_values_without_overriding_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_path = Path(tmp) / ".env"
            env_path.write_text(
                "# comment\n"
                'POS_TEST_QUOTED="Caja Central"\n'
                "POS_TEST_SINGLE='abc'\n"
                "POS_TEST_EXISTING=from-file\n"
                "not a pair\n",
                encoding="utf-8",
            )
            with mock.patch.dict(os.environ, {"POS_TEST_EXISTING": "from-env"}, clear=False):
                loaded = load_env_file(base_dir=Path(tmp))

                self.assertEqual(loaded, env_path)
                self.assertEqual(os.environ["POS_TEST_QUOTED"], "Caja Central")
                self.assertEqual(os.environ["POS_TEST_SINGLE"], "abc")
                self.assertEqual(os.environ["POS_TEST_EXISTING"], "from-env")

    def test_falls_back_to_project_package_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            nested = Path(tmp) / "pos_portal"
            nested.mkdir()
            (nested / ".env").write_text("POS_TEST_NESTED=1\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {}, clear=False):
                self.assertEqual(load_env_file(base_dir=Path(tmp)), nested / ".env")
                self.assertEqual(os.environ["POS_TEST_NESTED"], "1")
