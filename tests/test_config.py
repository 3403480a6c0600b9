from __future__ import annotations

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from birdmap.cli_paths import apply_path_overrides
from birdmap.config import Config
from birdmap.logging_utils import setup_logger


class TestPathOverrides(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name)

    @patch.dict(os.environ, {}, clear=False)
    def test_defaults_under_repo_root(self):
        os.environ.pop("BIRDMAP_DB", None)
        os.environ.pop("BIRDMAP_LOGS_DIR", None)
        cfg = Config(repo_root=self.tmp)
        self.assertEqual(cfg.db_path, (self.tmp / "data" / "db" / "birdmap.sqlite").resolve())
        self.assertEqual(cfg.logs_dir, (self.tmp / "logs").resolve())

    @patch.dict(os.environ, {}, clear=False)
    def test_overrides_reach_config(self):
        apply_path_overrides(db_dir=str(self.tmp / "db"), logs_dir=str(self.tmp / "l"), create_dirs=True)
        cfg = Config(repo_root=Path("/nonexistent"))
        self.assertEqual(cfg.db_path, (self.tmp / "db" / "birdmap.sqlite").resolve())
        self.assertEqual(cfg.logs_dir, (self.tmp / "l").resolve())
        self.assertTrue((self.tmp / "db").is_dir())

    @patch.dict(os.environ, {}, clear=False)
    def test_file_in_the_way(self):
        blocker = self.tmp / "blocker"
        blocker.write_text("x")
        with self.assertRaises(ValueError):
            apply_path_overrides(logs_dir=str(blocker))


class TestSetupLogger(unittest.TestCase):

    def test_script_and_library_share_handlers(self):
        with tempfile.TemporaryDirectory() as tmp:
            logger = setup_logger("unit_script", Path(tmp), to_console=False)
            lib = logging.getLogger("birdmap")
            try:
                logging.getLogger("birdmap.session").info("hello from the library")
                logger.info("hello from the script")
                for h in logger.handlers:
                    h.flush()
                text = (Path(tmp) / "unit_script.log").read_text(encoding="utf-8")
                self.assertIn("hello from the library", text)
                self.assertIn("hello from the script", text)
            finally:
                for lg in (logger, lib):
                    for h in list(lg.handlers):
                        h.close()
                        lg.removeHandler(h)
                    lg.propagate = True
