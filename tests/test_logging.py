"""Tests for dbcompare.logging."""

from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path

from dbcompare.logging import setup_logging


class TestSetupLogging(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger("dbcompare")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def _console(self, logger: logging.Logger) -> logging.Handler:
        return next(h for h in logger.handlers if not isinstance(h, logging.FileHandler))

    def test_levels(self) -> None:
        self.assertEqual(self._console(setup_logging()).level, logging.INFO)
        self.assertEqual(self._console(setup_logging(verbose=True)).level, logging.DEBUG)
        self.assertEqual(self._console(setup_logging(quiet=True)).level, logging.WARNING)
        self.assertEqual(self._console(setup_logging(verbose=True, quiet=True)).level, logging.DEBUG)

    def test_reconfigure_replaces_handlers(self) -> None:
        setup_logging()
        logger = setup_logging()
        self.assertEqual(len(logger.handlers), 1)

    def test_log_file_gets_debug(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "dbcompare.log"
            logger = setup_logging(quiet=True, log_file=path)
            logger.debug("[MariaDB] Inserted batch 1 of 10")
            for handler in logger.handlers:
                handler.flush()
            self.assertIn("Inserted batch 1 of 10", path.read_text())

    def test_does_not_propagate(self) -> None:
        self.assertFalse(setup_logging().propagate)


if __name__ == "__main__":
    unittest.main()
