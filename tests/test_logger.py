import logging
import os
import tempfile
import unittest
from unittest.mock import patch

from rich.logging import RichHandler

from gamerental import config
from gamerental.utils.logger import CenteredFormatter, get_logger


class LoggerTestCase(unittest.TestCase):
    def test_rich_handler_once(self):
        logger = get_logger("gamerental.tests.console")
        again = get_logger("gamerental.tests.console")
        self.assertIs(logger, again)
        self.assertEqual(len(logger.handlers), 1)
        self.assertIsInstance(logger.handlers[0], RichHandler)
        self.assertFalse(logger.propagate)

    def test_log_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "gamerental.log")
            with patch.object(config, "LOG_FILE", path):
                logger = get_logger("gamerental.tests.file")
            try:
                logger.info("order gamerentalorder11 placed")
            finally:
                for handler in logger.handlers:
                    handler.close()
                logger.handlers.clear()
            with open(path, encoding="utf-8") as f:
                content = f.read()
        self.assertIn("order gamerentalorder11 placed", content)
        self.assertIn("gamerental.tests.file", content)

    def test_centered_formatter_keeps_record_name(self):
        formatter = CenteredFormatter("[%(name)s] %(message)s", initial_width=10)
        record = logging.LogRecord("db", logging.INFO, __file__, 1, "hello", None, None)
        self.assertEqual(formatter.format(record), "[    db    ] hello")
        self.assertEqual(record.name, "db")


if __name__ == "__main__":
    unittest.main()
