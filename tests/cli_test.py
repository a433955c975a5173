# --- tests/cli_test.py ---

import logging
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from io import StringIO

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import cli
from models import Filter, ScanConfigError


class TestCli(unittest.TestCase):

    def test_defaults(self):
        args = cli.parse_args([])
        self.assertIsNone(args.path)
        self.assertEqual(args.depth, 1)
        self.assertFalse(args.no_ignores)
        self.assertFalse(args.hidden)
        self.assertEqual(cli.filters_from_args(args), [])

    def test_build_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            args = cli.parse_args(["-p", tmp, "-d", "3", "-e", ".rs", "-f", "test",
                                   "-f", "main", "-i", "-H"])
            config = cli.build_config(args)
            self.assertEqual(config.root_path, os.path.realpath(tmp))
            self.assertEqual(config.depth, 3)
            self.assertFalse(config.respect_ignore_files)
            self.assertTrue(config.include_hidden)
            self.assertEqual(config.filters, (
                Filter.file_name("test"), Filter.file_name("main"), Filter.extension("rs"),
            ))

    def test_explicit_path_wins_over_default(self):
        with tempfile.TemporaryDirectory() as tmp:
            config = cli.build_config(cli.parse_args([]), tmp)
            self.assertEqual(config.root_path, os.path.realpath(tmp))

    def test_bad_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            args = cli.parse_args(["-p", os.path.join(tmp, "nope")])
            with self.assertRaises(ScanConfigError):
                cli.build_config(args)

    def test_bad_depth(self):
        for value in ("0", "9", "deep"):
            with redirect_stderr(StringIO()), self.assertRaises(SystemExit):
                cli.parse_args(["-d", value])

    def test_setup_logging_writes_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "test.log")
            handler = cli.setup_logging(path)
            try:
                logging.getLogger("scanner").info("hello from the scanner")
                handler.flush()
            finally:
                logging.getLogger().removeHandler(handler)
                handler.close()
            with open(path, encoding="utf-8") as f:
                self.assertIn("INFO scanner: hello from the scanner", f.read())


if __name__ == "__main__":
    unittest.main()
