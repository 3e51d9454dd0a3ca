import logging
import logging.handlers
import os
import tempfile
import unittest
from unittest.mock import patch

from raw_pad.config import KEY_LOGGER, deep_merge, default_config, load_config, setup_logging


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.tmpdir.name, "config.toml")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, text):
        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_deep_merge(self):
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        merged = deep_merge(base, {"b": {"y": 2}, "c": 3})
        self.assertEqual(merged, {"a": 1, "b": {"x": 10, "y": 2}, "c": 3})
        self.assertEqual(base["b"]["y"], 20)

    def test_missing_file_gives_defaults(self):
        config = load_config(os.path.join(self.tmpdir.name, "absent.toml"))
        self.assertEqual(config, default_config())
        self.assertEqual(config["plugins"]["autoload"], ["raw_pad.keytrace"])
        self.assertIn("patterns", config["syntax_highlighting"]["default"])

    def test_user_values_override_defaults(self):
        self._write(
            '[editor]\nexplorer_root = "/srv"\n\n'
            '[plugins]\nautoload = []\n\n'
            '[[syntax_highlighting.rust.patterns]]\npattern = "fn"\ncolor = "red"\n'
        )
        config = load_config(self.config_path)
        self.assertEqual(config["editor"]["explorer_root"], "/srv")
        self.assertEqual(config["plugins"]["autoload"], [])
        self.assertEqual(config["syntax_highlighting"]["rust"]["patterns"], [{"pattern": "fn", "color": "red"}])
        self.assertIn("python", config["syntax_highlighting"])
        self.assertEqual(config["logging"]["log_file"], "raw_pad.log")

    def test_invalid_toml_gives_defaults(self):
        self._write("[editor\nexplorer_root = ")
        with self.assertLogs(level="ERROR"):
            config = load_config(self.config_path)
        self.assertEqual(config, default_config())

    def test_wrong_section_type_is_replaced(self):
        self._write('plugins = 5\n')
        config = load_config(self.config_path)
        self.assertEqual(config["plugins"], default_config()["plugins"])


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level

    def tearDown(self):
        for handler in self.root.handlers:
            handler.close()
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)
        self.tmpdir.cleanup()

    def test_file_handler_is_installed(self):
        log_file = os.path.join(self.tmpdir.name, "logs", "editor.log")
        config = {"logging": {"log_file": log_file, "file_level": "INFO"}}
        with patch.dict(os.environ, {"RAW_PAD_KEYTRACE": ""}):
            setup_logging(config)
        rotating = [h for h in self.root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        self.assertEqual(len(rotating), 1)
        self.assertEqual(self.root.level, logging.INFO)
        self.assertTrue(os.path.isdir(os.path.dirname(log_file)))
        self.assertTrue(KEY_LOGGER.disabled)

    def test_console_handler_is_optional(self):
        log_file = os.path.join(self.tmpdir.name, "editor.log")
        setup_logging({"logging": {"log_file": log_file, "log_to_console": True}})
        streams = [h for h in self.root.handlers if type(h) is logging.StreamHandler]
        self.assertEqual(len(streams), 1)
        self.assertEqual(streams[0].level, logging.WARNING)

    def test_error_log_is_optional(self):
        cwd = os.getcwd()
        os.chdir(self.tmpdir.name)
        self.addCleanup(os.chdir, cwd)
        setup_logging({"logging": {"log_file": "editor.log", "separate_error_log": True}})
        levels = sorted(h.level for h in self.root.handlers
                        if isinstance(h, logging.handlers.RotatingFileHandler))
        self.assertEqual(levels, [logging.DEBUG, logging.ERROR])
        self.assertTrue(os.path.exists(os.path.join(self.tmpdir.name, "error.log")))


if __name__ == '__main__':
    unittest.main()
