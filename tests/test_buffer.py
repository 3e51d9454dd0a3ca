import os
import random
import tempfile
import unittest
from unittest.mock import patch

from raw_pad.buffer import Buffer


class TestBufferEditing(unittest.TestCase):

    def setUp(self):
        self.buffer = Buffer()

    def test_new_buffer_has_one_empty_line(self):
        self.assertEqual(self.buffer.lines, [""])
        self.assertEqual(self.buffer.path, "")
        self.assertFalse(self.buffer.modified)

    def test_insert_char(self):
        for col, ch in enumerate("hello"):
            self.buffer.insert_char(0, col, ch)
        self.buffer.insert_char(0, 0, ">")
        self.assertEqual(self.buffer.get_line(0), ">hello")
        self.assertTrue(self.buffer.modified)

    def test_insert_char_rejects_strings(self):
        with self.assertRaises(ValueError):
            self.buffer.insert_char(0, 0, "ab")

    def test_out_of_range_edits_are_ignored(self):
        self.buffer.lines = ["abc"]
        self.buffer.insert_char(1, 0, "x")
        self.buffer.insert_char(0, 4, "x")
        self.buffer.insert_char(-1, 0, "x")
        self.buffer.delete_char(0, 0)
        self.buffer.delete_char(0, 4)
        self.buffer.delete_char(-1, 1)
        self.buffer.insert_line(5)
        self.buffer.split_line(0, 7)
        self.assertEqual(self.buffer.lines, ["abc"])
        self.assertFalse(self.buffer.modified)
        self.assertEqual(self.buffer.get_line(3), "")
        self.assertEqual(self.buffer.get_line(-1), "")

    def test_delete_char_removes_char_before_column(self):
        self.buffer.lines = ["abc"]
        self.buffer.delete_char(0, 2)
        self.assertEqual(self.buffer.lines, ["ac"])
        self.assertTrue(self.buffer.modified)

    def test_insert_and_delete_line(self):
        self.buffer.lines = ["one", "two"]
        self.buffer.insert_line(0)
        self.assertEqual(self.buffer.lines, ["one", "", "two"])
        self.buffer.delete_line(1)
        self.assertEqual(self.buffer.lines, ["one", "two"])

    def test_last_line_is_never_deleted(self):
        self.buffer.lines = ["only"]
        self.buffer.delete_line(0)
        self.assertEqual(self.buffer.lines, ["only"])
        self.assertFalse(self.buffer.modified)

    def test_line_count_never_drops_below_one(self):
        rng = random.Random(1234)
        for _ in range(500):
            row = rng.randrange(-2, self.buffer.line_count + 2)
            if rng.random() < 0.4:
                self.buffer.insert_line(row)
            else:
                self.buffer.delete_line(row)
            self.assertGreaterEqual(self.buffer.line_count, 1)
        while self.buffer.line_count > 1:
            self.buffer.delete_line(0)
        self.buffer.delete_line(0)
        self.assertEqual(self.buffer.line_count, 1)

    def test_insert_then_backspace_restores_line(self):
        self.buffer.lines = ["abc"]
        self.buffer.insert_char(0, 1, "z")
        self.buffer.delete_char(0, 2)
        self.assertEqual(self.buffer.lines, ["abc"])

    def test_split_line(self):
        self.buffer.lines = ["abcd"]
        self.buffer.split_line(0, 2)
        self.assertEqual(self.buffer.lines, ["ab", "cd"])
        self.buffer.split_line(1, 2)
        self.assertEqual(self.buffer.lines, ["ab", "cd", ""])


class TestBufferFiles(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "sample.txt")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, data: bytes):
        with open(self.path, "wb") as f:
            f.write(data)

    def test_load_splits_records(self):
        self._write(b"int main() {\n  return 0;\n}\n")
        buf = Buffer(self.path)
        self.assertEqual(buf.lines, ["int main() {", "  return 0;", "}"])
        self.assertFalse(buf.modified)

    def test_load_without_trailing_newline(self):
        self._write(b"a\nb")
        self.assertEqual(Buffer(self.path).lines, ["a", "b"])

    def test_load_crlf(self):
        self._write(b"a\r\nb\r\n")
        self.assertEqual(Buffer(self.path).lines, ["a", "b"])

    def test_load_keeps_blank_lines(self):
        self._write(b"a\n\nb\n\n")
        self.assertEqual(Buffer(self.path).lines, ["a", "", "b", ""])

    def test_load_empty_file(self):
        self._write(b"")
        self.assertEqual(Buffer(self.path).lines, [""])

    def test_missing_file_starts_empty(self):
        buf = Buffer(os.path.join(self.tmpdir.name, "nonexistent.txt"))
        self.assertEqual(buf.lines, [""])
        self.assertFalse(buf.modified)

    def test_reload_discards_edits(self):
        self._write(b"keep\n")
        buf = Buffer(self.path)
        buf.insert_char(0, 0, "x")
        buf.load()
        self.assertEqual(buf.lines, ["keep"])
        self.assertFalse(buf.modified)

    def test_save_terminates_every_line(self):
        buf = Buffer(self.path)
        buf.lines = ["first", "", "last"]
        buf.insert_line(2)
        buf.save()
        with open(self.path, "rb") as f:
            self.assertEqual(f.read(), b"first\n\nlast\n\n")
        self.assertFalse(buf.modified)

    def test_save_load_keeps_lines(self):
        buf = Buffer(self.path)
        buf.lines = ["x = 1", "print(x)"]
        buf.save()
        self.assertEqual(Buffer(self.path).lines, ["x = 1", "print(x)"])

    def test_save_without_path(self):
        with self.assertRaises(ValueError):
            Buffer().save()

    def test_save_error_keeps_modified_flag(self):
        buf = Buffer(self.path)
        buf.insert_char(0, 0, "x")
        with patch("builtins.open", side_effect=PermissionError(13, "Permission denied")):
            with self.assertRaises(OSError):
                buf.save()
        self.assertTrue(buf.modified)

    def test_latin1_file_survives_open_and_save(self):
        self._write(b"caf\xe9\n")
        with patch("raw_pad.buffer.chardet.detect", return_value={"encoding": None, "confidence": 0.0}):
            buf = Buffer(self.path)
        self.assertEqual(buf.encoding, "latin-1")
        self.assertEqual(buf.lines, ["café"])
        buf.save()
        with open(self.path, "rb") as f:
            self.assertEqual(f.read(), b"caf\xe9\n")

    def test_wrong_confident_guess_falls_through(self):
        self._write("naïve\n".encode("utf-8") + b"\xff\n")
        with patch("raw_pad.buffer.chardet.detect", return_value={"encoding": "ascii", "confidence": 1.0}):
            buf = Buffer(self.path)
        self.assertEqual(buf.encoding, "latin-1")
        buf.save()
        with open(self.path, "rb") as f:
            self.assertEqual(f.read(), "naïve\n".encode("utf-8") + b"\xff\n")

    def test_unknown_guessed_encoding_is_skipped(self):
        self._write(b"plain\n")
        with patch("raw_pad.buffer.chardet.detect", return_value={"encoding": "x-no-such-codec", "confidence": 0.99}):
            with self.assertLogs(level="WARNING"):
                buf = Buffer(self.path)
        self.assertEqual(buf.encoding, "utf-8")
        self.assertEqual(buf.lines, ["plain"])

    def test_low_confidence_detection_falls_back_to_utf8(self):
        self._write("grüße\n".encode("utf-8"))
        with patch("raw_pad.buffer.chardet.detect", return_value={"encoding": "Windows-1252", "confidence": 0.3}):
            buf = Buffer(self.path)
        self.assertEqual(buf.encoding, "utf-8")
        self.assertEqual(buf.lines, ["grüße"])


if __name__ == '__main__':
    unittest.main()
