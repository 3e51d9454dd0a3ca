# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Text buffer for Raw-Pad.

A Buffer is an ordered list of lines (never empty), the path it was loaded
from and a modified flag. Mutations take 0-based (row, col) coordinates and
silently ignore coordinates that fall outside the text: the editor's cursor
is trusted to stay roughly in sync, and a stale position must never corrupt
the buffer.
"""

import logging
import os
from typing import List

import chardet

CHARDET_MIN_CONFIDENCE = 0.75
CHARDET_SAMPLE_SIZE = 1024 * 20
FALLBACK_ENCODINGS = ("utf-8", "latin-1")


class Buffer:
    """
    Represents one open document.

    Args:
        path (str): File path; an empty string means an untitled buffer.
            When set, the file is loaded immediately (a missing file yields
            a single empty line).

    Attributes:
        lines (List[str]): Document text, one string per line, no newlines.
        encoding (str): Encoding used by `load` and `save`.
    """

    def __init__(self, path: str = "") -> None:
        self.lines: List[str] = [""]
        self.encoding = "utf-8"
        self._path = path
        self._modified = False
        if path:
            self.load()

    # ───────────────────── properties ─────────────────────
    @property
    def path(self) -> str:
        return self._path

    @path.setter
    def path(self, value: str) -> None:
        self._path = value

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def _valid_row(self, row: int) -> bool:
        return 0 <= row < len(self.lines)

    # ───────────────────── editing ─────────────────────
    def get_line(self, row: int) -> str:
        """Returns line `row`, or an empty string when `row` is out of range."""
        if not self._valid_row(row):
            return ""
        return self.lines[row]

    def insert_char(self, row: int, col: int, ch: str) -> None:
        """Inserts the single character `ch` before column `col` of line `row`."""
        if len(ch) != 1:
            raise ValueError(f"insert_char expects one character, got {ch!r}")
        if not self._valid_row(row):
            return
        line = self.lines[row]
        if not 0 <= col <= len(line):
            return
        self.lines[row] = line[:col] + ch + line[col:]
        self._modified = True

    def delete_char(self, row: int, col: int) -> None:
        """Deletes the character just before column `col` (backspace semantics)."""
        if not self._valid_row(row):
            return
        line = self.lines[row]
        if not 0 < col <= len(line):
            return
        self.lines[row] = line[:col - 1] + line[col:]
        self._modified = True

    def insert_line(self, row: int) -> None:
        """Inserts an empty line directly after line `row`."""
        if not self._valid_row(row):
            return
        self.lines.insert(row + 1, "")
        self._modified = True

    def delete_line(self, row: int) -> None:
        """Removes line `row`; the last remaining line is never removed."""
        if len(self.lines) <= 1 or not self._valid_row(row):
            return
        del self.lines[row]
        self._modified = True

    def split_line(self, row: int, col: int) -> None:
        """Moves the text of line `row` from column `col` onward to a new line below it."""
        if not self._valid_row(row):
            return
        line = self.lines[row]
        if not 0 <= col <= len(line):
            return
        self.lines[row] = line[:col]
        self.lines.insert(row + 1, line[col:])
        self._modified = True

    # ───────────────────── persistence ─────────────────────
    def _encodings_to_try(self, raw_data_sample: bytes) -> List[str]:
        """Confident chardet guess first, then utf-8 and latin-1, all decoded strictly."""
        chardet_result = chardet.detect(raw_data_sample)
        encoding_guess = chardet_result.get("encoding")
        confidence = chardet_result.get("confidence") or 0.0
        logging.debug(
            f"Chardet detected encoding '{encoding_guess}' with confidence {confidence:.2f} for '{self._path}'."
        )
        candidates = []
        # utf-8 is a superset of ascii
        if encoding_guess and encoding_guess.lower() != "ascii" and confidence >= CHARDET_MIN_CONFIDENCE:
            candidates.append(encoding_guess)
        for fallback in FALLBACK_ENCODINGS:
            if fallback not in candidates:
                candidates.append(fallback)
        return candidates

    def load(self) -> None:
        """
        Replaces the buffer content with the newline-delimited records of `path`.

        The confident chardet guess, utf-8 and latin-1 are tried in that order
        with strict decoding; the first that succeeds becomes `encoding`, so
        saving an unedited buffer writes back the same bytes. A file that
        cannot be opened is treated as a new document: the buffer is reset to
        one empty line. The modified flag is cleared either way.
        """
        self._modified = False
        try:
            with open(self._path, "rb") as f_binary:
                raw_data = f_binary.read()
        except OSError as exc:
            logging.info(f"Buffer.load: cannot open '{self._path}' ({exc}); starting a new document.")
            self.lines = [""]
            self.encoding = "utf-8"
            return

        if not raw_data:
            self.lines = [""]
            return

        content = None
        for encoding in self._encodings_to_try(raw_data[:CHARDET_SAMPLE_SIZE]):
            try:
                content = raw_data.decode(encoding)
            except (UnicodeDecodeError, LookupError) as e_decode:
                logging.warning(f"Buffer.load: '{self._path}' is not valid {encoding}: {e_decode}")
                continue
            self.encoding = encoding
            break
        if content is None:
            self.encoding = "utf-8"
            content = raw_data.decode(self.encoding, errors="replace")

        content = content.replace("\r\n", "\n")
        records = content.split("\n")
        if content.endswith("\n"):
            records.pop()
        self.lines = records or [""]
        logging.info(f"Buffer loaded '{self._path}': {len(self.lines)} lines, encoding {self.encoding}.")

    def save(self) -> None:
        """
        Writes every line, each followed by a single newline, to `path`.

        Raises:
            ValueError: If the buffer has no path.
            OSError: If the file cannot be written; the modified flag is kept.
        """
        if not self._path:
            raise ValueError("Buffer has no file path")
        content_to_write = "".join(line + "\n" for line in self.lines)
        with open(self._path, "w", encoding=self.encoding, errors="replace", newline="") as f:
            f.write(content_to_write)
        self._modified = False
        logging.info(f"Buffer saved '{self._path}': {len(self.lines)} lines.")

    def __repr__(self) -> str:
        name = os.path.basename(self._path) if self._path else "[No Name]"
        return f"<Buffer {name} lines={len(self.lines)} modified={self._modified}>"
