# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Raw terminal I/O for Raw-Pad.

`Terminal` is the only object that touches the controlling tty: it switches
it into raw mode, writes VT100 escape sequences and reads single keystrokes.
Use it as a context manager so the original tty settings come back on every
exit path.
"""

import errno
import fcntl
import logging
import os
import struct
import sys
import termios
from typing import List, Optional, Tuple

ESC = 27
ENTER = 13
BACKSPACE = 127
CTRL_N = 14
CTRL_P = 16

ARROW_UP = 1000
ARROW_DOWN = 1001
ARROW_RIGHT = 1002
ARROW_LEFT = 1003

_ARROW_FINALS = {
    b"A": ARROW_UP,
    b"B": ARROW_DOWN,
    b"C": ARROW_RIGHT,
    b"D": ARROW_LEFT,
}

DEFAULT_WINDOW_SIZE = (24, 80)

# termios attribute list indices
_IFLAG, _OFLAG, _CFLAG, _LFLAG, _ISPEED, _OSPEED, _CC = range(7)


class TerminalError(RuntimeError):
    """Raised when the tty cannot be switched into or out of raw mode."""


class Terminal:
    """
    Raw-mode terminal bound to a pair of file descriptors.

    Args:
        stdin_fd (Optional[int]): Descriptor keystrokes are read from
            (defaults to ``sys.stdin``).
        stdout_fd (Optional[int]): Descriptor escape sequences are written to
            (defaults to ``sys.stdout``).

    Example:
        >>> with Terminal() as term:
        ...     term.clear_screen()
        ...     key = term.read_key()
    """

    CLEAR_SCREEN = "\x1b[2J\x1b[H"
    HIDE_CURSOR = "\x1b[?25l"
    SHOW_CURSOR = "\x1b[?25h"
    CLEAR_LINE = "\x1b[K"

    def __init__(self, stdin_fd: Optional[int] = None, stdout_fd: Optional[int] = None) -> None:
        self.stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self.stdout_fd = sys.stdout.fileno() if stdout_fd is None else stdout_fd
        self._orig_attrs: Optional[List] = None
        self._pending = bytearray()

    # ───────────────────── raw mode ─────────────────────
    @property
    def in_raw_mode(self) -> bool:
        return self._orig_attrs is not None

    def enter_raw_mode(self) -> None:
        """
        Switches the input tty to raw mode and remembers the previous settings.

        Canonical mode, echo, signal generation and input/output
        post-processing are disabled; reads return after at most 100 ms
        even when no byte is available (VMIN=0, VTIME=1).

        Raises:
            TerminalError: If the descriptor is not a tty or cannot be configured.
        """
        if self.in_raw_mode:
            return
        try:
            orig = termios.tcgetattr(self.stdin_fd)
        except termios.error as exc:
            raise TerminalError(f"Cannot read terminal attributes (is stdin a tty?): {exc}") from exc

        raw = [list(field) if isinstance(field, list) else field for field in orig]
        raw[_IFLAG] &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
        raw[_OFLAG] &= ~termios.OPOST
        raw[_CFLAG] |= termios.CS8
        raw[_LFLAG] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        raw[_CC][termios.VMIN] = 0
        raw[_CC][termios.VTIME] = 1

        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, raw)
        except termios.error as exc:
            raise TerminalError(f"Cannot switch terminal to raw mode: {exc}") from exc

        self._orig_attrs = orig
        logging.debug("Terminal switched to raw mode (fd=%s).", self.stdin_fd)

    def exit_raw_mode(self) -> None:
        """
        Restores the settings saved by `enter_raw_mode`. Safe to call twice.

        Raises:
            TerminalError: If the saved settings cannot be written back.
        """
        if not self.in_raw_mode:
            return
        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._orig_attrs)
        except termios.error as exc:
            raise TerminalError(f"Cannot restore terminal settings: {exc}") from exc
        self._orig_attrs = None
        logging.debug("Terminal settings restored (fd=%s).", self.stdin_fd)

    def __enter__(self) -> "Terminal":
        self.enter_raw_mode()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.exit_raw_mode()

    # ───────────────────── output ─────────────────────
    def write(self, text: str) -> None:
        data = text.encode("utf-8", errors="replace")
        while data:
            written = os.write(self.stdout_fd, data)
            data = data[written:]

    def clear_screen(self) -> None:
        self.write(self.CLEAR_SCREEN)

    def move_cursor(self, row: int, col: int) -> None:
        """Moves the hardware cursor; `row`/`col` are 0-based."""
        self.write(self.cursor_sequence(row, col))

    @staticmethod
    def cursor_sequence(row: int, col: int) -> str:
        return f"\x1b[{row + 1};{col + 1}H"

    def hide_cursor(self) -> None:
        self.write(self.HIDE_CURSOR)

    def show_cursor(self) -> None:
        self.write(self.SHOW_CURSOR)

    def get_window_size(self) -> Tuple[int, int]:
        """
        Returns the terminal size as ``(rows, cols)``.

        Falls back to 24x80 when the TIOCGWINSZ query fails or reports
        zero columns (e.g. output redirected to a pipe).
        """
        try:
            packed = fcntl.ioctl(self.stdout_fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
            rows, cols, _, _ = struct.unpack("HHHH", packed)
        except OSError as exc:
            logging.debug("get_window_size: ioctl failed (%s); using default size.", exc)
            return DEFAULT_WINDOW_SIZE
        if cols == 0:
            return DEFAULT_WINDOW_SIZE
        return rows, cols

    # ───────────────────── input ─────────────────────
    def _read_byte(self) -> bytes:
        if self._pending:
            return bytes([self._pending.pop(0)])
        try:
            return os.read(self.stdin_fd, 1)
        except OSError as exc:
            if exc.errno in (errno.EAGAIN, errno.EINTR):
                return b""
            raise

    def read_key(self) -> Optional[int]:
        """
        Reads one keystroke.

        Returns:
            Optional[int]: The byte value, one of the ``ARROW_*`` constants for
            an ``ESC [ A..D`` sequence, or None when the read timed out.
            Any other ``ESC [`` sequence (Delete, PageUp, F5...) is read to its
            final byte and reported as a single ESC.
        """
        first = self._read_byte()
        if not first:
            return None
        key = first[0]
        if key != ESC:
            return key

        bracket = self._read_byte()
        if bracket != b"[":
            # lone ESC: keep whatever followed it for the next read
            self._pending.extend(bracket)
            return ESC
        # parameter and intermediate bytes run up to a final byte in 0x40-0x7E
        while True:
            final = self._read_byte()
            if not final or 0x40 <= final[0] <= 0x7E:
                break
        return _ARROW_FINALS.get(final, ESC)
