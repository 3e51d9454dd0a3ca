# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Raw-Pad editor core.

`Editor` ties the pieces together: it owns the open buffers, the cursor and
viewport, the insert/command mode state machine, the plugin manager and the
file explorer, and it renders every frame as a single write to the terminal.
`main` is the console entry point.
"""

import enum
import logging
import os
import signal
import sys
from typing import Any, Dict, List, Optional

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound
from wcwidth import wcswidth

from raw_pad.buffer import Buffer
from raw_pad.config import default_config, load_config, logger, setup_logging
from raw_pad.explorer import FileExplorer
from raw_pad.highlighter import RESET, HighlightRuleError, SyntaxHighlighter, build_highlighter
from raw_pad.plugins import PluginError, PluginManager
from raw_pad.terminal import (
    ARROW_DOWN,
    ARROW_LEFT,
    ARROW_RIGHT,
    ARROW_UP,
    BACKSPACE,
    CTRL_N,
    CTRL_P,
    ENTER,
    ESC,
    Terminal,
    TerminalError,
)

ARROW_KEYS = (ARROW_UP, ARROW_DOWN, ARROW_RIGHT, ARROW_LEFT)

UNSAVED_CHANGES_MSG = "Unsaved changes! Use :q! to force quit"
NO_FILE_NAME_MSG = "No file name"
INTERNAL_ERROR_MSG = "Internal error (see log)"

REVERSE_VIDEO = "\x1b[7m"

# C0 controls and DEL are drawn as "?" so one column stays one character
CONTROL_CHARS = {code: "?" for code in (*range(0x20), 0x7F)}


class Mode(enum.Enum):
    INSERT = "insert"
    COMMAND = "command"


class Editor:
    """
    Modal terminal text editor.

    In insert mode printable keys edit the current buffer; ``:`` switches to
    command mode, where keys accumulate into a command line that Enter runs
    (``q``, ``q!``, ``w``, ``wq``, ``e <path>``, ``explorer``) and Escape
    abandons.

    Args:
        terminal (Terminal): Raw-mode terminal used for all input and output.
        config (dict, optional): Merged configuration; defaults to
            `default_config()`.
        filename (str): File to open at start-up; empty for an untitled buffer.

    Attributes:
        buffers (List[Buffer]): Every opened buffer, in opening order.
        current_buffer (int): Index of the active buffer in `buffers`.
        cursor_row, cursor_col (int): Cursor position in buffer coordinates.
        row_offset, col_offset (int): Top-left corner of the viewport.
        status_message (str): One-shot message shown on the command line.
        command_buffer (str): Text typed after ``:`` in command mode.
        mode (Mode): Current input mode.
        running (bool): Cleared to stop the main loop.
        plugin_manager (PluginManager): Registry notified of keys and edits.
        explorer (FileExplorer): Directory listing toggled by ``:explorer``.
        show_explorer (bool): Whether the explorer overlay is drawn.
    """

    def __init__(self, terminal: Terminal, config: Optional[Dict[str, Any]] = None, filename: str = "") -> None:
        self.terminal = terminal
        self.config = config if config is not None else default_config()

        self.buffers: List[Buffer] = [Buffer(filename)]
        self.current_buffer = 0

        self.cursor_row = 0
        self.cursor_col = 0
        self.row_offset = 0
        self.col_offset = 0

        self.status_message = ""
        self.command_buffer = ""
        self.mode = Mode.INSERT
        self.running = True

        self.plugin_manager = PluginManager()
        self.explorer = FileExplorer(terminal)
        self.show_explorer = False

        self._highlighters: Dict[str, SyntaxHighlighter] = {}
        self.highlighter = self._highlighter_for(self.buffer)

        self._autoload_plugins()
        logging.info(f"Editor initialised with {self.buffer!r}")

    @property
    def buffer(self) -> Buffer:
        """The buffer currently being edited."""
        return self.buffers[self.current_buffer]

    def _set_status_message(self, message: str) -> None:
        self.status_message = message
        logging.debug(f"Status message set: {message!r}")

    def _autoload_plugins(self) -> None:
        modules = self.config.get("plugins", {}).get("autoload", [])
        if not isinstance(modules, list):
            logging.warning(f"plugins.autoload must be a list, got {type(modules).__name__}; ignored.")
            return
        for module_name in modules:
            try:
                self.plugin_manager.load_plugin_by_name(str(module_name))
            except PluginError as exc:
                logging.error(f"Plugin autoload failed: {exc}")
                self._set_status_message(f"Plugin error: {module_name}")

    # ───────────────────── syntax highlighting ─────────────────────
    def detect_language(self, path: str) -> str:
        """
        Maps `path` to a ``[syntax_highlighting]`` section name.

        The Pygments lexer picked for the file name is matched by its
        lower-cased name first, then by its aliases. Unknown files and
        languages without a section use ``"default"``.
        """
        syntax_config = self.config.get("syntax_highlighting", {})
        if path:
            try:
                lexer = get_lexer_for_filename(path)
            except ClassNotFound:
                logging.debug(f"Pygments: no lexer for '{path}'.")
            else:
                for key in [lexer.name.lower(), *lexer.aliases]:
                    if key in syntax_config:
                        logging.debug(f"Pygments: '{path}' uses the '{key}' rules ({lexer.name}).")
                        return key
        return "default"

    def _highlighter_for(self, buf: Buffer) -> SyntaxHighlighter:
        language = self.detect_language(buf.path)
        cached = self._highlighters.get(language)
        if cached is not None:
            return cached

        section = self.config.get("syntax_highlighting", {}).get(language)
        patterns = section.get("patterns", []) if isinstance(section, dict) else []
        try:
            highlighter = build_highlighter(patterns)
        except HighlightRuleError as exc:
            logging.error(f"Syntax rules for '{language}' rejected: {exc}")
            self._set_status_message(f"Syntax rule error ({language}): {exc}")
            highlighter = SyntaxHighlighter()
        self._highlighters[language] = highlighter
        return highlighter

    # ───────────────────── input ─────────────────────
    def process_keypress(self) -> bool:
        """Reads one key from the terminal and handles it. Returns False on timeout."""
        key = self.terminal.read_key()
        if key is None:
            return False
        self.handle_key(key)
        return True

    def handle_key(self, key: int) -> None:
        if self.mode is Mode.COMMAND:
            self._handle_command_key(key)
        else:
            self._handle_insert_key(key)

    def _handle_insert_key(self, key: int) -> None:
        self.plugin_manager.notify_key_press(key)
        if key == ord(":"):
            self.mode = Mode.COMMAND
            self.command_buffer = ""
        elif key == ESC:
            pass
        elif key == BACKSPACE:
            self.delete_char()
        elif key == ENTER:
            self.new_line()
        elif 32 <= key <= 126:
            self.insert_char(chr(key))
        elif key in ARROW_KEYS:
            self.move_cursor(key)
        elif key in (CTRL_N, CTRL_P) and self.show_explorer:
            self.explorer.move_selection(1 if key == CTRL_N else -1)
        else:
            logging.debug(f"Unbound key in insert mode: {key!r}")

    def _handle_command_key(self, key: int) -> None:
        if key == ENTER:
            command = self.command_buffer
            self.execute_command(command)
            self.mode = Mode.INSERT
            self.command_buffer = ""
        elif key == ESC:
            self.mode = Mode.INSERT
            self.command_buffer = ""
        elif key == BACKSPACE:
            self.command_buffer = self.command_buffer[:-1]
        elif 32 <= key <= 126:
            self.command_buffer += chr(key)

    # ───────────────────── editing ─────────────────────
    def insert_char(self, ch: str) -> None:
        buf = self.buffer
        before = len(buf.get_line(self.cursor_row))
        buf.insert_char(self.cursor_row, self.cursor_col, ch)
        if len(buf.get_line(self.cursor_row)) == before:
            return
        self.cursor_col += 1
        self.plugin_manager.notify_buffer_change()

    def delete_char(self) -> None:
        """Backspace: removes the character left of the cursor; no-op at column 0."""
        if self.cursor_col <= 0:
            return
        self.buffer.delete_char(self.cursor_row, self.cursor_col)
        self.cursor_col -= 1
        self.plugin_manager.notify_buffer_change()

    def new_line(self) -> None:
        """Splits the current line at the cursor and moves to the start of the new line."""
        self.buffer.split_line(self.cursor_row, self.cursor_col)
        self.cursor_row += 1
        self.cursor_col = 0
        self.plugin_manager.notify_buffer_change()

    def move_cursor(self, key: int) -> None:
        """
        Moves the cursor one step for an arrow key.

        Left/right wrap across line boundaries; up/down keep the column when
        possible and clamp it to the target line length.
        """
        buf = self.buffer
        line_len = len(buf.get_line(self.cursor_row))
        if key == ARROW_LEFT:
            if self.cursor_col > 0:
                self.cursor_col -= 1
            elif self.cursor_row > 0:
                self.cursor_row -= 1
                self.cursor_col = len(buf.get_line(self.cursor_row))
        elif key == ARROW_RIGHT:
            if self.cursor_col < line_len:
                self.cursor_col += 1
            elif self.cursor_row < buf.line_count - 1:
                self.cursor_row += 1
                self.cursor_col = 0
        elif key == ARROW_UP:
            if self.cursor_row > 0:
                self.cursor_row -= 1
        elif key == ARROW_DOWN:
            if self.cursor_row < buf.line_count - 1:
                self.cursor_row += 1
        self.cursor_col = min(self.cursor_col, len(buf.get_line(self.cursor_row)))

    # ───────────────────── commands ─────────────────────
    def execute_command(self, command: str) -> None:
        """Runs one ``:`` command; unknown commands only set a status message."""
        logging.info(f"Executing command ':{command}'")
        if command == "q":
            self.quit()
        elif command == "q!":
            self.quit(force=True)
        elif command == "w":
            self.save_file()
        elif command == "wq":
            self.save_file()
            self.running = False
        elif command == "e" or command.startswith("e "):
            path = command[2:].strip()
            if not path and self.show_explorer:
                path = self.explorer.selected_path()
            if path:
                self.open_file(path)
            else:
                self._set_status_message(NO_FILE_NAME_MSG)
        elif command == "explorer":
            self.toggle_explorer()
        else:
            self._set_status_message(f"Unknown command: {command}")

    def open_file(self, path: str) -> None:
        """
        Opens `path` in a new buffer and makes it current.

        A file that does not exist yet opens as an empty buffer which `:w`
        will create. The cursor and viewport are reset to the top-left.
        """
        existed = os.path.exists(path)
        buf = Buffer(path)
        self.buffers.append(buf)
        self.current_buffer = len(self.buffers) - 1
        self.cursor_row = self.cursor_col = 0
        self.row_offset = self.col_offset = 0
        self.highlighter = self._highlighter_for(buf)
        if existed:
            self._set_status_message(f'"{path}" {buf.line_count}L')
        else:
            self._set_status_message(f'"{path}" [New File]')
        logging.info(f"Opened {buf!r} as buffer #{self.current_buffer}")

    def save_file(self) -> bool:
        """
        Writes the current buffer to its path.

        Returns:
            bool: True if the file was written.
        """
        buf = self.buffer
        if not buf.path:
            self._set_status_message(NO_FILE_NAME_MSG)
            return False
        try:
            buf.save()
        except OSError as exc:
            logging.error(f"Error saving '{buf.path}': {exc}", exc_info=True)
            self._set_status_message(f"Error saving file: {exc.strerror or exc}")
            return False
        self._set_status_message("File saved")
        return True

    def quit(self, force: bool = False) -> None:
        if self.buffer.modified and not force:
            self._set_status_message(UNSAVED_CHANGES_MSG)
            return
        logging.info("Quit requested%s.", " (forced)" if force else "")
        self.running = False

    def toggle_explorer(self) -> None:
        self.show_explorer = not self.show_explorer
        if self.show_explorer:
            root = self.config.get("editor", {}).get("explorer_root", ".")
            self.explorer.scan_directory(str(root))

    # ───────────────────── rendering ─────────────────────
    def scroll(self, text_rows: int, cols: int) -> None:
        """Adjusts the viewport offsets so the cursor is inside the text area."""
        if self.cursor_row < self.row_offset:
            self.row_offset = self.cursor_row
        elif text_rows > 0 and self.cursor_row >= self.row_offset + text_rows:
            self.row_offset = self.cursor_row - text_rows + 1

        if self.cursor_col < self.col_offset:
            self.col_offset = self.cursor_col
        elif cols > 0 and self.cursor_col >= self.col_offset + cols:
            self.col_offset = self.cursor_col - cols + 1

    def _status_bar_text(self, cols: int) -> str:
        buf = self.buffer
        status = (buf.path or "[No Name]").translate(CONTROL_CHARS)
        if buf.modified:
            status += " [+]"
        status += f" | {self.cursor_row + 1}:{self.cursor_col + 1}"
        if len(status) > cols:
            status = status[:cols]
        width = wcswidth(status)
        if width < 0:
            width = len(status)
        return status + " " * max(cols - width, 0)

    def render(self) -> None:
        """
        Draws one complete frame.

        The text area fills every row but the last two; rows past the end of
        the buffer show ``~``. The explorer overlay (when visible) is drawn on
        top of the text area, followed by the reverse-video status bar and the
        command line. The one-shot status message is cleared once shown.
        """
        rows, cols = self.terminal.get_window_size()
        text_rows = max(rows - 2, 0)
        self.scroll(text_rows, cols)

        buf = self.buffer
        frame = [Terminal.HIDE_CURSOR, Terminal.CLEAR_SCREEN]
        for screen_row in range(text_rows):
            file_row = screen_row + self.row_offset
            frame.append(Terminal.cursor_sequence(screen_row, 0))
            if file_row < buf.line_count:
                segment = buf.get_line(file_row)[self.col_offset:self.col_offset + cols]
                frame.append(self.highlighter.highlight(segment.translate(CONTROL_CHARS)))
            else:
                frame.append("~")

        if self.show_explorer:
            # the explorer writes directly, so flush the text area first
            self.terminal.write("".join(frame))
            frame = []
            self.explorer.render(0, text_rows)

        if rows >= 2:
            frame.append(Terminal.cursor_sequence(rows - 2, 0))
            frame.append(REVERSE_VIDEO + self._status_bar_text(cols) + RESET)
            frame.append(Terminal.cursor_sequence(rows - 1, 0))
            if self.mode is Mode.COMMAND:
                frame.append((":" + self.command_buffer)[:cols])
            elif self.status_message:
                frame.append(self.status_message[:cols])
                self.status_message = ""

        frame.append(Terminal.cursor_sequence(self.cursor_row - self.row_offset, self.cursor_col - self.col_offset))
        frame.append(Terminal.SHOW_CURSOR)
        self.terminal.write("".join(frame))

    # ───────────────────── main loop ─────────────────────
    def run(self) -> None:
        """
        The main event loop: render, read one key (or time out), handle it.

        Unexpected exceptions from a single iteration are logged at CRITICAL
        level and reported on the command line; the loop keeps running.
        Terminal I/O failures end the loop by propagating.
        """
        logging.info("Editor main loop started.")
        while self.running:
            try:
                self.render()
                self.process_keypress()
            except KeyboardInterrupt:
                logging.info("KeyboardInterrupt received in main loop, initiating exit.")
                self.running = False
            except OSError:
                raise
            except Exception as e:
                logging.critical("An unhandled exception occurred in the main loop: %s", e, exc_info=True)
                self._set_status_message(INTERNAL_ERROR_MSG)
        logging.info("Editor main loop finished.")


def _raise_system_exit(signum, frame) -> None:
    logger.info(f"Received signal {signum}, shutting down.")
    raise SystemExit(128 + signum)


def _install_signal_handlers() -> None:
    for name in ("SIGTERM", "SIGHUP"):
        if hasattr(signal, name):
            try:
                signal.signal(getattr(signal, name), _raise_system_exit)
            except (OSError, ValueError) as e:
                logger.warning(f"Couldn't install a handler for {name}: {e}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Console entry point: ``raw-pad [FILE]``.

    Loads ``config.toml`` from the working directory, configures logging,
    puts the terminal in raw mode and runs the editor until it quits. The
    terminal is restored on every exit path, including signals.

    Returns:
        int: Process exit status.
    """
    args = sys.argv[1:] if argv is None else argv
    filename = args[0] if args else ""

    app_config = load_config()
    setup_logging(app_config)
    logger.info("Raw-Pad editor starting up...")
    _install_signal_handlers()

    try:
        with Terminal() as terminal:
            try:
                editor = Editor(terminal, app_config, filename=filename)
                editor.run()
            finally:
                terminal.write(Terminal.CLEAR_SCREEN + Terminal.SHOW_CURSOR)
    except TerminalError as e:
        logger.critical(f"Terminal setup failed: {e}")
        print(f"raw-pad: {e}", file=sys.stderr)
        return 1

    logger.info("Raw-Pad editor shut down gracefully.")
    return 0
