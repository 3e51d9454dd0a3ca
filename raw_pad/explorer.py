# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Flat directory listing shown by the ``:explorer`` command."""

import logging
import os
from typing import List


class FileExplorer:
    """Lists one directory and tracks a selected entry."""

    MARKER = "> "
    BLANK = "  "

    def __init__(self, terminal) -> None:
        self.terminal = terminal
        self.directory = "."
        self.files: List[str] = []
        self.selected_index = 0

    def scan_directory(self, path: str) -> List[str]:
        """Lists `path` (sorted names); any enumeration error yields an empty list."""
        self.directory = path
        try:
            self.files = sorted(os.listdir(path))
        except OSError as exc:
            logging.warning("FileExplorer: cannot list '%s': %s", path, exc)
            self.files = []
        self.selected_index = 0
        return list(self.files)

    def render(self, start_row: int, height: int) -> None:
        out = []
        for i, name in enumerate(self.files[:max(height, 0)]):
            marker = self.MARKER if i == self.selected_index else self.BLANK
            out.append(self.terminal.cursor_sequence(start_row + i, 0))
            out.append(marker + name + self.terminal.CLEAR_LINE)
        if out:
            self.terminal.write("".join(out))

    def move_selection(self, delta: int) -> None:
        self.selected_index += delta
        if self.selected_index >= len(self.files):
            self.selected_index = len(self.files) - 1
        if self.selected_index < 0:
            self.selected_index = 0

    def get_selected(self) -> str:
        if 0 <= self.selected_index < len(self.files):
            return self.files[self.selected_index]
        return ""

    def selected_path(self) -> str:
        name = self.get_selected()
        return os.path.join(self.directory, name) if name else ""
