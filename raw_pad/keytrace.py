# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Built-in plugin that writes every key press to the key-trace logger."""

from raw_pad.config import KEY_LOGGER
from raw_pad.plugins import Plugin


class KeyTracePlugin(Plugin):
    """Logs keys and edit counts to ``raw_pad.keyevents`` (see RAW_PAD_KEYTRACE)."""

    def __init__(self) -> None:
        self.keys_seen = 0
        self.changes_seen = 0

    @property
    def name(self) -> str:
        return "keytrace"

    def on_load(self) -> None:
        KEY_LOGGER.debug("keytrace: loaded")

    def on_key_press(self, key: int) -> None:
        self.keys_seen += 1
        KEY_LOGGER.debug("key %r (%s)", key, chr(key) if 32 <= key < 127 else "ctrl/special")

    def on_buffer_change(self) -> None:
        self.changes_seen += 1
        KEY_LOGGER.debug("buffer change #%d", self.changes_seen)


def create_plugin() -> KeyTracePlugin:
    return KeyTracePlugin()
