# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Configuration loading and logging setup for Raw-Pad."""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Dict, Optional

import toml


# --- Dictionary Deep Merge Utility ---
def deep_merge(base: Dict[Any, Any], override: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.

    If a key exists in both dictionaries and both values are dictionaries,
    the merge is performed recursively. Otherwise, the value from `override`
    replaces the value from `base`. Neither input is modified.

    Args:
        base (Dict[Any, Any]): The base dictionary.
        override (Dict[Any, Any]): Values that take precedence over `base`.

    Returns:
        Dict[Any, Any]: A new dictionary containing the merged result.

    Example:
        >>> deep_merge({'a': 1, 'b': {'x': 10}}, {'b': {'y': 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = dict(base)
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
        else:
            result[key] = override_value
    return result


def default_config() -> Dict[str, Any]:
    """Returns a fresh copy of the built-in defaults."""
    return {
        "editor": {
            "explorer_root": ".",
        },
        "plugins": {
            "autoload": ["raw_pad.keytrace"],
        },
        "logging": {
            "log_file": "raw_pad.log",
            "file_level": "DEBUG",
            "console_level": "WARNING",
            # stderr shares the tty with the raw-mode screen
            "log_to_console": False,
            "separate_error_log": False,
        },
        "syntax_highlighting": {
            "default": {
                "patterns": [
                    {"pattern": r"\b(int|void|return|if|else|for|while|class)\b", "color": "blue"},
                    {"pattern": r'".*?"', "color": "green"},
                    {"pattern": r"//.*", "color": "bright_black"},
                ]
            },
            "cpp": {
                "patterns": [
                    {"pattern": r"\b(int|char|bool|void|auto|const|return|if|else|for|while"
                                r"|class|struct|namespace|using|public|private|template)\b",
                     "color": "blue"},
                    {"pattern": r"#\w+", "color": "magenta"},
                    {"pattern": r'".*?"', "color": "green"},
                    {"pattern": r"//.*", "color": "bright_black"},
                ]
            },
            "c": {
                "patterns": [
                    {"pattern": r"\b(int|char|void|const|static|struct|return|if|else|for|while)\b",
                     "color": "blue"},
                    {"pattern": r"#\w+", "color": "magenta"},
                    {"pattern": r'".*?"', "color": "green"},
                    {"pattern": r"//.*", "color": "bright_black"},
                ]
            },
            "python": {
                "patterns": [
                    {"pattern": r"\b(def|class|return|if|elif|else|for|while|import|from|with|as"
                                r"|try|except|finally|raise|None|True|False)\b",
                     "color": "blue"},
                    {"pattern": r"'.*?'|\".*?\"", "color": "green"},
                    {"pattern": r"#.*", "color": "bright_black"},
                ]
            },
        },
    }


# --- Configuration Loading ---
def load_config(config_path: str = "config.toml") -> Dict[str, Any]:
    """
    Loads and merges the application configuration from a *config.toml* file.

    Three tiers, as in every Raw-Pad start-up:
    1. Hard-coded minimal defaults, so the editor starts in any environment.
    2. The user TOML file (if present) merged on top, overriding only the keys it sets.
    3. A sanity pass that restores any default section or key the merge lost.

    Missing files, TOML syntax errors and I/O problems are logged and resolved
    by falling back to defaults, so this function never raises.

    Args:
        config_path (str): Path of the user configuration file.

    Returns:
        dict: The fully merged configuration dictionary.
    """
    minimal_default = default_config()
    user_config: dict = {}

    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                user_config = toml.loads(fh.read())
            logging.debug("Loaded user config from %s", config_path)
        except FileNotFoundError:
            logging.warning("Config file %s vanished – using defaults.", config_path)
        except toml.TomlDecodeError as exc:
            logging.error("TOML parse error in %s: %s – using defaults.", config_path, exc)
        except Exception as exc:
            logging.error("Unexpected error reading %s: %s – using defaults.", config_path, exc)
    else:
        logging.debug("Config file %s not found – using defaults.", config_path)

    final_config: dict = deep_merge(minimal_default, user_config)

    for section, default_val in minimal_default.items():
        if not isinstance(final_config.get(section), type(default_val)):
            logging.warning("Config section '%s' has the wrong type – using defaults.", section)
            final_config[section] = default_val
            continue
        if isinstance(default_val, dict):
            for sub_key, sub_val in default_val.items():
                final_config[section].setdefault(sub_key, sub_val)

    logging.debug("Final configuration loaded successfully.")
    return final_config


# --- Logging Setup ---
LOG_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"


def _rotating_handler(filename: str, max_bytes: int, backups: int) -> Optional[logging.Handler]:
    try:
        return logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
        )
    except OSError as e_open:
        print(f"Cannot open log file '{filename}': {e_open}", file=sys.stderr)
        return None


def _setup_key_logger() -> None:
    KEY_LOGGER.propagate = False
    KEY_LOGGER.setLevel(logging.DEBUG)
    KEY_LOGGER.handlers = []
    handler = None
    if os.environ.get("RAW_PAD_KEYTRACE", "").lower() in {"1", "true", "yes"}:
        handler = _rotating_handler("keytrace.log", 1024 * 1024, 3)
    if handler is None:
        KEY_LOGGER.addHandler(logging.NullHandler())
        KEY_LOGGER.disabled = True
        return
    handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
    KEY_LOGGER.addHandler(handler)
    KEY_LOGGER.disabled = False
    logging.info("Key tracing on, writing to 'keytrace.log'.")


def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Routes log records according to the ``[logging]`` config section.

    Records at ``file_level`` and above go to a rotating ``log_file``
    (2 MB x 5). ``log_to_console`` adds a stderr handler at ``console_level``
    and ``separate_error_log`` adds a rotating *error.log* for ERROR and up.
    The ``raw_pad.keyevents`` logger is switched on only when the
    ``RAW_PAD_KEYTRACE`` environment variable is 1, true or yes.

    The root logger's handlers are replaced, so repeated calls are safe.
    """
    logging_config = (config or {}).get("logging", {})
    file_level = getattr(logging, str(logging_config.get("file_level", "DEBUG")).upper(), logging.DEBUG)

    log_filename = logging_config.get("log_file", "raw_pad.log")
    log_dir = os.path.dirname(log_filename)
    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError as e_mkdir:
            print(f"Cannot create log directory '{log_dir}': {e_mkdir}", file=sys.stderr)
            log_filename = os.path.join(tempfile.gettempdir(), "raw_pad.log")

    handlers = []
    file_handler = _rotating_handler(log_filename, 2 * 1024 * 1024, 5)
    if file_handler:
        file_handler.setLevel(file_level)
        handlers.append(file_handler)

    if logging_config.get("log_to_console", False):
        console_level = str(logging_config.get("console_level", "WARNING")).upper()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, console_level, logging.WARNING))
        handlers.append(console_handler)

    if logging_config.get("separate_error_log", False):
        error_handler = _rotating_handler("error.log", 1024 * 1024, 3)
        if error_handler:
            error_handler.setLevel(logging.ERROR)
            handlers.append(error_handler)

    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.handlers = []
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(file_level)

    _setup_key_logger()
    logging.info("Logging ready (level %s, %d handlers).", logging.getLevelName(file_level), len(handlers))


# ──────────────────────────── Global loggers ────────────────────────────
# Created at import time, unconfigured until setup_logging() runs.
logger = logging.getLogger("raw_pad")
KEY_LOGGER = logging.getLogger("raw_pad.keyevents")
