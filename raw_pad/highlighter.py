# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Regex-based syntax highlighting.

Highlighting is a fold over the registered rules: each rule rewrites the
output of the previous one, wrapping every match in an ANSI color escape.
Later rules therefore see (and may match across) the escape codes inserted
by earlier rules. Rule order is part of the configuration's meaning, so this
compounding is kept as is; write patterns that cannot match escape bytes.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Pattern

RESET = "\x1b[0m"

ANSI_COLORS: Dict[str, str] = {
    "default": "\x1b[39m",
    "black": "\x1b[30m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
    "white": "\x1b[37m",
    "bright_black": "\x1b[90m",
    "bright_red": "\x1b[91m",
    "bright_green": "\x1b[92m",
    "bright_yellow": "\x1b[93m",
    "bright_blue": "\x1b[94m",
    "bright_magenta": "\x1b[95m",
    "bright_cyan": "\x1b[96m",
    "bright_white": "\x1b[97m",
}


class HighlightRuleError(ValueError):
    """Raised when a highlight rule cannot be registered."""


def ansi_color(color: str) -> str:
    """
    Resolves a color name (``"blue"``, ``"bright_black"``…) to its SGR escape.

    Strings that already start with ESC are returned unchanged.

    Raises:
        HighlightRuleError: For an unknown color name.
    """
    if not isinstance(color, str):
        raise HighlightRuleError(f"Color must be a string, got {color!r}")
    if color.startswith("\x1b"):
        return color
    try:
        return ANSI_COLORS[color.lower()]
    except KeyError:
        raise HighlightRuleError(f"Unknown color '{color}'") from None


@dataclass(frozen=True)
class HighlightRule:
    pattern: Pattern[str]
    color: str


class SyntaxHighlighter:
    """Ordered list of highlight rules applied as successive rewrites of a line."""

    def __init__(self) -> None:
        self._rules: List[HighlightRule] = []

    @property
    def rules(self) -> List[HighlightRule]:
        return list(self._rules)

    def add_rule(self, pattern: str, color: str) -> HighlightRule:
        """
        Compiles `pattern` and appends it with `color` to the rule list.

        Args:
            pattern (str): Regular expression to colorize.
            color (str): Color name or raw escape sequence.

        Returns:
            HighlightRule: The registered rule.

        Raises:
            HighlightRuleError: If the pattern does not compile or the color
                is unknown.
        """
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise HighlightRuleError(f"Invalid pattern {pattern!r}: {exc}") from exc
        rule = HighlightRule(compiled, ansi_color(color))
        self._rules.append(rule)
        return rule

    def highlight(self, line: str) -> str:
        """
        Returns `line` with every rule applied in registration order.

        Each pass scans the output of the previous pass left to right for
        non-overlapping, non-empty matches and wraps them as ``color + match + RESET``;
        text between matches is copied unchanged.
        """
        result = line
        for rule in self._rules:
            pieces = []
            last_end = 0
            for match in rule.pattern.finditer(result):
                start, end = match.span()
                if start == end:
                    continue
                pieces.append(result[last_end:start])
                pieces.append(rule.color)
                pieces.append(match.group())
                pieces.append(RESET)
                last_end = end
            pieces.append(result[last_end:])
            result = "".join(pieces)
        return result


def build_highlighter(patterns: Iterable[Dict[str, Any]]) -> SyntaxHighlighter:
    """
    Builds a highlighter from ``[syntax_highlighting.<lang>]`` config entries.

    Args:
        patterns: Iterable of ``{"pattern": str, "color": str}`` tables.

    Raises:
        HighlightRuleError: If an entry is malformed or a rule fails to register.
    """
    highlighter = SyntaxHighlighter()
    for rule in patterns:
        try:
            pattern, color = rule["pattern"], rule["color"]
        except (KeyError, TypeError) as exc:
            raise HighlightRuleError(f"Malformed highlight rule {rule!r}") from exc
        highlighter.add_rule(pattern, color)
    logging.debug("build_highlighter: %d rules registered.", len(highlighter.rules))
    return highlighter
