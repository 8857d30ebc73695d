"""Evaluation of ``skip`` and ``only`` options against the repository state."""

from __future__ import annotations

import functools
import io
import logging
import re
import sys
from collections.abc import Callable, Mapping
from typing import Any

from lefthook.git.executor import CommandError, CommandRunner
from lefthook.git.repository import GitState

log = logging.getLogger(__name__)

StateGetter = Callable[[], GitState]


@functools.lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a branch glob: ``*``, ``?``, ``[...]``, ``[!...]`` and ``{a,b}``."""
    out: list[str] = []
    depth = 0
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        i += 1
        if char == "\\":
            if i >= n:
                raise ValueError(f"bad glob pattern {pattern!r}: unexpected end")
            out.append(re.escape(pattern[i]))
            i += 1
        elif char == "*":
            while i < n and pattern[i] == "*":
                i += 1
            out.append(".*")
        elif char == "?":
            out.append(".")
        elif char == "[":
            end = pattern.find("]", i)
            if end == -1:
                raise ValueError(f"bad glob pattern {pattern!r}: unclosed '['")
            body = pattern[i:end]
            i = end + 1
            negate = body.startswith("!")
            if negate:
                body = body[1:]
            if not body:
                raise ValueError(f"bad glob pattern {pattern!r}: empty character class")
            escaped = "".join("\\" + ch if ch in "\\^[]" else ch for ch in body)
            out.append(f"[{'^' if negate else ''}{escaped}]")
        elif char == "{":
            depth += 1
            out.append("(?:")
        elif char == "}" and depth:
            depth -= 1
            out.append(")")
        elif char == "," and depth:
            out.append("|")
        else:
            out.append(re.escape(char))
    if depth:
        raise ValueError(f"bad glob pattern {pattern!r}: unclosed '{{'")
    try:
        return re.compile("".join(out), re.DOTALL)
    except re.error as exc:
        raise ValueError(f"bad glob pattern {pattern!r}: {exc}") from exc


class SkipChecker:
    """Decides whether a hook, command or script should be skipped."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def check(self, state: StateGetter, skip: Any, only: Any) -> bool:
        """Return True if ``skip`` matches or ``only`` is set and does not match."""
        if skip is not None and self.matches(state, skip):
            return True
        if only is not None:
            return not self.matches(state, only)
        return False

    def matches(self, state: StateGetter, value: Any) -> bool:
        """Return True if a skip/only value applies to the current state."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value == state().state
        if isinstance(value, (list, tuple)):
            return self._matches_list(state, value)
        return False

    def _matches_list(self, state: StateGetter, items: list[Any] | tuple[Any, ...]) -> bool:
        for item in items:
            if isinstance(item, str):
                if item == state().state:
                    return True
            elif isinstance(item, Mapping):
                if self._matches_ref(state, item) or self._matches_command(item):
                    return True
        return False

    @staticmethod
    def _matches_ref(state: StateGetter, item: Mapping[str, Any]) -> bool:
        ref = item.get("ref")
        if not isinstance(ref, str):
            return False
        branch = state().branch
        if ref == branch:
            return True
        return _compile_glob(ref).fullmatch(branch) is not None

    def _matches_command(self, item: Mapping[str, Any]) -> bool:
        command_line = item.get("run")
        if not isinstance(command_line, str):
            return False
        result = self._execute(command_line)
        log.debug("[lefthook] skip/only cmd: %s, result: %s", command_line, result)
        return result

    def _execute(self, command_line: str) -> bool:
        if not command_line:
            return False
        if sys.platform == "win32":
            args = ["powershell", "-Command", command_line]
        else:
            args = ["sh", "-c", command_line]
        try:
            self.runner.run(args, "", io.StringIO(""), io.StringIO(), sys.stderr)
        except (CommandError, OSError):
            return False
        return True