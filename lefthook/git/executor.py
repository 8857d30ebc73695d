"""Execution of git commands through a pluggable command runner."""

from __future__ import annotations

import io
import logging
import os
import sys
from collections.abc import Sequence
from typing import Protocol, TextIO

log = logging.getLogger(__name__)

_FALLBACK_MAX_CMD_LEN = 8191


class CommandError(Exception):
    """A command failed to run or exited unsuccessfully."""


class CommandRunner(Protocol):
    """Something that runs a command line; raises CommandError on failure."""

    def run(
        self,
        args: Sequence[str],
        root: str,
        stdin: TextIO,
        stdout: TextIO,
        stderr: TextIO,
    ) -> None:
        """Run ``args`` in directory ``root`` wiring the given streams."""
        ...


def _default_max_cmd_len() -> int:
    if sys.platform == "win32":
        return _FALLBACK_MAX_CMD_LEN
    try:
        value = os.sysconf("SC_ARG_MAX")
    except (AttributeError, ValueError, OSError):
        return _FALLBACK_MAX_CMD_LEN
    return value if value > 0 else _FALLBACK_MAX_CMD_LEN


def batch_by_length(items: Sequence[str], length: int) -> list[list[str]]:
    """Split items into consecutive batches whose summed lengths fit ``length``.

    An item longer than ``length`` on its own forms a batch by itself.
    """
    batches: list[list[str]] = []
    acc = 0
    prev = 0
    for i, item in enumerate(items):
        acc += len(item)
        if acc > length:
            if i == prev:
                batches.append(list(items[prev : i + 1]))
                prev = i + 1
            else:
                batches.append(list(items[prev:i]))
                prev = i
            acc = len(item)
    if acc > 0:
        batches.append(list(items[prev:]))
    return batches


class CommandExecutor:
    """Runs commands with a runner and post-processes their output."""

    def __init__(
        self,
        runner: CommandRunner,
        root: str = "",
        max_cmd_len: int | None = None,
    ) -> None:
        self.runner = runner
        self.root = root
        self.max_cmd_len = max_cmd_len if max_cmd_len is not None else _default_max_cmd_len()

    def cmd(self, args: Sequence[str]) -> str:
        """Run a command and return its output with surrounding whitespace trimmed."""
        return self._execute(args, self.root).strip()

    def batched_cmd(self, args: Sequence[str], extra: Sequence[str]) -> str:
        """Run a command with ``extra`` arguments split into batches fitting OS limits."""
        parts: list[str] = []
        for i, batch in enumerate(batch_by_length(extra, self.max_cmd_len - len(args))):
            try:
                out = self.cmd([*args, *batch])
            except CommandError as exc:
                raise CommandError(f"error in batch {i}: {exc}") from exc
            parts.append(out)
            parts.append("\n")
        return "".join(parts)

    def cmd_lines(self, args: Sequence[str]) -> list[str]:
        """Run a command and return its trimmed output split by newline."""
        return self._execute(args, self.root).strip().split("\n")

    def cmd_lines_within_folder(self, args: Sequence[str], folder: str) -> list[str]:
        """Like cmd_lines, but run inside ``folder`` relative to the root."""
        root = os.path.join(self.root, folder)
        if root:
            root = os.path.normpath(root)
        return self._execute(args, root).strip().split("\n")

    def _execute(self, args: Sequence[str], root: str) -> str:
        out = io.StringIO()
        err_out = io.StringIO()
        try:
            self.runner.run(list(args), root, io.StringIO(""), out, err_out)
        finally:
            log.debug("[lefthook] stdout: %s", out.getvalue())
            errors = err_out.getvalue()
            if errors:
                log.debug("[lefthook] stderr: %s", errors)
        return out.getvalue()