"""Git hook names known to lefthook and runner template helpers."""

from __future__ import annotations

CHECKSUM_FILE_NAME = "lefthook.checksum"
"""File that stores the checksum of the currently installed configuration."""

GHOST_HOOK_NAME = "prepare-commit-msg"
"""Hook whose logs are hidden and which is used to keep hooks in sync."""

AVAILABLE_HOOKS: tuple[str, ...] = (
    "applypatch-msg",
    "pre-applypatch",
    "post-applypatch",
    "pre-commit",
    "pre-merge-commit",
    "prepare-commit-msg",
    "commit-msg",
    "post-commit",
    "pre-rebase",
    "post-checkout",
    "post-merge",
    "pre-push",
    "pre-receive",
    "update",
    "proc-receive",
    "post-receive",
    "post-update",
    "reference-transaction",
    "push-to-checkout",
    "pre-auto-gc",
    "post-rewrite",
    "sendemail-validate",
    "fsmonitor-watchman",
    "p4-changelist",
    "p4-prepare-changelist",
    "p4-post-changelist",
    "p4-pre-submit",
    "post-index-change",
)
"""Hooks documented by git, in the order of the git documentation."""

_KNOWN_HOOKS = frozenset(AVAILABLE_HOOKS)

SUB_FILES = "{files}"
SUB_ALL_FILES = "{all_files}"
SUB_STAGED_FILES = "{staged_files}"
SUB_PUSH_FILES = "{push_files}"


def hook_uses_staged_files(hook: str) -> bool:
    """Return True if the hook works on staged files."""
    return hook == "pre-commit"


def hook_uses_push_files(hook: str) -> bool:
    """Return True if the hook works on files about to be pushed."""
    return hook == "pre-push"


def known_hook(hook: str) -> bool:
    """Return True if the name is one of the git hooks."""
    return hook in _KNOWN_HOOKS


def is_runner_files_compatible(runner: str) -> bool:
    """Return False if the runner mixes staged and push file substitutions."""
    return not (SUB_STAGED_FILES in runner and SUB_PUSH_FILES in runner)