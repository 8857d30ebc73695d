"""Helpers for Git LFS integration."""

from __future__ import annotations

import shutil

LFS_REQUIRED_FILE = ".lfs-required"
LFS_CONFIG_FILE = ".lfsconfig"

LFS_HOOKS = frozenset({"post-checkout", "post-commit", "post-merge", "pre-push"})


def is_lfs_available() -> bool:
    """Return True if git-lfs is found on PATH."""
    return shutil.which("git-lfs") is not None


def is_lfs_hook(hook_name: str) -> bool:
    """Return True if the hook is one that Git LFS handles."""
    return hook_name in LFS_HOOKS