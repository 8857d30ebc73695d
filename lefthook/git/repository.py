"""A git repository: file lists, stashing of unstaged changes, state and remotes."""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field

from lefthook.git.executor import CommandError, CommandExecutor

log = logging.getLogger(__name__)

MIN_GIT_VERSION = "2.31.0"
STASH_MESSAGE = "lefthook auto backup"
UNSTAGED_PATCH_NAME = "lefthook-unstaged.patch"
REMOTES_FOLDER = "lefthook-remotes"

_INFO_DIR_MODE = 0o775
_REMOTES_FOLDER_MODE = 0o755
_MIN_STATUS_LEN = 3

STATE_NIL = ""
STATE_MERGE = "merge"
STATE_MERGE_COMMIT = "merge-commit"
STATE_REBASE = "rebase"

_RE_HEAD_BRANCH = re.compile(r"HEAD -> (?P<name>.*)$")
_RE_VERSION = re.compile(r"\d+\.\d+\.\d+")
_RE_REF_BRANCH = re.compile(r"^ref:\s*refs/heads/(.+)$")
_RE_STASH = re.compile(r"^(?P<stash>[^ ]+):\s*" + re.escape(STASH_MESSAGE))

_CMD_PUSH_FILES_BASE = ("git", "diff", "--name-only", "HEAD", "@{push}")
_CMD_PUSH_FILES_HEAD = ("git", "diff", "--name-only", "HEAD")
_CMD_STAGED_FILES = ("git", "diff", "--name-only", "--cached", "--diff-filter=ACMR")
_CMD_STATUS_SHORT = ("git", "status", "--short", "--porcelain")
_CMD_LIST_STASH = ("git", "stash", "list")
_CMD_ROOT_PATH = ("git", "rev-parse", "--path-format=absolute", "--show-toplevel")
_CMD_HOOKS_PATH = ("git", "rev-parse", "--path-format=absolute", "--git-path", "hooks")
_CMD_INFO_PATH = ("git", "rev-parse", "--path-format=absolute", "--git-path", "info")
_CMD_GIT_PATH = ("git", "rev-parse", "--path-format=absolute", "--git-dir")
_CMD_ALL_FILES = ("git", "ls-files", "--cached")
_CMD_CREATE_STASH = ("git", "stash", "create")
_CMD_STAGE_FILES = ("git", "add")
_CMD_REMOTES = ("git", "branch", "--remotes")
_CMD_HIDE_UNSTAGED = ("git", "checkout", "--force", "--")
_CMD_EMPTY_TREE_SHA = ("git", "hash-object", "-t", "tree", "/dev/null")
_CMD_GIT_VERSION = ("git", "version")
_CMD_PARENT_COMMITS = ("git", "show", "--no-patch", '--format="%P"')
_CMD_SAVE_UNSTAGED = (
    "git",
    "diff",
    "--binary",
    "--unified=0",
    "--no-color",
    "--no-ext-diff",
    "--src-prefix=a/",
    "--dst-prefix=b/",
    "--patch",
    "--submodule=short",
    "--output",
)


@dataclass(frozen=True)
class GitState:
    """Current branch and operation (merge, rebase, ...) of a repository."""

    branch: str = ""
    state: str = STATE_NIL


def _version_tuple(value: str) -> tuple[int, ...]:
    return tuple(int(part) for part in value.split("."))


def _go_ext(path: str) -> str:
    """Extension of the last path element, including a leading dot-only name."""
    start = path.rfind(os.sep) + 1
    dot = path.rfind(".", start)
    return path[dot:] if dot != -1 else ""


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip(os.sep)
    if not stripped:
        return os.sep
    return stripped.rsplit(os.sep, 1)[-1]


def remote_directory_name(url: str, ref: str) -> str:
    """Directory name under which a remote config repository is stored."""
    ext = _go_ext(url)
    trimmed = url[: -len(ext)] if ext and url.endswith(ext) else url
    name = _base_name(trimmed)
    if ref:
        name = f"{name}-{ref}"
    return name


@dataclass
class Repository:
    """A git repository operated through a command executor."""

    git: CommandExecutor
    root_path: str = ""
    hooks_path: str = ""
    git_path: str = ""
    info_path: str = ""
    empty_tree_sha: str = ""
    _head_branch: str = field(default="", init=False, repr=False)
    _state: GitState | None = field(default=None, init=False, repr=False)

    @classmethod
    def open(cls, git: CommandExecutor) -> Repository:
        """Discover the repository paths with git; raises CommandError if not in a repository."""
        try:
            version_out = git.cmd(_CMD_GIT_VERSION)
        except CommandError:
            pass
        else:
            found = _RE_VERSION.search(version_out)
            if found is None:
                log.debug("[lefthook] version check warning: unknown git version")
            elif _version_tuple(found.group(0)) < _version_tuple(MIN_GIT_VERSION):
                log.warning(
                    "Git version is too old. Minimum supported version is %s",
                    MIN_GIT_VERSION,
                )

        root_path = git.cmd(_CMD_ROOT_PATH)
        hooks_path = git.cmd(_CMD_HOOKS_PATH)
        info_path = os.path.normpath(git.cmd(_CMD_INFO_PATH))
        if not os.path.isdir(info_path):
            os.mkdir(info_path, _INFO_DIR_MODE)
        git_path = git.cmd(_CMD_GIT_PATH)

        try:
            empty_tree_sha = git.cmd(_CMD_EMPTY_TREE_SHA)
        except CommandError:
            log.debug("Couldn't get empty tree SHA value, not critical")
            empty_tree_sha = ""

        git.root = root_path
        return cls(
            git=git,
            root_path=root_path,
            hooks_path=hooks_path,
            git_path=git_path,
            info_path=info_path,
            empty_tree_sha=empty_tree_sha,
        )

    @property
    def unstaged_patch_path(self) -> str:
        return os.path.join(self.info_path, UNSTAGED_PATCH_NAME)

    # Files

    def staged_files(self) -> list[str]:
        """Files staged for commit."""
        return self.files_by_command(_CMD_STAGED_FILES, "")

    def all_files(self) -> list[str]:
        """All files tracked by git."""
        return self.files_by_command(_CMD_ALL_FILES, "")

    def push_files(self) -> list[str]:
        """Files changed between HEAD and what is about to be pushed."""
        try:
            return self.files_by_command(_CMD_PUSH_FILES_BASE, "")
        except CommandError:
            pass

        if not self._head_branch:
            for branch in self.git.cmd_lines(_CMD_REMOTES):
                found = _RE_HEAD_BRANCH.search(branch)
                if found:
                    self._head_branch = found.group("name")
                    break

        # Nothing has been pushed yet or upstream is not set.
        if not self._head_branch:
            self._head_branch = self.empty_tree_sha

        return self.files_by_command([*_CMD_PUSH_FILES_HEAD, self._head_branch], "")

    def partially_staged_files(self) -> list[str]:
        """Files that have both staged and unstaged changes."""
        result = []
        for line in self.git.cmd_lines(_CMD_STATUS_SHORT):
            if len(line) < _MIN_STATUS_LEN:
                continue
            index, working_tree = line[0], line[1]
            filename = line[3:]
            arrow = filename.find("->")
            if arrow != -1:
                filename = filename[arrow + 3 :]
            if index not in " ?" and working_tree not in " ?" and filename:
                result.append(filename)
        return result

    def files_by_command(self, command: Sequence[str], folder: str) -> list[str]:
        """Run a git command and return the listed paths that are regular files."""
        lines = self.git.cmd_lines_within_folder(command, folder)
        files = []
        for line in lines:
            name = line.strip()
            if name and self._is_file(name):
                files.append(name)
        return files

    def _is_file(self, path: str) -> bool:
        if not path.startswith(self.root_path):
            path = os.path.join(self.root_path, path)
        try:
            return not os.path.isdir(os.stat(path).st_mode and path)
        except FileNotFoundError:
            return False

    # Unstaged changes

    def save_unstaged(self, files: Sequence[str]) -> None:
        """Save the unstaged changes of files into a patch."""
        self.git.batched_cmd([*_CMD_SAVE_UNSTAGED, self.unstaged_patch_path, "--"], files)

    def hide_unstaged(self, files: Sequence[str]) -> None:
        """Discard the unstaged changes of files from the working tree."""
        self.git.batched_cmd(_CMD_HIDE_UNSTAGED, files)

    def restore_unstaged(self) -> None:
        """Apply the saved patch of unstaged changes, then remove it."""
        patch = self.unstaged_patch_path
        if not os.path.exists(patch):
            return

        if os.path.getsize(patch) > 0:
            try:
                self.git.cmd(
                    [
                        "git",
                        "apply",
                        "-v",
                        "--whitespace=nowarn",
                        "--recount",
                        "--unidiff-zero",
                        patch,
                    ]
                )
            except CommandError as exc:
                raise CommandError(f"couldn't apply the patch {patch}: {exc}") from exc

        try:
            os.remove(patch)
        except OSError as exc:
            raise OSError(f"couldn't remove the patch {patch}: {exc}") from exc

    def stash_unstaged(self) -> None:
        """Store a backup stash of the working tree."""
        stash_hash = self.git.cmd(_CMD_CREATE_STASH)
        self.git.cmd(["git", "stash", "store", "--quiet", "--message", STASH_MESSAGE, stash_hash])

    def drop_unstaged_stash(self) -> None:
        """Drop every backup stash made by stash_unstaged."""
        for line in reversed(self.git.cmd_lines(_CMD_LIST_STASH)):
            found = _RE_STASH.match(line)
            if found and found.group("stash"):
                self.git.cmd(["git", "stash", "drop", "--quiet", found.group("stash")])

    def add_files(self, files: Sequence[str]) -> None:
        """Stage the given files."""
        if files:
            self.git.batched_cmd(_CMD_STAGE_FILES, files)

    # State

    def reset_state(self) -> None:
        """Forget the cached state so the next call to state() recomputes it."""
        self._state = None

    def state(self) -> GitState:
        """Current branch and operation; computed once and cached."""
        if self._state is not None:
            return self._state

        branch = self.branch()
        if self._in_merge_state():
            kind = STATE_MERGE
        elif self._in_rebase_state():
            kind = STATE_REBASE
        elif self._in_merge_commit_state():
            kind = STATE_MERGE_COMMIT
        else:
            kind = STATE_NIL
        self._state = GitState(branch=branch, state=kind)
        return self._state

    def branch(self) -> str:
        """Name of the checked-out branch, or an empty string."""
        head_file = os.path.join(self.git_path, "HEAD")
        try:
            with open(head_file, encoding="utf-8", errors="replace") as head:
                for line in head:
                    found = _RE_REF_BRANCH.match(line.rstrip("\r\n"))
                    if found:
                        return found.group(1)
        except OSError:
            return ""
        return ""

    def _in_merge_state(self) -> bool:
        return os.path.exists(os.path.join(self.git_path, "MERGE_HEAD"))

    def _in_rebase_state(self) -> bool:
        return os.path.exists(os.path.join(self.git_path, "rebase-merge")) or os.path.exists(
            os.path.join(self.git_path, "rebase-apply")
        )

    def _in_merge_commit_state(self) -> bool:
        try:
            parents = self.git.cmd(_CMD_PARENT_COMMITS)
        except CommandError:
            return False
        return " " in parents

    # Remotes

    def remotes_folder(self) -> str:
        """Folder holding cloned remote config repositories."""
        return os.path.join(self.info_path, REMOTES_FOLDER)

    def remote_folder(self, url: str, ref: str) -> str:
        """Folder of a particular remote config repository."""
        return os.path.join(self.remotes_folder(), remote_directory_name(url, ref))

    def sync_remote(self, url: str, ref: str, force: bool) -> None:
        """Clone the remote config repository, or update it if already cloned."""
        remotes_path = self.remotes_folder()
        os.makedirs(remotes_path, mode=_REMOTES_FOLDER_MODE, exist_ok=True)

        directory_name = remote_directory_name(url, ref)
        remote_path = os.path.join(remotes_path, directory_name)

        if force:
            if os.path.isdir(remote_path) and not os.path.islink(remote_path):
                shutil.rmtree(remote_path)
            elif os.path.lexists(remote_path):
                os.remove(remote_path)
        elif os.path.exists(remote_path):
            self._update_remote(remote_path, ref)
            return

        self._clone_remote(remotes_path, directory_name, url, ref)

    def _update_remote(self, path: str, ref: str) -> None:
        log.debug("Updating remote config repository: %s", path)
        if ref:
            self.git.cmd(["git", "-C", path, "fetch", "--quiet", "--depth", "1", "origin", ref])
            self.git.cmd(["git", "-C", path, "checkout", "FETCH_HEAD"])
        else:
            self.git.cmd(["git", "-C", path, "pull", "--quiet"])

    def _clone_remote(self, dest: str, directory_name: str, url: str, ref: str) -> None:
        log.debug("Cloning remote config repository: %s/%s", dest, directory_name)
        command = ["git", "-C", dest, "clone", "--quiet", "--origin", "origin", "--depth", "1"]
        if ref:
            command += ["--branch", ref]
        command += [url, directory_name]
        self.git.cmd(command)