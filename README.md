# lefthook

A library for working with Git hooks described in a declarative configuration file.
It loads and merges the configuration, decides whether hooks, commands and scripts
should be skipped, and wraps the git operations a hook manager needs.

The library never starts processes on its own. Every git command and every `run`
skip check goes through a `CommandRunner` that you supply.

## Modules

### `lefthook.hooks`

- `AVAILABLE_HOOKS` lists the git hook names in the order of the git documentation.
- `known_hook(hook)`, `hook_uses_staged_files(hook)` (true for `pre-commit`) and
  `hook_uses_push_files(hook)` (true for `pre-push`) classify hook names.
- `is_runner_files_compatible(runner)` is false when a run template uses both
  `{staged_files}` and `{push_files}`.

### `lefthook.git.executor`

- `CommandRunner` is a protocol with `run(args, root, stdin, stdout, stderr)`. An
  implementation runs the command, writes its output to the given streams and raises
  `CommandError` on failure.
- `CommandExecutor(runner, root="", max_cmd_len=None)` provides:
  - `cmd(args)`, which returns the trimmed output;
  - `cmd_lines(args)` and `cmd_lines_within_folder(args, folder)`, which return the
    output split into lines;
  - `batched_cmd(args, extra)`, which splits `extra` into batches that fit the
    command-line length limit.
- `batch_by_length(items, length)` does that splitting.

### `lefthook.git.lfs`

- `is_lfs_available()` reports whether `git-lfs` is on `PATH`.
- `is_lfs_hook(hook_name)` is true for `post-checkout`, `post-commit`, `post-merge`
  and `pre-push`.

### `lefthook.git.repository`

`Repository.open(executor)` queries git for the root, hooks, info and git-dir paths and
creates the info directory if it is missing. It logs a warning when git is older than
2.31.0. The repository then provides:

- File lists: `staged_files()`, `all_files()`, `push_files()`,
  `partially_staged_files()` and `files_by_command(command, folder)`.
- Unstaged changes: `save_unstaged(files)`, `hide_unstaged(files)`,
  `restore_unstaged()`, `stash_unstaged()`, `drop_unstaged_stash()` and
  `add_files(files)`.
- State: `branch()` reads `HEAD`. `state()` returns a cached `GitState(branch, state)`,
  where `state` is `""`, `"merge"`, `"rebase"` or `"merge-commit"`. `reset_state()`
  clears the cache.
- Remote config checkouts: `remotes_folder()`, `remote_folder(url, ref)` and
  `sync_remote(url, ref, force)`. `sync_remote` clones the repository, or fetches and
  pulls it if it is already there. `remote_directory_name(url, ref)` gives the
  directory name used for a checkout.

### `lefthook.config.skip`

`SkipChecker(runner).check(state, skip, only)` returns true when the item should be
skipped. `state` is a callable that returns a `GitState`. A `skip` or `only` value can
be:

- a boolean;
- a state name;
- a list whose entries are state names or mappings with a `ref` (a branch name or a
  glob such as `feat/*`) and/or a `run` shell check. The shell check passes when the
  runner succeeds.

### `lefthook.config.models`

The `Hook`, `Command`, `Script` and `Remote` dataclasses each have `from_dict` and
`to_dict`.

- `Command.validate()` and `Hook.validate()` raise `ConfigError`. `Hook.validate()`
  rejects a hook that sets both `piped` and `parallel`.
- `do_skip(state, runner)` applies the item's `skip` and `only` settings.
- `execution_priority()` returns the item's `priority`.
- `Remote.configured()` is true when `git_url` is set.

### `lefthook.config.config`

`Config` holds the merged configuration. Hooks appear as top-level keys of
`to_dict()`. It can be written out in several ways:

- `dumps(fmt)` and `dump(fmt, out)` serialise it in one of the `DumpFormat` values
  (`YAML`, `TOML`, `JSON`, `JSON_COMPACT`).
- `md5()` returns the MD5 checksum of the compact JSON form.

### `lefthook.config.load`

`load(repo)` reads the main config: `lefthook` or `.lefthook`, with the extension
`.yml`, `.yaml`, `.json` or `.toml`. It then merges in, in this order:

1. the files listed under `extends` (globs are allowed, and recursive extends are
   detected);
2. configs from remote checkouts (`remotes`, or the deprecated `remote`);
3. an optional local override, `lefthook-local` or `.lefthook-local`, together with
   its own `extends`.

In an override, `{cmd}` inside a command's `run` is replaced by the original command.
Tags in the `LEFTHOOK_EXCLUDE` environment variable (comma-separated) are added to
every hook's `exclude_tags`.

`load` raises `ConfigNotFoundError` if no main config exists, and `ConfigError` on bad
content.

## Example

```python
from lefthook.config.config import DumpFormat
from lefthook.config.load import load
from lefthook.git.executor import CommandExecutor
from lefthook.git.repository import Repository

repo = Repository.open(CommandExecutor(runner))  # runner implements CommandRunner
config = load(repo)
print(config.dumps(DumpFormat.YAML))
```

## What it does not do

This is a library only. The package does not provide:

- a command-line tool;
- writing or removing hook files in `.git/hooks`;
- executing the commands and scripts of a hook;
- self-updating.

It does not run git by itself either. You supply the `CommandRunner`.

## Installation and tests

```
pip install .[test]
pytest
```