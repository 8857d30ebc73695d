"""Loading of the lefthook configuration from main, local, extended and remote files."""

from __future__ import annotations

import copy
import glob
import json
import logging
import os
import re
import tomllib
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import yaml

from lefthook.config.config import Config
from lefthook.config.models import ConfigError, Hook, Remote
from lefthook.git.repository import Repository
from lefthook.hooks import AVAILABLE_HOOKS

log = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "lefthook.yml"
CMD = "{cmd}"

MAIN_CONFIG_NAMES = ("lefthook", ".lefthook")
LOCAL_CONFIG_NAMES = ("lefthook-local", ".lefthook-local")
EXTENSIONS = (".yml", ".yaml", ".json", ".toml")

_HOOK_KEY_RE = re.compile(r"^(?P<hook>[^.]+)\.(scripts|commands)")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False", ""})

Tree = dict[str, Any]


class ConfigNotFoundError(ConfigError):
    """None of the expected configuration files exists."""


class _YamlLoader(yaml.SafeLoader):
    """Safe loader that only treats true/false spellings as booleans."""


_YamlLoader.yaml_implicit_resolvers = {
    key: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:bool"]
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_YamlLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _parse_yaml(text: str) -> Any:
    return yaml.load(text, Loader=_YamlLoader)  # noqa: S506 - loader derives from SafeLoader


_PARSERS = {
    ".yml": _parse_yaml,
    ".yaml": _parse_yaml,
    ".json": json.loads,
    ".toml": tomllib.loads,
}


def _string_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _string_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_string_keys(item) for item in value]
    return value


def _read_config(path: str) -> Tree:
    parser = _PARSERS.get(os.path.splitext(path)[1])
    if parser is None:
        raise ConfigError(f"unknown config file extension: {path}")
    with open(path, encoding="utf-8") as handle:
        text = handle.read()
    try:
        data = parser(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"failed to parse {path}: top level must be a mapping")
    return _string_keys(data)


def _merge(src: Mapping[str, Any], dest: Tree) -> None:
    """Merge ``src`` into ``dest`` recursively; values of ``src`` win."""
    for key, value in src.items():
        current = dest.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge(value, current)
        else:
            dest[key] = value


def _flat_keys(data: Mapping[str, Any], prefix: str = "") -> Iterator[str]:
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            yield from _flat_keys(value, path + ".")
        else:
            yield path


def _exists(data: Mapping[str, Any], path: str) -> bool:
    return any(key == path or key.startswith(path + ".") for key in _flat_keys(data))


def _cut(data: Mapping[str, Any], name: str) -> Tree:
    value = data.get(name)
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _strings(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if isinstance(value, list):
        return [item if isinstance(item, str) else str(item) for item in value]
    return []


def _as_str(name: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    raise ConfigError(f"'{name}' expected type 'string', got '{type(value).__name__}'")


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ConfigError(f"cannot parse '{name}' as bool: {value!r}")
    raise ConfigError(f"'{name}' expected type 'bool', got '{type(value).__name__}'")


def _as_str_list(name: str, value: Any) -> list[str]:
    if isinstance(value, list):
        return [_as_str(f"{name}[{i}]", item) for i, item in enumerate(value)]
    if isinstance(value, str):
        return value.split(",") if value else []
    if isinstance(value, Mapping):
        raise ConfigError(f"'{name}' expected type '[]string', got 'map'")
    return [_as_str(name, value)]


def _decode_remotes(value: Any) -> list[Remote]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [Remote.from_dict(value)]
    if isinstance(value, list):
        return [Remote.from_dict(item) for item in value]
    raise ConfigError(f"'remotes' expected a list, got '{type(value).__name__}'")


def _load_one(tree: Tree, root: str, names: Sequence[str]) -> None:
    for extension in EXTENSIONS:
        for name in names:
            path = os.path.join(root, name + extension)
            if os.path.exists(path):
                _merge(_read_config(path), tree)
                return
    quoted = " ".join(f'"{name}"' for name in names)
    raise ConfigNotFoundError(f'No config files with names [{quoted}] have been found in "{root}"')


def _extend(tree: Tree, root: str, extends: Sequence[str]) -> None:
    _extend_recursive(tree, root, extends, set())


def _extend_recursive(tree: Tree, root: str, extends: Sequence[str], visited: set[str]) -> None:
    for pattern in extends:
        if not os.path.isabs(pattern):
            pattern = os.path.normpath(os.path.join(root, pattern))
        for path in sorted(glob.glob(pattern, include_hidden=True)):
            if path in visited:
                raise ConfigError(
                    f"possible recursion in extends: path {path} is specified multiple times"
                )
            visited.add(path)
            extent = _read_config(path)
            _extend_recursive(extent, root, _strings(extent, "extends"), visited)
            _merge(extent, tree)


def _load_remotes(tree: Tree, repo: Repository, remotes: Sequence[Remote]) -> None:
    for remote in remotes:
        if not remote.configured():
            continue

        configs = list(remote.configs)
        if remote.config:
            configs.append(remote.config)
        if not configs:
            configs.append(DEFAULT_CONFIG_NAME)

        for config_name in configs:
            remote_path = repo.remote_folder(remote.git_url, remote.ref)
            config_path = os.path.normpath(os.path.join(remote_path, config_name))
            log.debug("Merging remote config: %s: %s", remote.git_url, config_path)
            if not os.path.exists(config_path):
                continue
            _merge(_read_config(config_path), tree)
            _extend(tree, os.path.dirname(config_path), _strings(tree, "extends"))

        # Drop extends so that remote extends are not applied again later.
        tree["extends"] = None


def _build_hook(name: str, main: Tree, secondary: Tree) -> Hook:
    dest = _cut(main, name)
    src = _cut(secondary, name)

    dest_runs: dict[str, str] = {}
    commands = dest.get("commands")
    if isinstance(commands, dict):
        dest_runs = {
            cmd_name: cmd["run"]
            for cmd_name, cmd in commands.items()
            if isinstance(cmd, dict) and isinstance(cmd.get("run"), str)
        }

    _merge(src, dest)

    if dest_runs:
        commands = dest.get("commands")
        if isinstance(commands, dict):
            for cmd_name, cmd in commands.items():
                if isinstance(cmd, dict) and isinstance(cmd.get("run"), str):
                    cmd["run"] = cmd["run"].replace(CMD, dest_runs.get(cmd_name, ""))

    hook = Hook.from_dict(dest)
    tags = os.environ.get("LEFTHOOK_EXCLUDE", "")
    if tags:
        hook.exclude_tags.extend(tags.split(","))
    return hook


def _decode_config(data: Mapping[str, Any], config: Config) -> None:
    for name in ("min_version", "source_dir", "source_dir_local", "rc"):
        if data.get(name) is not None:
            setattr(config, name, _as_str(name, data[name]))
    for name in ("skip_output", "output", "colors"):
        if data.get(name) is not None:
            setattr(config, name, data[name])
    for name in ("no_tty", "assert_lefthook_installed", "skip_lfs"):
        if data.get(name) is not None:
            setattr(config, name, _as_bool(name, data[name]))
    if data.get("extends") is not None:
        config.extends = _as_str_list("extends", data["extends"])
    if data.get("remote") is not None:
        config.remote = Remote.from_dict(data["remote"])
    if data.get("remotes") is not None:
        config.remotes = _decode_remotes(data["remotes"])


def _unmarshal_configs(main: Tree, secondary: Tree, config: Config) -> None:
    hooks: dict[str, Hook] = {}
    for name in AVAILABLE_HOOKS:
        if _exists(main, name) or _exists(secondary, name):
            hooks[name] = _build_hook(name, main, secondary)

    # Extra non-git hooks; these may also be added by the local config.
    for key in [*_flat_keys(main), *_flat_keys(secondary)]:
        found = _HOOK_KEY_RE.match(key)
        if found is None:
            continue
        name = found.group("hook")
        if name not in hooks:
            hooks[name] = _build_hook(name, main, secondary)

    config.hooks = hooks

    _merge(secondary, main)
    _decode_config(main, config)

    if config.remote is not None:
        log.warning(
            'DEPRECATED: "remote" option is deprecated and will be omitted in the next '
            'major release, use "remotes" option instead'
        )
        config.remotes.append(config.remote)
    config.remote = None

    for remote in config.remotes:
        if remote.config:
            log.warning(
                'DEPRECATED: "remotes"."config" option is deprecated and will be omitted '
                'in the next major release, use "configs" option instead'
            )
            remote.configs.append(remote.config)
        remote.config = ""


def load(repo: Repository) -> Config:
    """Load and merge the configuration of the repository.

    Raises ConfigNotFoundError if no main config exists and ConfigError on bad content.
    """
    root = repo.root_path

    main: Tree = {}
    _load_one(main, root, MAIN_CONFIG_NAMES)

    extends = _strings(main, "extends")
    remotes = _decode_remotes(main.get("remotes"))
    if main.get("remote") is not None:
        remotes.append(Remote.from_dict(main["remote"]))

    secondary: Tree = {}
    _extend(secondary, root, extends)
    _load_remotes(secondary, repo, remotes)

    try:
        _load_one(secondary, root, LOCAL_CONFIG_NAMES)
    except ConfigNotFoundError:
        pass

    local_extends = _strings(secondary, "extends")
    if local_extends and local_extends != extends:
        _extend(secondary, root, local_extends)

    config = Config()
    _unmarshal_configs(main, secondary, config)
    return config