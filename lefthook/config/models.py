"""Configuration sections: hooks, commands, scripts and remotes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, Field, dataclass, field, fields
from typing import Any, TypeVar

from lefthook.config.skip import SkipChecker, StateGetter
from lefthook.git.executor import CommandRunner
from lefthook.hooks import is_runner_files_compatible


class ConfigError(Exception):
    """The configuration is invalid or cannot be decoded."""


_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False", ""})

_S = TypeVar("_S", bound="_Section")


def _unconvertible(name: str, expected: str, value: Any) -> ConfigError:
    return ConfigError(
        f"'{name}' expected type '{expected}', got unconvertible type "
        f"'{type(value).__name__}', value: '{value}'"
    )


def _to_str(name: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    raise _unconvertible(name, "string", value)


def _to_bool(name: str, value: Any) -> bool:
    if value is None:
        return False
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
    raise _unconvertible(name, "bool", value)


def _to_int(name: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value or "0", 0)
        except ValueError as exc:
            raise ConfigError(f"cannot parse '{name}' as int: {value!r}") from exc
    raise _unconvertible(name, "int", value)


def _to_str_list(name: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_to_str(f"{name}[{i}]", item) for i, item in enumerate(value)]
    if isinstance(value, Mapping):
        raise _unconvertible(name, "[]string", value)
    return [_to_str(name, value)]


def _to_str_map(name: str, value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise _unconvertible(name, "map[string]string", value)
    return {str(key): _to_str(f"{name}[{key}]", item) for key, item in value.items()}


def _field_default(f: Field[Any]) -> Any:
    if f.default is not MISSING:
        return f.default
    if f.default_factory is not MISSING:
        return f.default_factory()
    return None


def _convert(name: str, default: Any, value: Any) -> Any:
    if default is None:
        return value
    if isinstance(default, bool):
        return _to_bool(name, value)
    if isinstance(default, int):
        return _to_int(name, value)
    if isinstance(default, str):
        return _to_str(name, value)
    if isinstance(default, list):
        return _to_str_list(name, value)
    if isinstance(default, dict):
        return _to_str_map(name, value)
    return value


def _require_mapping(name: str, data: Any) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise _unconvertible(name, "map", data)
    return data


def _plain(value: Any) -> Any:
    if isinstance(value, _Section):
        return _encode_section(value)
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _is_empty(default: Any, value: Any) -> bool:
    if default is None:
        return value is None
    return not value


class _Section:
    """Marker base for configuration sections."""

    _ALWAYS: frozenset[str] = frozenset()
    _NESTED: frozenset[str] = frozenset()


def _decode_section(cls: type[_S], data: Any) -> _S:
    mapping = _require_mapping(cls.__name__.lower(), data)
    kwargs = {
        f.name: _convert(f.name, _field_default(f), mapping[f.name])
        for f in fields(cls)  # type: ignore[arg-type]
        if f.name in mapping and f.name not in cls._NESTED
    }
    return cls(**kwargs)


def _encode_section(section: _Section) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(section):  # type: ignore[arg-type]
        value = getattr(section, f.name)
        if f.name not in section._ALWAYS and _is_empty(_field_default(f), value):
            continue
        out[f.name] = _plain(value)
    return out


def _decode_sections(name: str, value: Any, cls: type[_S]) -> dict[str, _S]:
    mapping = _require_mapping(name, value)
    return {str(key): cls.from_dict(item) for key, item in mapping.items()}  # type: ignore[attr-defined]


@dataclass
class Command(_Section):
    """A shell command run by a hook."""

    run: str = ""
    files: str = ""
    skip: Any = None
    only: Any = None
    tags: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    file_types: list[str] = field(default_factory=list)
    glob: str = ""
    root: str = ""
    exclude: Any = None
    priority: int = 0
    fail_text: str = ""
    interactive: bool = False
    use_stdin: bool = False
    stage_fixed: bool = False

    _ALWAYS = frozenset({"run"})

    @classmethod
    def from_dict(cls, data: Any) -> Command:
        """Build the command from a parsed mapping, converting scalar types leniently."""
        return _decode_section(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the command, leaving out empty optional values."""
        return _encode_section(self)

    def validate(self) -> None:
        """Raise ConfigError if the run template mixes incompatible file lists."""
        if not is_runner_files_compatible(self.run):
            raise ConfigError("One of your runners contains incompatible file types")

    def do_skip(self, state: StateGetter, runner: CommandRunner) -> bool:
        """Return True if the command should be skipped in the given state."""
        return SkipChecker(runner).check(state, self.skip, self.only)

    def execution_priority(self) -> int:
        return self.priority


@dataclass
class Script(_Section):
    """A script file run by a hook through a runner."""

    runner: str = ""
    skip: Any = None
    only: Any = None
    tags: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    priority: int = 0
    fail_text: str = ""
    interactive: bool = False
    use_stdin: bool = False
    stage_fixed: bool = False

    _ALWAYS = frozenset({"runner"})

    @classmethod
    def from_dict(cls, data: Any) -> Script:
        """Build the script from a parsed mapping, converting scalar types leniently."""
        return _decode_section(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the script, leaving out empty optional values."""
        return _encode_section(self)

    def do_skip(self, state: StateGetter, runner: CommandRunner) -> bool:
        """Return True if the script should be skipped in the given state."""
        return SkipChecker(runner).check(state, self.skip, self.only)

    def execution_priority(self) -> int:
        return self.priority


@dataclass
class Hook(_Section):
    """A group of commands and scripts bound to one hook name."""

    commands: dict[str, Command] = field(default_factory=dict)
    scripts: dict[str, Script] = field(default_factory=dict)
    files: str = ""
    parallel: bool = False
    piped: bool = False
    follow: bool = False
    exclude_tags: list[str] = field(default_factory=list)
    skip: Any = None
    only: Any = None

    _NESTED = frozenset({"commands", "scripts"})

    @classmethod
    def from_dict(cls, data: Any) -> Hook:
        """Build the hook, its commands and scripts from a parsed mapping."""
        mapping = _require_mapping("hook", data)
        hook = _decode_section(cls, mapping)
        hook.commands = _decode_sections("commands", mapping.get("commands"), Command)
        hook.scripts = _decode_sections("scripts", mapping.get("scripts"), Script)
        return hook

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the hook, leaving out empty optional values."""
        return _encode_section(self)

    def validate(self) -> None:
        """Raise ConfigError if both 'piped' and 'parallel' are set."""
        if self.parallel and self.piped:
            raise ConfigError(
                "conflicting options 'piped' and 'parallel' are set to 'true', "
                "remove one of this option from hook group"
            )

    def do_skip(self, state: StateGetter, runner: CommandRunner) -> bool:
        """Return True if the whole hook should be skipped in the given state."""
        return SkipChecker(runner).check(state, self.skip, self.only)


@dataclass
class Remote(_Section):
    """A git repository that provides shared configuration."""

    git_url: str = ""
    ref: str = ""
    config: str = ""
    configs: list[str] = field(default_factory=list)
    refetch: bool = False
    refetch_frequency: str = ""

    _ALWAYS = frozenset({"git_url"})

    @classmethod
    def from_dict(cls, data: Any) -> Remote:
        """Build the remote from a parsed mapping, converting scalar types leniently."""
        return _decode_section(cls, data)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the remote, leaving out empty optional values."""
        return _encode_section(self)

    def configured(self) -> bool:
        """Return True if a repository URL is set."""
        return bool(self.git_url)