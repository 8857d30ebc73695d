"""The merged lefthook configuration and its serialisation."""

from __future__ import annotations

import enum
import hashlib
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TextIO

import tomli_w
import yaml

from lefthook.config.models import Hook, Remote

DEFAULT_SOURCE_DIR = ".lefthook"
DEFAULT_SOURCE_DIR_LOCAL = ".lefthook-local"

_YAML_INDENT = 2

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_JSON_ESCAPE_RE = re.compile("[<>&\u2028\u2029]")


class DumpFormat(enum.IntEnum):
    """Output formats of Config.dump."""

    YAML = 0
    TOML = 1
    JSON = 2
    JSON_COMPACT = 3


class _IndentedDumper(yaml.SafeDumper):
    """YAML dumper that indents sequences nested in mappings."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


def _sorted(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _sorted(item) for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_sorted(item) for item in value]
    return value


def _dump_json(data: dict[str, Any], pretty: bool) -> str:
    if pretty:
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    text = _JSON_ESCAPE_RE.sub(lambda found: _JSON_ESCAPES[found.group()], text)
    return text + "\n" if pretty else text


@dataclass
class Config:
    """Configuration merged from the main, local, extended and remote files."""

    min_version: str = ""
    source_dir: str = DEFAULT_SOURCE_DIR
    source_dir_local: str = DEFAULT_SOURCE_DIR_LOCAL
    rc: str = ""
    skip_output: Any = None
    output: Any = None
    extends: list[str] = field(default_factory=list)
    no_tty: bool = False
    assert_lefthook_installed: bool = False
    colors: Any = None
    skip_lfs: bool = False
    remote: Remote | None = None
    remotes: list[Remote] = field(default_factory=list)
    hooks: dict[str, Hook] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping with sorted keys; hooks appear as top-level keys."""
        res: dict[str, Any] = {}
        if self.min_version:
            res["min_version"] = self.min_version
        if self.source_dir != DEFAULT_SOURCE_DIR:
            res["source_dir"] = self.source_dir
        if self.source_dir_local != DEFAULT_SOURCE_DIR_LOCAL:
            res["source_dir_local"] = self.source_dir_local
        if self.rc:
            res["rc"] = self.rc
        if self.skip_output is not None:
            res["skip_output"] = _sorted(self.skip_output)
        if self.output is not None:
            res["output"] = _sorted(self.output)
        if self.extends:
            res["extends"] = list(self.extends)
        if self.no_tty:
            res["no_tty"] = True
        if self.assert_lefthook_installed:
            res["assert_lefthook_installed"] = True
        if self.colors is not None:
            res["colors"] = _sorted(self.colors)
        if self.skip_lfs:
            res["skip_lfs"] = True
        if self.remote is not None:
            res["remote"] = self.remote.to_dict()
        if self.remotes:
            res["remotes"] = [remote.to_dict() for remote in self.remotes]
        for name, hook in self.hooks.items():
            res[name] = hook.to_dict()
        return dict(sorted(res.items()))

    def dumps(self, fmt: DumpFormat = DumpFormat.YAML) -> str:
        """Serialise the configuration in the given format."""
        data = self.to_dict()
        if fmt is DumpFormat.TOML:
            return tomli_w.dumps(data)
        if fmt is DumpFormat.JSON:
            return _dump_json(data, pretty=True)
        if fmt is DumpFormat.JSON_COMPACT:
            return _dump_json(data, pretty=False)
        return yaml.dump(
            data,
            Dumper=_IndentedDumper,
            indent=_YAML_INDENT,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=2**31 - 1,
        )

    def dump(self, fmt: DumpFormat, out: TextIO) -> None:
        """Write the serialised configuration to ``out``."""
        out.write(self.dumps(fmt))

    def md5(self) -> str:
        """Hex MD5 checksum of the compact JSON form."""
        return hashlib.md5(self.dumps(DumpFormat.JSON_COMPACT).encode("utf-8")).hexdigest()