import os

import pytest

from lefthook.config.config import DEFAULT_SOURCE_DIR, DEFAULT_SOURCE_DIR_LOCAL, Config
from lefthook.config.load import ConfigNotFoundError, load
from lefthook.config.models import Command, ConfigError, Hook, Remote, Script
from lefthook.git.executor import CommandError, CommandExecutor
from lefthook.git.repository import Repository

REMOTES = ".git/info/lefthook-remotes"


class _FailingRunner:
    def run(self, args, root, stdin, stdout, stderr):
        raise CommandError("not available")


@pytest.fixture(autouse=True)
def _no_exclude_env(monkeypatch):
    monkeypatch.delenv("LEFTHOOK_EXCLUDE", raising=False)


def _repo(root):
    return Repository(
        git=CommandExecutor(_FailingRunner(), max_cmd_len=1000),
        root_path=str(root),
        info_path=os.path.join(str(root), ".git", "info"),
    )


def _write(root, files):
    for name, content in files.items():
        path = os.path.join(str(root), *name.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(content)


CASES = [
    pytest.param(
        {
            ".lefthook.yml": "pre-commit:\n  commands:\n    tests:\n      run: yarn test\n",
        },
        Config(hooks={"pre-commit": Hook(commands={"tests": Command(run="yarn test")})}),
        id="with .lefthook.yml",
    ),
    pytest.param(
        {
            "lefthook.yml": "pre-commit:\n  commands:\n    tests:\n      run: yarn test\n",
        },
        Config(hooks={"pre-commit": Hook(commands={"tests": Command(run="yarn test")})}),
        id="with lefthook.yml",
    ),
    pytest.param(
        {
            ".lefthook.yml": "pre-commit:\n  commands:\n    tests:\n      run: yarn test1\n",
            "lefthook.yml": "pre-commit:\n  commands:\n    tests:\n      run: yarn test2\n",
        },
        Config(hooks={"pre-commit": Hook(commands={"tests": Command(run="yarn test2")})}),
        id="with lefthook.yml and .lefthook.yml",
    ),
    pytest.param(
        {
            "lefthook.yml": "pre-commit:\n  commands:\n    tests:\n      run: yarn test\n",
            "lefthook-local.yml": (
                "post-commit:\n  commands:\n    ping-done:\n"
                "      run: curl -x POST status.com/done\n"
            ),
        },
        Config(
            hooks={
                "pre-commit": Hook(commands={"tests": Command(run="yarn test")}),
                "post-commit": Hook(
                    commands={"ping-done": Command(run="curl -x POST status.com/done")}
                ),
            }
        ),
        id="simple",
    ),
    pytest.param(
        {
            "lefthook.yml": """
min_version: 0.6.0
source_dir: $HOME/sources
source_dir_local: $HOME/sources_local

pre-commit:
  parallel: true
  commands:
    tests:
      run: bundle exec rspec
      tags: [backend, test]
    lint:
      run: bundle exec rubocop
      glob: "*.rb"
      tags: [backend, linter]
  scripts:
    "format.sh":
      runner: bash
""",
            "lefthook-local.yml": """
min_version: 1.0.0
colors: false

pre-commit:
  commands:
    tests:
      skip: true
    lint:
      run: docker exec -it ruby:2.7 {cmd}
  scripts:
    "format.sh":
      only: true

pre-push:
  commands:
    rubocop:
      run: bundle exec rubocop
      tags: [backend, linter]
""",
        },
        Config(
            min_version="1.0.0",
            colors=False,
            source_dir="$HOME/sources",
            source_dir_local="$HOME/sources_local",
            hooks={
                "pre-commit": Hook(
                    parallel=True,
                    commands={
                        "tests": Command(
                            skip=True, run="bundle exec rspec", tags=["backend", "test"]
                        ),
                        "lint": Command(
                            glob="*.rb",
                            run="docker exec -it ruby:2.7 bundle exec rubocop",
                            tags=["backend", "linter"],
                        ),
                    },
                    scripts={"format.sh": Script(only=True, runner="bash")},
                ),
                "pre-push": Hook(
                    commands={
                        "rubocop": Command(
                            run="bundle exec rubocop", tags=["backend", "linter"]
                        )
                    }
                ),
            },
        ),
        id="with overrides",
    ),
    pytest.param(
        {
            ".lefthook.yml": 'pre-push:\n  scripts:\n    "global-extend.sh":\n      runner: bash\n',
            ".lefthook-local.yml": (
                'pre-push:\n  scripts:\n    "local-extend.sh":\n      runner: bash\n'
            ),
        },
        Config(
            hooks={
                "pre-push": Hook(
                    scripts={
                        "global-extend.sh": Script(runner="bash"),
                        "local-extend.sh": Script(runner="bash"),
                    }
                )
            }
        ),
        id="with overrides from .lefthook-local.yml",
    ),
    pytest.param(
        {
            "lefthook.yml": 'pre-push:\n  scripts:\n    "global-extend":\n      runner: bash\n',
            ".lefthook-local.yml": (
                'pre-push:\n  scripts:\n    "local-extend":\n      runner: bash\n'
            ),
        },
        Config(
            hooks={
                "pre-push": Hook(
                    scripts={
                        "global-extend": Script(runner="bash"),
                        "local-extend": Script(runner="bash"),
                    }
                )
            }
        ),
        id="with overrides, dot, nodot",
    ),
    pytest.param(
        {
            "lefthook.yml": 'pre-push:\n  scripts:\n    "global-extend":\n      runner: bash\n',
            ".lefthook-local.yml": (
                'pre-push:\n  scripts:\n    "local-extend":\n      runner: bash1\n'
            ),
            "lefthook-local.yml": (
                'pre-push:\n  scripts:\n    "local-extend":\n      runner: bash2\n'
            ),
        },
        Config(
            hooks={
                "pre-push": Hook(
                    scripts={
                        "global-extend": Script(runner="bash"),
                        "local-extend": Script(runner="bash2"),
                    }
                )
            }
        ),
        id="with overrides, nodot has priority",
    ),
    pytest.param(
        {
            "lefthook.yml": """
tests:
  commands:
    tests:
      run: go test ./...

lints:
  scripts:
    "linter.sh":
      runner: bash
""",
        },
        Config(
            hooks={
                "tests": Hook(commands={"tests": Command(run="go test ./...")}),
                "lints": Hook(scripts={"linter.sh": Script(runner="bash")}),
            }
        ),
        id="with extra hooks",
    ),
    pytest.param(
        {
            "lefthook.yml": """
colors:
  yellow: '#FFE4B5'
  red: 196
tests:
  commands:
    tests:
      run: go test ./...
""",
            "lefthook-local.yml": 'lints:\n  scripts:\n    "linter.sh":\n      runner: bash\n',
        },
        Config(
            colors={"yellow": "#FFE4B5", "red": 196},
            hooks={
                "tests": Hook(commands={"tests": Command(run="go test ./...")}),
                "lints": Hook(scripts={"linter.sh": Script(runner="bash")}),
            },
        ),
        id="with extra hooks only in local config",
    ),
    pytest.param(
        {
            "lefthook.yml": "remote:\n  git_url: git@example.com:acme/lefthook\n",
            f"{REMOTES}/lefthook/lefthook.yml": """
pre-commit:
  commands:
    lint:
      run: yarn lint
  scripts:
    "test.sh":
      runner: bash
""",
        },
        Config(
            remotes=[Remote(git_url="git@example.com:acme/lefthook")],
            hooks={
                "pre-commit": Hook(
                    commands={"lint": Command(run="yarn lint")},
                    scripts={"test.sh": Script(runner="bash")},
                )
            },
        ),
        id="with remote",
    ),
    pytest.param(
        {
            "lefthook.yml": """
remote:
  git_url: git@example.com:acme/lefthook
  ref: v1.0.0
  config: examples/custom.yml

pre-commit:
  only:
    - ref: main
  commands:
    global:
      run: echo 'Global!'
    lint:
      run: this will be overwritten
""",
            f"{REMOTES}/lefthook-v1.0.0/examples/custom.yml": """
pre-commit:
  commands:
    lint:
      only:
        - merge
        - rebase
      run: yarn lint
  scripts:
    "test.sh":
      skip:
        - merge
      runner: bash
""",
        },
        Config(
            remotes=[
                Remote(
                    git_url="git@example.com:acme/lefthook",
                    ref="v1.0.0",
                    configs=["examples/custom.yml"],
                )
            ],
            hooks={
                "pre-commit": Hook(
                    only=[{"ref": "main"}],
                    commands={
                        "lint": Command(run="yarn lint", only=["merge", "rebase"]),
                        "global": Command(run="echo 'Global!'"),
                    },
                    scripts={"test.sh": Script(runner="bash", skip=["merge"])},
                )
            },
        ),
        id="with remote and custom config name",
    ),
    pytest.param(
        {
            "lefthook.yml": """
extends:
  - global-extend.yml

remote:
  git_url: https://example.com/acme/lefthook
  config: examples/config.yml

pre-push:
  commands:
    global:
      run: echo global
""",
            "lefthook-local.yml": """
extends:
  - local-extend.yml

pre-push:
  commands:
    local:
      run: echo local
""",
            "global-extend.yml": 'pre-push:\n  scripts:\n    "global-extend":\n      runner: bash\n',
            "local-extend.yml": 'pre-push:\n  scripts:\n    "local-extend":\n      runner: bash\n',
            f"{REMOTES}/lefthook/remote-extend.yml": (
                'pre-push:\n  scripts:\n    "remote-extend":\n      runner: bash\n'
            ),
            f"{REMOTES}/lefthook/examples/config.yml": """
extends:
  - ../remote-extend.yml

pre-push:
  commands:
    remote:
      run: echo remote
""",
        },
        Config(
            remotes=[
                Remote(
                    git_url="https://example.com/acme/lefthook",
                    configs=["examples/config.yml"],
                )
            ],
            extends=["local-extend.yml"],
            hooks={
                "pre-push": Hook(
                    commands={
                        "global": Command(run="echo global"),
                        "local": Command(run="echo local"),
                        "remote": Command(run="echo remote"),
                    },
                    scripts={
                        "global-extend": Script(runner="bash"),
                        "local-extend": Script(runner="bash"),
                        "remote-extend": Script(runner="bash"),
                    },
                )
            },
        ),
        id="with extends",
    ),
    pytest.param(
        {
            "lefthook.yml": """
extends:
  - global-extend.yml
pre-commit:
  parallel: true
  exclude_tags: [linter]
  commands:
    global-lint:
      run: bundle exec rubocop
      glob: "*.rb"
      tags: [backend, linter]
    global-other:
      run: bundle exec rubocop
      tags: [other]
""",
            "lefthook-local.yml": "pre-commit:\n  exclude_tags: [backend]\n",
            "global-extend.yml": """
pre-commit:
  exclude_tags: [test]
  commands:
    extended-tests:
      run: bundle exec rspec
      tags: [backend, test]
""",
        },
        Config(
            extends=["global-extend.yml"],
            hooks={
                "pre-commit": Hook(
                    parallel=True,
                    exclude_tags=["backend"],
                    commands={
                        "global-lint": Command(
                            run="bundle exec rubocop", tags=["backend", "linter"], glob="*.rb"
                        ),
                        "global-other": Command(run="bundle exec rubocop", tags=["other"]),
                        "extended-tests": Command(
                            run="bundle exec rspec", tags=["backend", "test"]
                        ),
                    },
                )
            },
        ),
        id="with extends and local",
    ),
    pytest.param(
        {
            "lefthook.yml": "extends:\n  - dir/*/config.yml\n",
            "dir/a/config.yml": "pre-commit:\n  commands:\n    a:\n      run: echo A\n",
            "dir/b/config.yml": "pre-commit:\n  commands:\n    b:\n      run: echo B\n",
            "dir/b/c/config.yml": "pre-commit:\n  commands:\n    c:\n      run: echo C\n",
        },
        Config(
            extends=["dir/*/config.yml"],
            hooks={
                "pre-commit": Hook(
                    commands={"a": Command(run="echo A"), "b": Command(run="echo B")}
                )
            },
        ),
        id="with glob in extends",
    ),
    pytest.param(
        {
            "lefthook.yml": """
pre-commit:
  only:
    - ref: main
  commands:
    global:
      run: echo 'Global!'
    lint:
      run: this will be overwritten
remotes:
  - git_url: https://example.com/acme/lefthook
    ref: v1.0.0
    config: examples/custom.yml
  - git_url: https://example.com/acme/lefthook
    configs:
      - examples/remote/ping.yml
    ref: v1.5.5
""",
            f"{REMOTES}/lefthook-v1.0.0/examples/custom.yml": """
pre-commit:
  commands:
    lint:
      only:
        - merge
        - rebase
      run: yarn lint
  scripts:
    "test.sh":
      skip:
        - merge
      runner: bash
""",
            f"{REMOTES}/lefthook-v1.5.5/examples/remote/ping.yml": (
                "pre-commit:\n  commands:\n    ping:\n      run: echo pong\n"
            ),
        },
        Config(
            remotes=[
                Remote(
                    git_url="https://example.com/acme/lefthook",
                    ref="v1.0.0",
                    configs=["examples/custom.yml"],
                ),
                Remote(
                    git_url="https://example.com/acme/lefthook",
                    ref="v1.5.5",
                    configs=["examples/remote/ping.yml"],
                ),
            ],
            hooks={
                "pre-commit": Hook(
                    only=[{"ref": "main"}],
                    commands={
                        "lint": Command(run="yarn lint", only=["merge", "rebase"]),
                        "ping": Command(run="echo pong"),
                        "global": Command(run="echo 'Global!'"),
                    },
                    scripts={"test.sh": Script(runner="bash", skip=["merge"])},
                )
            },
        ),
        id="with remotes, config and configs",
    ),
]


@pytest.mark.parametrize(("files", "expected"), CASES)
def test_load(tmp_path, files, expected):
    _write(tmp_path, files)
    assert load(_repo(tmp_path)) == expected


SIMPLE_EXPECTED = Config(
    source_dir=DEFAULT_SOURCE_DIR,
    source_dir_local=DEFAULT_SOURCE_DIR_LOCAL,
    hooks={"pre-commit": Hook(commands={"echo": Command(run="echo 1")})},
)


@pytest.mark.parametrize(
    ("name", "content"),
    [
        ("lefthook.yml", "pre-commit:\n  commands:\n    echo:\n      run: echo 1\n"),
        (
            "lefthook.json",
            '{\n  "pre-commit": {\n    "commands": {\n      "echo": { "run": "echo 1" }\n    }\n  }\n}',
        ),
        ("lefthook.toml", '[pre-commit.commands.echo]\nrun = "echo 1"\n'),
    ],
)
def test_load_formats(tmp_path, name, content):
    _write(tmp_path, {name: content})
    assert load(_repo(tmp_path)) == SIMPLE_EXPECTED


def test_missing_main_config(tmp_path):
    with pytest.raises(ConfigNotFoundError, match=r'\["lefthook" "\.lefthook"\]'):
        load(_repo(tmp_path))


def test_missing_local_config_is_fine(tmp_path):
    _write(tmp_path, {"lefthook.yml": "min_version: 1.2.3\n"})
    config = load(_repo(tmp_path))
    assert config.min_version == "1.2.3"
    assert config.hooks == {}


def test_recursive_extends(tmp_path):
    _write(
        tmp_path,
        {
            "lefthook.yml": "extends:\n  - a.yml\n",
            "a.yml": "extends:\n  - b.yml\n",
            "b.yml": "extends:\n  - a.yml\n",
        },
    )
    with pytest.raises(ConfigError, match="possible recursion in extends"):
        load(_repo(tmp_path))


def test_unknown_extend_extension(tmp_path):
    _write(tmp_path, {"lefthook.yml": "extends:\n  - extra.ini\n", "extra.ini": "x=1\n"})
    with pytest.raises(ConfigError, match="extra.ini"):
        load(_repo(tmp_path))


def test_invalid_yaml(tmp_path):
    _write(tmp_path, {"lefthook.yml": "pre-commit: [unclosed\n"})
    with pytest.raises(ConfigError):
        load(_repo(tmp_path))


def test_cmd_template_without_base_command(tmp_path):
    _write(
        tmp_path,
        {
            "lefthook.yml": "pre-commit:\n  commands:\n    a:\n      run: echo a\n",
            "lefthook-local.yml": "pre-commit:\n  commands:\n    b:\n      run: wrap {cmd}\n",
        },
    )
    hook = load(_repo(tmp_path)).hooks["pre-commit"]
    assert hook.commands["a"].run == "echo a"
    assert hook.commands["b"].run == "wrap "


def test_exclude_tags_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LEFTHOOK_EXCLUDE", "slow,flaky")
    _write(
        tmp_path,
        {"lefthook.yml": "pre-commit:\n  exclude_tags: [lint]\n  commands:\n    a:\n      run: a\n"},
    )
    hook = load(_repo(tmp_path)).hooks["pre-commit"]
    assert hook.exclude_tags == ["lint", "slow", "flaky"]


def test_remote_without_cloned_repository_is_skipped(tmp_path):
    _write(
        tmp_path,
        {
            "lefthook.yml": (
                "remotes:\n  - git_url: https://example.com/acme/hooks.git\n"
                "pre-commit:\n  commands:\n    a:\n      run: a\n"
            )
        },
    )
    config = load(_repo(tmp_path))
    assert config.remotes == [Remote(git_url="https://example.com/acme/hooks.git")]
    assert config.hooks == {"pre-commit": Hook(commands={"a": Command(run="a")})}