"""
Shared pytest fixtures for the xcontext test suite.

Every test runs with an isolated git environment (no global excludes file,
no system config) so the walker only sees ignore files the test creates.

Usage in tests:
    def test_something(make_project):
        root = make_project({"src/main.py": "print(1)\\n"})

    def test_with_sample(sample_project):
        # sample_project comes with sources, docs, ignored and binary files
        result = gather(sample_project, Config())
"""

import logging

import pytest


SAMPLE_FILES = {
    ".git/HEAD": "ref: refs/heads/main\n",
    ".gitignore": "*.log\nignored_dir/\n",
    "README.md": "# Sample\n",
    "docs/guide.md": "Guide\n",
    "src/main.py": "print('hi')\n",
    "src/util.py": "def f():\n    return 1\n",
    "src/debug.log": "log line\n",
    "ignored_dir/secret.py": "x = 1\n",
    "node_modules/pkg/index.js": "module.exports = 1\n",
    "Cargo.lock": "lock\n",
    "LICENSE": "MIT\n",
    "data.bin": b"\xff\xfe\x00\x81",
    "empty.txt": "",
}


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path_factory, monkeypatch):
    """Point git at empty config so host ignore files never leak in."""
    home = tmp_path_factory.mktemp("home")
    gitconfig = home / "gitconfig"
    gitconfig.write_text("")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / "config"))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("PROJECT_ROOT", raising=False)


@pytest.fixture(autouse=True)
def restore_root_log_level():
    """The CLI sets the root logger level; put it back after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


@pytest.fixture
def make_project(tmp_path):
    """
    Return a function that writes a file mapping under a fresh project dir.

    Values may be str (written as UTF-8) or bytes.
    """
    counter = {"n": 0}

    def _make(files, name=None):
        counter["n"] += 1
        root = tmp_path / (name or f"project{counter['n']}")
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def sample_project(make_project):
    """
    A small git project exercising every selection path.

    - src/*.py: source
    - README.md, docs/guide.md: docs
    - src/debug.log, ignored_dir/: gitignored
    - node_modules/: common built-in ignore
    - Cargo.lock, LICENSE: source built-in ignores (still in the tree)
    - data.bin: not UTF-8, dropped from source silently
    - empty.txt: empty source file
    """
    return make_project(SAMPLE_FILES, name="sample")
