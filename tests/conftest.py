"""Shared pytest fixtures for distarchive tests."""
import os
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

from distarchive.infrastructure.logger import Logger, LogLevel, set_global_logger


def _write_tree(root: Path, files: Dict[str, Optional[str]]) -> Path:
    """Create files (str content) and directories (None) below ``root``."""
    for relative, content in files.items():
        path = root / relative
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
    return root


@pytest.fixture(autouse=True)
def quiet_logger():
    """Route core debug logging to a silent global logger."""
    logger = Logger(name="distarchive", level=LogLevel.DEBUG, handlers=[])
    set_global_logger(logger)
    yield logger
    set_global_logger(None)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep DISTARCHIVE_* variables and the host's system config out of tests."""
    for key in list(os.environ):
        if key.startswith("DISTARCHIVE_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(
        "distarchive.infrastructure.config_manager.SYSTEM_CONFIG_FILE",
        str(tmp_path / "etc" / "distarchive" / "config.yaml"),
    )


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for a test."""
    return tmp_path


@pytest.fixture
def write_tree() -> Callable[[Path, Dict[str, Optional[str]]], Path]:
    """Helper that lays out a directory tree from a mapping."""
    return _write_tree


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """A small plugin project with a .distignore file."""
    source = temp_dir / "hello-world"
    _write_tree(
        source,
        {
            "hello-world.php": "<?php\n/**\n * Plugin Name: Hello World\n * Version: 1.2.3\n */\n",
            "readme.txt": "Hello",
            "debug.log": "log",
            "includes/class-hello.php": "<?php",
            "includes/trace.log": "log",
            "node_modules/lodash/index.js": "module.exports = {};",
            "node_modules/lodash/package.json": "{}",
            ".git/HEAD": "ref: refs/heads/main",
            ".distignore": ".git\nnode_modules\n*.log\n.distignore\n",
        },
    )
    return source


@pytest.fixture
def chdir(tmp_path: Path):
    """Run the test from inside ``tmp_path``."""
    old = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(old)
