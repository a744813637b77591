# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for gitmark tests.

Fixtures here are available to every test file automatically.
We keep them minimal: config files and a throwaway git repository builder.
"""

import shutil
import subprocess
import textwrap
from pathlib import Path
from typing import Callable, Optional

import pytest

History = list[tuple[str, dict[str, Optional[str]]]]


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """A small valid config YAML file that only touches a couple of fields."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          log_level: "DEBUG"
          text_width: 60
        marking:
          small_limit: 100
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (unknown key)."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          colour: "blue"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        [
            "git", "-C", str(repo),
            "-c", "user.name=gitmark-tests",
            "-c", "user.email=tests@gitmark.invalid",
            "-c", "commit.gpgsign=false",
            *args,
        ],
        check=True,
        capture_output=True,
        timeout=60,
    )


@pytest.fixture()
def make_repo(tmp_path: Path) -> Callable[[History], Path]:
    """
    Build a git repository from a list of (title, {path: content}) commits.

    A content of None deletes the path in that commit.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def _make(history: History) -> Path:
        repo = tmp_path / "repo"
        repo.mkdir()
        _git(repo, "init", "-q")
        for title, files in history:
            for path, content in files.items():
                if content is None:
                    _git(repo, "rm", "-q", path)
                    continue
                target = repo / path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
                _git(repo, "add", path)
            _git(repo, "commit", "-q", "--allow-empty", "-m", title)
        return repo

    return _make
