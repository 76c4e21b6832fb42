"""Shared pytest fixtures for syncfilter tests."""
from pathlib import Path
from typing import Callable, Union

import pytest

from syncfilter.infrastructure.logger import LogLevel, configure_logging
from syncfilter.rules.store import RuleList


@pytest.fixture
def rule_file(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a rule file and returning its path."""

    def _write(content: Union[str, bytes], name: str = "rules.txt") -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def make_rules() -> Callable[..., RuleList]:
    """Factory building a RuleList from raw patterns (exclude default)."""

    def _build(*patterns: str) -> RuleList:
        rules = RuleList()
        for pattern in patterns:
            rules.add(pattern)
        return rules

    return _build


@pytest.fixture
def home_dir(tmp_path: Path, monkeypatch) -> Path:
    """Isolated HOME without a CVSIGNORE variable."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("CVSIGNORE", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_log_level():
    """Reset log levels between tests."""
    yield
    configure_logging(LogLevel.WARNING)
