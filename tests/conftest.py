"""Pytest configuration for the WordLang test suite."""

import sys
from pathlib import Path

import pytest

# Add src directory to path so the suite runs from a checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from wordlang import parse  # noqa: E402
from wordlang.runtime import RunResult, run  # noqa: E402


@pytest.fixture
def run_source():
    """Parse and run a WordLang program, returning its RunResult."""

    def _run(source: str, stdin: str = "", **kwargs) -> RunResult:
        return run(parse(source), stdin=stdin, **kwargs)

    return _run
