# tests/conftest.py
"""
Shared fixtures: the built-in catalog and single-rule linters.
"""

import logging

import pytest

from guardrules.catalog import default_catalog
from guardrules.config import LintConfig
from guardrules.engine import Linter


@pytest.fixture(scope="module")
def catalog():
    return default_catalog()


@pytest.fixture
def check():
    """Run only the named rules over a snippet.

    Usage: ``check(src, "timestamp-equality", types={"t": "time.Time"})``
    """

    def _check(src, *rules, types=None, filename="snippet.go"):
        config = LintConfig(enabled_rules=set(rules) if rules else None)
        return Linter(config=config).check_source(src, filename, types)

    return _check


@pytest.fixture
def fix():
    """Apply the named rules' suggestions to a snippet."""

    def _fix(src, *rules, types=None):
        config = LintConfig(enabled_rules=set(rules) if rules else None)
        return Linter(config=config).fix_source(src, "snippet.go", types)

    return _fix


@pytest.fixture(autouse=True)
def _reset_guardrules_logger():
    """The CLI attaches a handler per call; drop them between tests."""
    yield
    logger = logging.getLogger("guardrules")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
