from __future__ import annotations

import logging

import pytest

from microgrid_lab.logging_config import PACKAGE_LOGGER, _determine_level, get_logger, set_level


@pytest.fixture
def restore_level():
    package = logging.getLogger(PACKAGE_LOGGER)
    original = package.level
    yield package
    package.setLevel(original)


def test_module_loggers_sit_under_the_package_hierarchy():
    logger = get_logger("microgrid_lab.core.optimizer.engine")
    assert logger.getEffectiveLevel() == logging.getLogger(PACKAGE_LOGGER).getEffectiveLevel()


def test_set_level_changes_only_the_package_logger(restore_level):
    root_level = logging.getLogger().level
    assert set_level("debug")
    assert restore_level.level == logging.DEBUG
    assert get_logger("microgrid_lab.solution_store").isEnabledFor(logging.DEBUG)
    assert logging.getLogger().level == root_level


def test_unknown_level_names_are_rejected(restore_level):
    before = restore_level.level
    assert not set_level("chatty")
    assert restore_level.level == before


@pytest.mark.parametrize(
    "value, expected",
    [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("", logging.INFO), ("nope", logging.INFO)],
)
def test_environment_level(monkeypatch, value, expected):
    monkeypatch.setenv("MICROGRID_LOG_LEVEL", value)
    assert _determine_level() == expected
