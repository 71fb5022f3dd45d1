"""Tests for logging configuration and behavior."""

import logging

import pytest

from minicam import Scenario
from minicam.logging import DEEP_DEBUG, MiniCamLogger, getLogger

from tests.helpers.factories import linear_structure


class TestMiniCamLogger:
    """Test custom MiniCamLogger functionality."""

    def test_getlogger_returns_minicam_logger(self):
        logger = getLogger("test.minicam_logger")
        assert isinstance(logger, MiniCamLogger)
        assert callable(logger.deep)

    def test_deep_level_exists(self):
        """DEEP_DEBUG level should be registered."""
        assert DEEP_DEBUG == 5
        assert logging.getLevelName(DEEP_DEBUG) == "DEEP"

    def test_deep_logging_when_enabled(self, caplog):
        logger = getLogger("test.deep")
        logger.setLevel(DEEP_DEBUG)

        with caplog.at_level(DEEP_DEBUG, logger="test.deep"):
            logger.deep("iteration %d", 3)

        assert "iteration 3" in caplog.text

    def test_deep_logging_when_disabled(self, caplog):
        logger = getLogger("test.deep_disabled")
        logger.setLevel(logging.INFO)

        with caplog.at_level(logging.INFO, logger="test.deep_disabled"):
            logger.deep("Should not appear")

        assert "Should not appear" not in caplog.text

    def test_is_enabled_for_deep(self):
        logger = getLogger("test.enabled")

        logger.setLevel(logging.INFO)
        assert not logger.isEnabledFor(DEEP_DEBUG)

        logger.setLevel(DEEP_DEBUG)
        assert logger.isEnabledFor(DEEP_DEBUG)


class TestLoggingConfiguration:
    """Test logging configuration via Scenario.init()."""

    def test_default_log_level(self):
        Scenario.init(linear_structure())
        assert logging.getLogger("minicam").level == logging.INFO

    @pytest.mark.parametrize(
        "name, level",
        [
            ("DEBUG", logging.DEBUG),
            ("warning", logging.WARNING),
            ("DEEP_DEBUG", DEEP_DEBUG),
        ],
    )
    def test_set_default_level(self, name, level):
        Scenario.init(
            linear_structure(), logging={"default_level": name, "events": {}}
        )
        assert logging.getLogger("minicam").level == level

    def test_per_event_log_level_override(self):
        log_config = {
            "default_level": "INFO",
            "events": {"solve_markets": "DEBUG", "commit_period": "DEEP_DEBUG"},
        }
        Scenario.init(linear_structure(), logging=log_config)

        assert logging.getLogger("minicam.events.solve_markets").level == logging.DEBUG
        assert logging.getLogger("minicam.events.commit_period").level == DEEP_DEBUG

    def test_logging_from_yaml_config(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text(
            "logging:\n"
            "  default_level: WARNING\n"
            "  events:\n"
            "    derive_period_inputs: ERROR\n"
        )
        Scenario.init(linear_structure(), config=config_file)

        assert logging.getLogger("minicam").level == logging.WARNING
        assert (
            logging.getLogger("minicam.events.derive_period_inputs").level
            == logging.ERROR
        )

    def test_kwargs_override_yaml_logging(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("logging:\n  default_level: WARNING\n")
        Scenario.init(
            linear_structure(),
            config=config_file,
            logging={"default_level": "DEBUG"},
        )
        assert logging.getLogger("minicam").level == logging.DEBUG


class TestRunLogging:
    def test_nonconvergence_is_logged(self, caplog):
        from tests.helpers.factories import inelastic_structure

        scn = Scenario.init(inelastic_structure(n_periods=1), max_iterations=30)
        with caplog.at_level(logging.WARNING, logger="minicam"):
            scn.run()
        assert "NonConvergenceWarning" in caplog.text
        assert "r1:good" in caplog.text

    def test_deep_debug_traces_iterations(self, caplog):
        scn = Scenario.init(
            linear_structure(n_periods=1),
            logging={"default_level": "DEEP_DEBUG"},
        )
        with caplog.at_level(DEEP_DEBUG, logger="minicam"):
            scn.run()
        deep = [r for r in caplog.records if r.levelno == DEEP_DEBUG]
        assert deep
        assert all(r.name.startswith("minicam") for r in deep)

    def test_period_commit_is_logged_at_info(self, caplog):
        scn = Scenario.init(linear_structure(n_periods=1))
        with caplog.at_level(logging.INFO, logger="minicam"):
            scn.run()
        assert "Period 0 committed" in caplog.text
