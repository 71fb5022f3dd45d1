"""Centralized configuration validation for MiniCAM Engine."""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any

import yaml


class ConfigValidator:
    """
    Centralized validation for scenario configuration.

    All validation happens once at Scenario.init() to ensure:
    - Known keys only
    - Type correctness
    - Valid parameter ranges
    - Relationship constraints between parameters
    """

    VALID_LOG_LEVELS = {"DEEP_DEBUG", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    VALID_SOLVER_METHODS = {"bisection", "newton_bisection"}

    KNOWN_KEYS = {
        "max_iterations",
        "tolerance",
        "bracket_interval",
        "solver_method",
        "initial_price",
        "ag_sector_active",
        "abort_on_nonconvergence",
        "n_workers",
        "record_trace",
        "pipeline_path",
        "logging",
    }

    @staticmethod
    def validate_config(cfg: dict[str, Any]) -> None:
        """
        Validate all configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ValueError
            If any validation check fails.
        """
        ConfigValidator._validate_keys(cfg)
        ConfigValidator._validate_types(cfg)
        ConfigValidator._validate_ranges(cfg)
        ConfigValidator._validate_relationships(cfg)

        if "logging" in cfg:
            ConfigValidator._validate_logging(cfg["logging"])

    @staticmethod
    def _validate_keys(cfg: dict[str, Any]) -> None:
        unknown = sorted(set(cfg) - ConfigValidator.KNOWN_KEYS)
        if unknown:
            raise ValueError(
                f"Unknown config parameter(s) {unknown}. "
                f"Known parameters: {sorted(ConfigValidator.KNOWN_KEYS)}"
            )

    @staticmethod
    def _validate_types(cfg: dict[str, Any]) -> None:
        """
        Ensure correct types for configuration parameters.

        Raises
        ------
        ValueError
            If any parameter has incorrect type.
        """
        int_params = ["max_iterations", "n_workers"]
        float_params = ["tolerance", "bracket_interval", "initial_price"]
        bool_params = ["ag_sector_active", "abort_on_nonconvergence", "record_trace"]

        # bool is a subclass of int, reject it explicitly
        for key in int_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, int):
                raise ValueError(
                    f"Config parameter '{key}' must be int, got {type(val).__name__}"
                )

        for key in float_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise ValueError(
                    f"Config parameter '{key}' must be float, got {type(val).__name__}"
                )

        for key in bool_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if not isinstance(val, bool):
                raise ValueError(
                    f"Config parameter '{key}' must be bool, got {type(val).__name__}"
                )

        if "solver_method" in cfg and not isinstance(cfg["solver_method"], str):
            raise ValueError(
                f"Config parameter 'solver_method' must be str, "
                f"got {type(cfg['solver_method']).__name__}"
            )

        if "pipeline_path" in cfg:
            val = cfg["pipeline_path"]
            if val is not None and not isinstance(val, (str, Path)):
                raise ValueError(
                    f"Config parameter 'pipeline_path' must be str or None, "
                    f"got {type(val).__name__}"
                )

        if "logging" in cfg and not isinstance(cfg["logging"], dict):
            raise ValueError(
                f"Config parameter 'logging' must be dict, "
                f"got {type(cfg['logging']).__name__}"
            )

    @staticmethod
    def _validate_ranges(cfg: dict[str, Any]) -> None:
        """
        Ensure parameters are in valid ranges.

        Raises
        ------
        ValueError
            If any parameter is out of valid range.
        """
        # (min, max, min_exclusive); None means unbounded
        constraints = {
            "max_iterations": (1, None, False),
            "n_workers": (1, None, False),
            "tolerance": (0.0, 1.0, True),
            "bracket_interval": (0.0, None, True),
            "initial_price": (0.0, None, False),
        }

        for key, (min_val, max_val, exclusive) in constraints.items():
            if key not in cfg or cfg[key] is None:
                continue
            val = cfg[key]

            if exclusive and val <= min_val:
                raise ValueError(
                    f"Config parameter '{key}' must be > {min_val}, got {val}"
                )
            if not exclusive and val < min_val:
                raise ValueError(
                    f"Config parameter '{key}' must be >= {min_val}, got {val}"
                )
            if max_val is not None and val > max_val:
                raise ValueError(
                    f"Config parameter '{key}' must be <= {max_val}, got {val}"
                )

        method = cfg.get("solver_method")
        if method is not None and method not in ConfigValidator.VALID_SOLVER_METHODS:
            raise ValueError(
                f"Invalid solver_method '{method}'. "
                f"Must be one of {sorted(ConfigValidator.VALID_SOLVER_METHODS)}"
            )

    @staticmethod
    def _validate_relationships(cfg: dict[str, Any]) -> None:
        """Warn about legal but suspicious parameter combinations."""
        tolerance = cfg.get("tolerance", 1e-8)
        if tolerance > 1e-3:
            warnings.warn(
                f"tolerance ({tolerance}) is loose. "
                "Cleared markets may carry a visible imbalance.",
                UserWarning,
                stacklevel=3,
            )

        max_iterations = cfg.get("max_iterations", 500)
        if max_iterations < 20:
            warnings.warn(
                f"max_iterations ({max_iterations}) leaves little room for "
                "bracketing and bisection. Periods may fail to converge.",
                UserWarning,
                stacklevel=3,
            )

        if cfg.get("initial_price") == 0:
            warnings.warn(
                "initial_price is 0. Markets whose excess demand is negative "
                "at the seed price cannot be bracketed.",
                UserWarning,
                stacklevel=3,
            )

    @staticmethod
    def _validate_logging(log_config: dict[str, Any]) -> None:
        """
        Validate logging configuration.

        Parameters
        ----------
        log_config : dict
            Logging configuration dictionary with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - events: dict[str, str] (per-event overrides)

        Raises
        ------
        ValueError
            If logging configuration is invalid.
        """
        if "default_level" in log_config:
            level = log_config["default_level"]
            if not isinstance(level, str):
                raise ValueError(
                    f"Logging default_level must be str, got {type(level).__name__}"
                )
            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

        if "events" in log_config:
            events = log_config["events"]
            if not isinstance(events, dict):
                raise ValueError(
                    f"Logging events must be dict, got {type(events).__name__}"
                )

            for event_name, level in events.items():
                if not isinstance(event_name, str):
                    raise ValueError(
                        f"Event name must be str, got {type(event_name).__name__}"
                    )
                if not isinstance(level, str):
                    raise ValueError(
                        f"Log level for event '{event_name}' must be str, "
                        f"got {type(level).__name__}"
                    )
                if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                    raise ValueError(
                        f"Invalid log level '{level}' for event '{event_name}'. "
                        f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                    )

    @staticmethod
    def validate_pipeline_path(pipeline_path: str | Path) -> None:
        """
        Validate that a custom pipeline file exists.

        Raises
        ------
        ValueError
            If the path does not exist or is not a file.
        """
        path = Path(pipeline_path)
        if not path.exists():
            raise ValueError(f"Pipeline path '{pipeline_path}' does not exist")
        if not path.is_file():
            raise ValueError(f"Pipeline path '{pipeline_path}' is not a file")
        if path.suffix not in {".yml", ".yaml"}:
            warnings.warn(
                f"Pipeline path '{pipeline_path}' does not have a YAML extension",
                UserWarning,
                stacklevel=3,
            )

    @staticmethod
    def validate_pipeline_yaml(yaml_path: str | Path) -> None:
        """
        Validate pipeline YAML structure and event references.

        Raises
        ------
        ValueError
            If the YAML structure is invalid or references unknown events.
        """
        from minicam.core.registry import list_events

        with open(Path(yaml_path), encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ValueError(
                f"Pipeline YAML must be a dictionary, got {type(config).__name__}"
            )
        if "events" not in config:
            raise ValueError(f"Pipeline YAML must have 'events' key: {yaml_path}")

        event_specs = config["events"]
        if not isinstance(event_specs, list):
            raise ValueError(
                f"Pipeline 'events' must be a list, got {type(event_specs).__name__}"
            )

        registered = set(list_events())
        for i, spec in enumerate(event_specs):
            if not isinstance(spec, str):
                raise ValueError(
                    f"Event spec at index {i} must be str, got {type(spec).__name__}"
                )
            if spec.strip() not in registered:
                raise ValueError(
                    f"Event '{spec}' not found in registry. "
                    f"Available events: {sorted(registered)}"
                )
