# src/minicam/scenario.py
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Sequence

import yaml

import minicam.events  # noqa: F401 - needed to register events
from minicam import logging
from minicam.agsector import build_ag_model
from minicam.config import Config, ConfigValidator
from minicam.core.pipeline import Pipeline
from minicam.errors import NonConvergenceError, StructuralError
from minicam.marketplace import Marketplace
from minicam.modeltime import ModelTime
from minicam.outputs import RegionOutput
from minicam.solver import IterationRecord, Solver, SolverResult
from minicam.status import PeriodStatus, ScenarioState
from minicam.structure import load_structure, merge_structures
from minicam.world import World

if TYPE_CHECKING:
    from minicam.results import ScenarioResults

__all__ = ["Scenario"]

log = logging.getLogger(__name__)


# helpers
# ---------------------------------------------------------------------------
def _read_yaml(obj: str | Path | Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a plain dict – {} if *obj* is None."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    p = Path(obj)
    with p.open("rt", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"config root must be mapping, got {type(data)!r}")
    return dict(data)


def _package_defaults() -> Dict[str, Any]:
    """Load minicam/defaults.yml"""
    txt = resources.files("minicam").joinpath("defaults.yml").read_text()
    return yaml.safe_load(txt) or {}


def _level(name: str) -> int:
    name = name.upper()
    if name == "DEEP_DEBUG":
        return logging.DEEP_DEBUG
    return int(getattr(logging, name))


# Scenario
# ---------------------------------------------------------------------
@dataclass(slots=True)
class Scenario:
    """
    One multi-period run: owns the calendar, markets, regions and solver.

    Build with `Scenario.init`, then advance with `step` or `run`.
    ``period`` is the next period to solve; ``statuses``, ``outputs``
    and ``traces`` hold one entry per committed period.
    """

    config: Config
    modeltime: ModelTime
    marketplace: Marketplace
    world: World
    solver: Solver
    pipeline: Pipeline
    period: int = 0
    state: ScenarioState = ScenarioState.NOT_STARTED
    statuses: list[PeriodStatus] = field(default_factory=list)
    outputs: list[tuple[RegionOutput, ...]] = field(default_factory=list)
    traces: list[tuple[IterationRecord, ...]] = field(default_factory=list)
    last_result: SolverResult | None = None
    setup_seconds: float = 0.0
    run_seconds: float = 0.0

    @classmethod
    def init(
        cls,
        structure: str | Path | Mapping[str, Any],
        config: str | Path | Mapping[str, Any] | None = None,
        add_ons: Sequence[str | Path | Mapping[str, Any]] = (),
        **overrides: Any,  # anything here wins last
    ) -> Scenario:
        """
        Build a Scenario from a structural tree.

        Order of precedence for configuration (later overrides earlier):

            1. package defaults  (minicam/defaults.yml)
            2. *config*  (Path / str / Mapping / None)
            3. explicit keyword arguments (**overrides)

        Parameters
        ----------
        structure : str, Path or Mapping
            Structural tree, or a YAML file holding one.
        config : str, Path, Mapping or None
            Run configuration overrides.
        add_ons : sequence
            Structure documents merged over *structure* before the build.

        Raises
        ------
        StructuralError
            If the structural tree is malformed.
        ValueError
            If the configuration is invalid.
        """
        started = time.perf_counter()

        cfg_dict: Dict[str, Any] = _package_defaults()
        cfg_dict.update(_read_yaml(config))
        cfg_dict.update(overrides)

        ConfigValidator.validate_config(cfg_dict)

        pipeline_path = cfg_dict.get("pipeline_path")
        if pipeline_path is not None:
            ConfigValidator.validate_pipeline_path(pipeline_path)
            ConfigValidator.validate_pipeline_yaml(pipeline_path)
            cfg_dict["pipeline_path"] = str(pipeline_path)

        cfg = Config(**cfg_dict)
        cls._configure_logging(cfg.logging)

        tree = merge_structures(load_structure(structure), *add_ons)
        scenario = cls._from_structure(tree, cfg)
        scenario.setup_seconds = time.perf_counter() - started
        log.info(
            "Scenario set up in %.3f s: %d periods, %d regions, %d markets",
            scenario.setup_seconds,
            scenario.modeltime.n_periods,
            len(scenario.world.regions),
            scenario.marketplace.n_markets,
        )
        return scenario

    @staticmethod
    def _configure_logging(log_config: Dict[str, Any]) -> None:
        """
        Configure logging levels for minicam loggers.

        Parameters
        ----------
        log_config : dict
            Logging configuration with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - events: dict[str, str] (per-event overrides)
        """
        default_level = log_config.get("default_level", "INFO")
        logging.getLogger("minicam").setLevel(_level(default_level))

        for event_name, level in log_config.get("events", {}).items():
            logger_name = f"minicam.events.{event_name}"
            logging.getLogger(logger_name).setLevel(_level(level))

    @classmethod
    def _from_structure(cls, tree: Mapping[str, Any], cfg: Config) -> Scenario:
        if "model_time" not in tree:
            raise StructuralError("structure needs a 'model_time' block")
        if not tree.get("regions"):
            raise StructuralError("structure needs at least one region")
        try:
            modeltime = ModelTime.from_mapping(tree["model_time"])
        except ValueError as exc:
            raise StructuralError(f"invalid model_time: {exc}") from None

        world = World.from_spec(tree["regions"], n_workers=cfg.n_workers)
        if cfg.ag_sector_active:
            ag_spec = tree.get("ag_model")
            if ag_spec is None:
                raise StructuralError(
                    "ag_sector_active requires an 'ag_model' block in the structure"
                )
            world.ag_model = build_ag_model(ag_spec)

        marketplace = Marketplace(modeltime.n_periods, default_price=cfg.initial_price)
        world.complete_init(marketplace, tree.get("markets") or ())

        pipeline = (
            Pipeline.from_yaml(cfg.pipeline_path)
            if cfg.pipeline_path is not None
            else Pipeline.default()
        )

        return cls(
            config=cfg,
            modeltime=modeltime,
            marketplace=marketplace,
            world=world,
            solver=Solver.from_config(cfg),
            pipeline=pipeline,
        )

    # public API
    # ---------------------------------------------------------------------
    @property
    def n_periods(self) -> int:
        return self.modeltime.n_periods

    @property
    def year(self) -> int:
        """Calendar year of the next period to solve."""
        return self.modeltime.per_to_yr(min(self.period, self.n_periods - 1))

    @property
    def completed(self) -> bool:
        return self.state is ScenarioState.COMPLETED

    def step(self) -> PeriodStatus:
        """
        Solve and commit exactly one period through the event pipeline.

        Returns
        -------
        PeriodStatus
            Status of the committed period.

        Raises
        ------
        RuntimeError
            If every period is already committed.
        NonConvergenceError
            If ``abort_on_nonconvergence`` is set and the period did not
            converge. The period is committed before the error is raised.
        """
        if self.completed:
            raise RuntimeError("scenario already completed; nothing left to step")

        self.state = ScenarioState.RUNNING
        n_committed = len(self.statuses)
        self.pipeline.execute(self)
        if len(self.statuses) != n_committed + 1:
            raise RuntimeError(
                f"pipeline did not commit period {self.period}; "
                "is commit_period missing from the pipeline?"
            )

        status = self.statuses[-1]
        self.period += 1
        if self.period >= self.n_periods:
            self.state = ScenarioState.COMPLETED

        if not status.converged and self.config.abort_on_nonconvergence:
            raise NonConvergenceError(status)
        return status

    def run(self) -> ScenarioResults:
        """
        Step through every remaining period.

        Returns
        -------
        ScenarioResults
            Read accessors over the committed periods.
        """
        started = time.perf_counter()
        try:
            while not self.completed:
                self.step()
        finally:
            self.world.close()
            self.run_seconds += time.perf_counter() - started
        n_failed = sum(not s.converged for s in self.statuses)
        log.info(
            "Scenario run finished in %.3f s (%d periods, %d not converged)",
            self.run_seconds, len(self.statuses), n_failed,
        )
        return self.results

    @property
    def results(self) -> ScenarioResults:
        from minicam.results import ScenarioResults

        return ScenarioResults(self)

    def config_dict(self) -> dict[str, Any]:
        return asdict(self.config)

    def __repr__(self) -> str:
        return (
            f"Scenario(state={self.state.value}, period={self.period}/"
            f"{self.n_periods}, markets={self.marketplace.n_markets})"
        )
