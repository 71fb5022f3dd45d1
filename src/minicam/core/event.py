"""Event base class definition."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from minicam.scenario import Scenario


def _camel_to_snake(name: str) -> str:
    """Convert CamelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


@dataclass(slots=True)
class Event(ABC):
    """
    Base class for the steps a Scenario runs once per period.

    An Event reads and mutates the Scenario it is handed (marketplace,
    world, solver bookkeeping). Events are executed by the Pipeline in
    the exact order specified.

    Notes
    -----
    Events are registered automatically via ``__init_subclass__``.
    Without an explicit ``name`` the class name is converted to
    snake_case (``SolveMarkets`` -> ``solve_markets``).
    """

    name: ClassVar[str] = ""

    def __init_subclass__(cls, name: str = "", **kwargs: Any) -> None:
        super(Event, cls).__init_subclass__(**kwargs)

        # @dataclass(slots=True) creates a new class and triggers this hook
        # a second time without the custom name
        if name != "":
            cls.name = name
        elif cls.name == "":
            cls.name = _camel_to_snake(cls.__name__)

        from minicam.core.registry import _EVENT_REGISTRY

        _EVENT_REGISTRY[cls.name] = cls

    def get_logger(self) -> logging.Logger:
        """
        Get logger for this event with per-event log level applied.

        Logger name format: ``minicam.events.{event_name}``. Levels are
        configured through the ``logging.events`` config key.
        """
        return logging.getLogger(f"minicam.events.{self.name}")

    @abstractmethod
    def execute(self, scenario: Scenario) -> None:
        """
        Execute the event's logic for ``scenario.period``.

        Parameters
        ----------
        scenario : Scenario
            The scenario being stepped. All mutations are in-place.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
