"""Per-period event pipeline with explicit execution order."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from minicam.core.event import Event
from minicam.core.registry import get_event

if TYPE_CHECKING:
    from minicam.scenario import Scenario


@dataclass(slots=True)
class Pipeline:
    """
    Ordered list of events executed once per period.

    The default order is

        derive_period_inputs -> run_ag_submodel -> solve_markets -> commit_period

    and can be changed with `insert_after`, `remove` and `replace`, or
    loaded from YAML via `from_yaml`.

    Attributes
    ----------
    events : list[Event]
        Ordered list of event instances to execute.
    """

    events: list[Event] = field(default_factory=list)
    _event_map: dict[str, Event] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._event_map = {event.name: event for event in self.events}

    @classmethod
    def from_event_list(cls, event_names: list[str]) -> Pipeline:
        """
        Build pipeline from ordered list of event names.

        Raises
        ------
        KeyError
            If an event name is not found in the registry.
        """
        return cls(events=[get_event(name)() for name in event_names])

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> Pipeline:
        """
        Build pipeline from a YAML file with an ``events`` list.

        Raises
        ------
        ValueError
            If the file has no ``events`` key.
        """
        yaml_path = Path(yaml_path)
        with open(yaml_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        if "events" not in config:
            raise ValueError(f"YAML file must have 'events' key: {yaml_path}")

        return cls.from_event_list([str(spec).strip() for spec in config["events"]])

    @classmethod
    def default(cls) -> Pipeline:
        """Load the packaged ``default_pipeline.yml``."""
        traversable = resources.files("minicam") / "default_pipeline.yml"
        with resources.as_file(traversable) as yaml_fs_path:
            return cls.from_yaml(Path(yaml_fs_path))

    def execute(self, scenario: Scenario) -> None:
        """Execute all events in pipeline order."""
        for event in self.events:
            event.execute(scenario)

    def insert_after(self, after: str, event: Event | str) -> None:
        """
        Insert event after specified event.

        Raises
        ------
        ValueError
            If 'after' event not found in pipeline.
        """
        if after not in self._event_map:
            raise ValueError(f"Event '{after}' not found in pipeline")

        if isinstance(event, str):
            event = get_event(event)()

        idx = self.events.index(self._event_map[after])
        self.events.insert(idx + 1, event)
        self._event_map[event.name] = event

    def remove(self, event_name: str) -> None:
        """
        Remove event from pipeline.

        Raises
        ------
        ValueError
            If event not found in pipeline.
        """
        if event_name not in self._event_map:
            raise ValueError(f"Event '{event_name}' not found in pipeline")

        event = self._event_map.pop(event_name)
        self.events.remove(event)

    def replace(self, old_name: str, new_event: Event | str) -> None:
        """
        Replace event with another event.

        Raises
        ------
        ValueError
            If old event not found in pipeline.
        """
        if old_name not in self._event_map:
            raise ValueError(f"Event '{old_name}' not found in pipeline")

        if isinstance(new_event, str):
            new_event = get_event(new_event)()

        idx = self.events.index(self._event_map[old_name])
        self.events[idx] = new_event

        del self._event_map[old_name]
        self._event_map[new_event.name] = new_event

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def __len__(self) -> int:
        return len(self.events)

    def __repr__(self) -> str:
        return f"Pipeline(n_events={len(self.events)})"
