"""Core infrastructure: event registry and per-period pipeline."""

from typing import Any, Callable

from minicam.core.decorators import event as event_decorator
from minicam.core.event import Event
from minicam.core.pipeline import Pipeline
from minicam.core.registry import (
    get_demand_function,
    get_event,
    get_production_function,
    get_share_rule,
    list_demand_functions,
    list_events,
    list_production_functions,
    list_share_rules,
)

# importing minicam.core.event binds the submodule to ``event``; restore the
# decorator under its public name
event: Callable[..., Any] = event_decorator

__all__ = [
    "Event",
    "event",
    "Pipeline",
    "get_demand_function",
    "get_event",
    "get_production_function",
    "get_share_rule",
    "list_demand_functions",
    "list_events",
    "list_production_functions",
    "list_share_rules",
]
