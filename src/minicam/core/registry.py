"""Registry system for period events and node strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from minicam.errors import StructuralError

if TYPE_CHECKING:
    from minicam.core.event import Event
    from minicam.strategies import DemandFunction, ProductionFunction, ShareRule

# Global registry storage
_EVENT_REGISTRY: dict[str, type[Event]] = {}
_PRODUCTION_REGISTRY: dict[str, type[ProductionFunction]] = {}
_DEMAND_REGISTRY: dict[str, type[DemandFunction]] = {}
_SHARE_RULE_REGISTRY: dict[str, type[ShareRule]] = {}


def get_event(name: str) -> type[Event]:
    """
    Retrieve an event class from the registry by name.

    Raises
    ------
    KeyError
        If the event name is not found in the registry.
    """
    if name not in _EVENT_REGISTRY:
        available = ", ".join(sorted(_EVENT_REGISTRY.keys()))
        raise KeyError(
            f"Event '{name}' not found in registry. Available events: {available}"
        )
    return _EVENT_REGISTRY[name]


def _lookup(registry: dict[str, type], what: str, kind: str) -> type:
    if kind not in registry:
        available = ", ".join(sorted(registry.keys()))
        raise StructuralError(
            f"Unknown {what} kind '{kind}'. Available kinds: {available}"
        )
    return registry[kind]


def get_production_function(kind: str) -> type[ProductionFunction]:
    """Retrieve a production function class by kind (``StructuralError`` if unknown)."""
    return _lookup(_PRODUCTION_REGISTRY, "production function", kind)


def get_demand_function(kind: str) -> type[DemandFunction]:
    """Retrieve a demand function class by kind (``StructuralError`` if unknown)."""
    return _lookup(_DEMAND_REGISTRY, "demand function", kind)


def get_share_rule(kind: str) -> type[ShareRule]:
    """Retrieve a share rule class by kind (``StructuralError`` if unknown)."""
    return _lookup(_SHARE_RULE_REGISTRY, "share rule", kind)


def list_events() -> list[str]:
    """Return sorted list of all registered event names."""
    return sorted(_EVENT_REGISTRY.keys())


def list_production_functions() -> list[str]:
    return sorted(_PRODUCTION_REGISTRY.keys())


def list_demand_functions() -> list[str]:
    return sorted(_DEMAND_REGISTRY.keys())


def list_share_rules() -> list[str]:
    return sorted(_SHARE_RULE_REGISTRY.keys())


def clear_registry() -> None:
    """
    Clear all registrations (useful for testing).

    WARNING: This is a destructive operation. Only use in test teardown.
    """
    _EVENT_REGISTRY.clear()
    _PRODUCTION_REGISTRY.clear()
    _DEMAND_REGISTRY.clear()
    _SHARE_RULE_REGISTRY.clear()
