# src/minicam/core/decorators.py
"""
Decorator for simplified Event definition.

Instead of:

    from dataclasses import dataclass
    from minicam.core import Event

    @dataclass(slots=True)
    class SolveMarkets(Event):
        def execute(self, scenario): ...

You can write:

    @event
    class SolveMarkets:
        def execute(self, scenario): ...

Or with a custom name:

    @event(name="solve")
    class SolveMarkets:
        def execute(self, scenario): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def event(
    cls: type[T] | None = None,
    *,
    name: str | None = None,
    **dataclass_kwargs: Any,
) -> type[T] | Callable[[type[T]], type[T]]:
    """
    Define an Event with automatic inheritance and dataclass.

    Parameters
    ----------
    cls : type | None
        The class to decorate (provided automatically when used without parens).
    name : str | None
        Registry name. Defaults to the snake_case class name.
    **dataclass_kwargs : Any
        Passed to ``@dataclass``; ``slots=True`` unless overridden.

    Notes
    -----
    - No need to inherit from Event explicitly (the decorator adds it)
    - Registration happens through ``Event.__init_subclass__``
    - frozen=True is not supported (Event base class is not frozen)
    """
    from minicam.core.event import Event

    dataclass_kwargs.setdefault("slots", True)

    def decorator(cls: type[T]) -> type[T]:
        if not issubclass(cls, Event):
            # rebuild on Event alone so slots work without multiple inheritance
            namespace: dict[str, Any] = {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__doc__": cls.__doc__,
                "__annotations__": getattr(cls, "__annotations__", {}),
            }
            for attr_name in dir(cls):
                if not attr_name.startswith("__"):
                    namespace[attr_name] = getattr(cls, attr_name)
            if name is not None:
                namespace["name"] = name
            cls = type(cls.__name__, (Event,), namespace)
        elif name is not None:
            cls.name = name  # type: ignore[attr-defined]

        return dataclass(**dataclass_kwargs)(cls)

    if cls is None:
        return decorator
    return decorator(cls)
