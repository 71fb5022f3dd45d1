"""Immutable calendar of simulation periods."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

__all__ = ["ModelTime"]


@dataclass(slots=True, frozen=True)
class ModelTime:
    """
    Period index <-> calendar year mapping.

    Periods are numbered ``0 .. n_periods - 1`` in increasing year order.
    Timesteps may vary between periods.

    Parameters
    ----------
    years : tuple[int, ...]
        Calendar year of each period, strictly increasing.

    Examples
    --------
    >>> mt = ModelTime.from_range(1975, 2005, 15)
    >>> mt.years
    (1975, 1990, 2005)
    >>> mt.yr_to_per(1990)
    1
    """

    years: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.years) == 0:
            raise ValueError("ModelTime needs at least one period")
        for prev, nxt in zip(self.years, self.years[1:]):
            if nxt <= prev:
                raise ValueError(
                    f"ModelTime years must be strictly increasing, got {prev} -> {nxt}"
                )

    @classmethod
    def from_range(cls, start_year: int, end_year: int, timestep: int) -> ModelTime:
        """Evenly spaced periods from *start_year* through *end_year*."""
        if timestep <= 0:
            raise ValueError(f"timestep must be positive, got {timestep}")
        if end_year < start_year:
            raise ValueError(
                f"end_year ({end_year}) must not precede start_year ({start_year})"
            )
        return cls(tuple(range(int(start_year), int(end_year) + 1, int(timestep))))

    @classmethod
    def from_years(cls, years: Sequence[int]) -> ModelTime:
        return cls(tuple(int(y) for y in years))

    @classmethod
    def from_mapping(cls, spec: Mapping[str, Any]) -> ModelTime:
        """
        Build from a ``model_time`` block of the structural tree.

        Accepts either ``{"years": [...]}`` or
        ``{"start_year": ..., "end_year": ..., "timestep": ...}``.
        """
        if "years" in spec:
            return cls.from_years(spec["years"])
        try:
            return cls.from_range(
                int(spec["start_year"]), int(spec["end_year"]), int(spec["timestep"])
            )
        except KeyError as exc:
            raise ValueError(
                f"model_time needs 'years' or start_year/end_year/timestep; "
                f"missing {exc.args[0]!r}"
            ) from None

    @property
    def n_periods(self) -> int:
        return len(self.years)

    @property
    def start_year(self) -> int:
        return self.years[0]

    @property
    def end_year(self) -> int:
        return self.years[-1]

    def periods(self) -> Iterator[int]:
        return iter(range(self.n_periods))

    def per_to_yr(self, period: int) -> int:
        """Calendar year of *period*."""
        if not 0 <= period < self.n_periods:
            raise IndexError(
                f"period {period} out of range [0, {self.n_periods - 1}]"
            )
        return self.years[period]

    def yr_to_per(self, year: int) -> int:
        """Period index of calendar *year* (must be a modeled year)."""
        try:
            return self.years.index(int(year))
        except ValueError:
            raise ValueError(f"{year} is not a modeled year: {self.years}") from None

    def timestep(self, period: int) -> int:
        """
        Years covered by *period*.

        The first period reuses the step to the second one (0 for a
        single-period calendar).
        """
        self.per_to_yr(period)
        if period == 0:
            return self.years[1] - self.years[0] if self.n_periods > 1 else 0
        return self.years[period] - self.years[period - 1]

    def __len__(self) -> int:
        return self.n_periods
