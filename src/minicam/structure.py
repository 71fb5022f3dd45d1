"""
Structural tree input.

A structural tree is a mapping (or a YAML file holding one) with the
blocks ``model_time``, ``markets``, ``regions`` and optionally
``ag_model``. Add-on documents are merged over a reference tree before
the scenario is built: mappings merge key by key, and lists of named
entries (regions, sectors, subsectors, technologies) merge by ``name``;
markets merge by ``(region, good)``. Any other value is replaced.

Examples
--------
>>> base = {"regions": [{"name": "usa", "gdp": [1, 2]}]}
>>> merge_structures(base, {"regions": [{"name": "usa", "gdp": [1, 3]}]})
{'regions': [{'name': 'usa', 'gdp': [1, 3]}]}
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

__all__ = ["load_structure", "merge_structures"]


def load_structure(obj: str | Path | Mapping[str, Any]) -> dict[str, Any]:
    """Return a deep copy of *obj*, reading YAML when given a path."""
    if isinstance(obj, Mapping):
        return copy.deepcopy(dict(obj))
    p = Path(obj)
    with p.open("rt", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"structure root must be mapping, got {type(data)!r}")
    return dict(data)


def _entry_key(entry: Any) -> Any:
    if not isinstance(entry, Mapping):
        return None
    if "name" in entry:
        return ("name", entry["name"])
    if "good" in entry and "region" in entry:
        return ("market", entry["region"], entry["good"])
    return None


def _merge_lists(base: list[Any], overlay: list[Any]) -> list[Any]:
    keys = [_entry_key(e) for e in base]
    if any(k is None for k in keys) or any(_entry_key(e) is None for e in overlay):
        return copy.deepcopy(overlay)

    merged = list(base)
    position = {k: i for i, k in enumerate(keys)}
    for entry in overlay:
        key = _entry_key(entry)
        if key in position:
            merged[position[key]] = _merge(merged[position[key]], entry)
        else:
            position[key] = len(merged)
            merged.append(copy.deepcopy(entry))
    return merged


def _merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        out = dict(base)
        for key, value in overlay.items():
            out[key] = _merge(base[key], value) if key in base else copy.deepcopy(value)
        return out
    if isinstance(base, list) and isinstance(overlay, list):
        return _merge_lists(base, overlay)
    return copy.deepcopy(overlay)


def merge_structures(
    base: Mapping[str, Any], *add_ons: str | Path | Mapping[str, Any]
) -> dict[str, Any]:
    """Merge every add-on over *base*, in order."""
    out: dict[str, Any] = copy.deepcopy(dict(base))
    for add_on in add_ons:
        out = _merge(out, load_structure(add_on))
    return out
