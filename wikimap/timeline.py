"""
Timeline state: which empire border snapshot is current for a year.

Each empire carries dated border snapshots; at a given year the active one
is the latest snapshot not after that year. Before its first snapshot an
empire is not drawn at all.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class Snapshot(BaseModel):
    year: int
    geometry: dict = Field(default_factory=dict, description="GeoJSON geometry or FeatureCollection")


class Empire(BaseModel):
    id: str
    name: str
    snapshots: list[Snapshot] = Field(default_factory=list)


def format_year(year: int) -> str:
    return f"{abs(year)} BC" if year < 0 else f"{year} AD"


def snapshot_for_year(empire: Empire, year: int) -> Optional[Snapshot]:
    selected: Optional[Snapshot] = None
    for snap in empire.snapshots:
        if snap.year <= year and (selected is None or snap.year > selected.year):
            selected = snap
    return selected


def active_snapshots(empires: list[Empire], year: int) -> dict[str, Snapshot]:
    """empire id -> snapshot to draw; empires with no snapshot yet are omitted."""
    out: dict[str, Snapshot] = {}
    for empire in empires:
        snap = snapshot_for_year(empire, year)
        if snap is not None:
            out[empire.id] = snap
    return out


def load_empires(path: str | Path) -> list[Empire]:
    with Path(path).open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("empires", [])
    return [Empire.model_validate(e) for e in raw]
