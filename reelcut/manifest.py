"""JSON manifest schema — the contract between timeline/CLI/API and engine."""

import json
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EditKind(str, Enum):
    TRIM = "trim"
    SPEED = "speed"
    SPLIT = "split"
    DELETE_RANGE = "delete_range"
    EXTRACT_RANGE = "extract_range"


@dataclass
class EditRequest:
    """One finalized edit, handed to the processor one at a time.

    ``start``/``end`` are used by trim, delete_range and extract_range,
    ``at`` by split and ``speed`` by speed. ``source`` is whatever reference
    the host uses for the asset (a path, an id).
    """

    kind: EditKind
    source: str | None = None
    start: float | None = None
    end: float | None = None
    at: float | None = None
    speed: float | None = None

    def to_dict(self) -> dict:
        data = {"kind": self.kind.value}
        for key in ("source", "start", "end", "at", "speed"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class Manifest:
    """Top-level editing manifest."""

    input: Path
    output: Path
    edit: EditRequest
    version: str = "1"
    # Original file name, used to name outputs; defaults to ``input.name``.
    name: str | None = None


def _require_number(edit: EditRequest, name: str) -> float:
    value = getattr(edit, name)
    if value is None:
        raise ValueError(f"{edit.kind.value} requires '{name}'")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"'{name}' must be a finite number")
    return value


def validate_request(edit: EditRequest, max_speed: float = 10.0) -> None:
    """Raise ValueError if ``edit`` cannot be processed."""
    if edit.kind in (EditKind.TRIM, EditKind.DELETE_RANGE, EditKind.EXTRACT_RANGE):
        start = _require_number(edit, "start")
        end = _require_number(edit, "end")
        if start < 0:
            raise ValueError("Start time must not be negative")
        if start >= end:
            raise ValueError("Start time must be less than end time")
    elif edit.kind == EditKind.SPLIT:
        at = _require_number(edit, "at")
        if at <= 0:
            raise ValueError("Split time must be greater than zero")
    elif edit.kind == EditKind.SPEED:
        speed = _require_number(edit, "speed")
        if speed <= 0 or speed > max_speed:
            raise ValueError("Invalid speed multiplier")


def parse_edit(data: dict) -> EditRequest:
    if "kind" not in data:
        raise ValueError("Edit must contain a 'kind' field")
    try:
        kind = EditKind(data["kind"])
    except ValueError:
        raise ValueError(f"Unknown edit kind: {data['kind']!r}") from None

    def _num(key: str) -> float | None:
        return float(data[key]) if data.get(key) is not None else None

    return EditRequest(
        kind=kind,
        source=data.get("source"),
        start=_num("start"),
        end=_num("end"),
        at=_num("at"),
        speed=_num("speed"),
    )


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")
    if "edit" not in data:
        raise ValueError("Manifest must contain an 'edit' section")

    edit = parse_edit(data["edit"])
    validate_request(edit)

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        edit=edit,
        name=data.get("name"),
    )
