"""Normalization of raw execution results into transport-safe records."""

import json
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, is_dataclass
from enum import Enum
from typing import Any

# Slots copied as-is; the sandbox already returns them as strings or plain data
PLAIN_SLOTS = (
    "text",
    "html",
    "markdown",
    "svg",
    "png",
    "jpeg",
    "pdf",
    "latex",
    "json",
    "javascript",
    "raw",
    "data",
)

# Slots that may carry rich SDK objects and are deep-copied to plain data
DEEP_COPY_SLOTS = ("chart", "extra")

RESULT_SLOTS = PLAIN_SLOTS + DEEP_COPY_SLOTS


@dataclass
class NormalizedResult:
    """One execution result, every present slot already serializable.

    None marks an absent slot; to_dict() leaves it out entirely so
    consumers can tell "no value" from an empty value.
    """

    text: str | None = None
    html: str | None = None
    markdown: str | None = None
    svg: str | None = None
    png: str | None = None
    jpeg: str | None = None
    pdf: str | None = None
    latex: str | None = None
    json: Any = None
    javascript: str | None = None
    raw: Any = None
    data: Any = None
    chart: Any = None
    extra: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Present slots only."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @property
    def images(self) -> dict[str, str]:
        """Image payloads keyed by slot name (png, jpeg, svg)."""
        return {
            slot: getattr(self, slot)
            for slot in ("png", "jpeg", "svg")
            if getattr(self, slot) is not None
        }


def _to_plain(obj: Any) -> Any:
    """Plain form of a rich object."""
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if hasattr(obj, "__dict__"):
        return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
    raise TypeError(f"Object of type {type(obj).__name__} is not serializable")


def _finite(value: Any) -> Any:
    """Replace NaN and +/-Infinity with None, converting rich objects on the way."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if value is None or isinstance(value, (str, int)):
        return value
    if isinstance(value, Mapping):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite(v) for v in value]
    return _finite(_to_plain(value))


def deep_copy_plain(value: Any) -> Any:
    """Deep copy value into plain JSON data via a serialize/deserialize round trip.

    Non-finite numbers become null, as JSON has no representation for them.
    """
    return json.loads(json.dumps(_finite(value), allow_nan=False))


def _read_slot(raw: Any, slot: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(slot)
    return getattr(raw, slot, None)


def normalize(raw: Any) -> NormalizedResult:
    """Project a raw execution result onto the fixed slot set.

    Accepts SDK result objects or mappings. Plain slots are copied
    verbatim, except that NaN and Infinity inside structured values become
    None; chart and extra are round-tripped through JSON so no live object
    survives. Absent slots stay absent.

    Raises:
        TypeError: If a structured slot holds something that cannot be serialized
    """
    values: dict[str, Any] = {}
    for slot in PLAIN_SLOTS:
        value = _read_slot(raw, slot)
        if value is not None:
            values[slot] = value if isinstance(value, str) else _finite(value)

    for slot in DEEP_COPY_SLOTS:
        value = _read_slot(raw, slot)
        if value is not None:
            values[slot] = deep_copy_plain(value)

    return NormalizedResult(**values)
