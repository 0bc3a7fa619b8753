"""Measurement data models."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional


def round_half_up(value: float, places: int) -> float:
    """Decimal half-up rounding of the shortest repr of `value`.

    12.345 becomes 12.35 and 0.98765 becomes 0.988, rounding the decimal
    text as written rather than its binary approximation.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def first_family(style_declaration: str) -> str:
    """'Open Sans', sans-serif -> Open Sans"""
    head = style_declaration.split(",", 1)[0].strip()
    return head.strip("'\"").strip()


@dataclass(frozen=True)
class FontDescriptor:
    key: str
    display_name: str
    import_resource: str
    style_declaration: str
    fields: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def family_name(self) -> str:
        return first_family(self.style_declaration)


@dataclass(frozen=True)
class Probe:
    key: str
    text: str
    kind: str = "character"


@dataclass(frozen=True)
class Geometry:
    width: float
    height: float

    @property
    def has_extent(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class ScaleOutcome:
    width_scale: float
    height_scale: Optional[float] = None

    def is_valid(self) -> bool:
        values = [self.width_scale]
        if self.height_scale is not None:
            values.append(self.height_scale)
        return all(math.isfinite(v) and v > 0 for v in values)


TRIVIAL_SCALE = ScaleOutcome(1.0, 1.0)


class FontResult:
    def __init__(self, descriptor: FontDescriptor):
        self.descriptor = descriptor

        # Character metrics mode
        self.characters: Optional[Dict[str, float]] = None
        self.last_measured_at: Optional[str] = None

        # Scale mode
        self.scale: Optional[ScaleOutcome] = None

        # Outcome bookkeeping
        self.measurement_error: Optional[str] = None
        self.fallback: bool = False
        self.attempts: int = 0

    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def character_count(self) -> int:
        return len(self.characters or {})


@dataclass
class RunSummary:
    mode: str
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    fallbacks: int = 0
    files: List[str] = field(default_factory=list)
    config_hash: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)
    persistence_failed: bool = False
