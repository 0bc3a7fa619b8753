"""Probe set construction: which characters and strings get rendered."""

import unicodedata
from typing import Iterable, List, Sequence, Tuple

from . import config
from .models import Probe

# Unicode general categories that never produce a measurable glyph
HIDDEN_CATEGORIES = frozenset(
    {
        "Cc",  # control
        "Cf",  # format
        "Cn",  # unassigned
        "Co",  # private use
        "Cs",  # surrogate
        "Zl",  # line separator
        "Zp",  # paragraph separator
    }
)


def codepoint_key(codepoint: int) -> str:
    return f"U+{codepoint:04X}"


def is_visible_character(char: str) -> bool:
    """True for characters worth measuring.

    Whitespace is excluded except for the plain space.
    """
    if char == " ":
        return True
    if char.isspace():
        return False
    category = unicodedata.category(char)
    if category == "Zs":
        return False
    return category not in HIDDEN_CATEGORIES


def build_probe_set(
    ranges: Iterable[Tuple[int, int]] = config.CHARACTER_RANGES,
    is_visible=is_visible_character,
) -> Tuple[Probe, ...]:
    """Ordered, deduplicated character probes over inclusive ranges.

    Overlapping ranges keep the first occurrence. An empty result is valid.
    """
    seen = set()
    probes: List[Probe] = []
    for start, end in ranges:
        for codepoint in range(start, end + 1):
            if codepoint in seen:
                continue
            seen.add(codepoint)
            char = chr(codepoint)
            if is_visible(char):
                probes.append(Probe(codepoint_key(codepoint), char))
    return tuple(probes)


def build_string_probes(
    width_text: str = config.WIDTH_PROBE,
    height_text: str = config.HEIGHT_PROBE,
) -> Tuple[Probe, Probe]:
    return (
        Probe("width", width_text, kind="string"),
        Probe("height", height_text, kind="string"),
    )


def probe_keys(probes: Sequence[Probe]) -> List[str]:
    return [p.key for p in probes]
