"""Batch partitioning for probes, fonts and catalog slices."""

from typing import List, Sequence, Tuple, TypeVar

from .models import FontDescriptor

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> List[List[T]]:
    """Split into consecutive windows of at most `size` items, order kept.

    Yields ceil(N / size) batches; only the last may be shorter.
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def split_catalog(items: Sequence[T], slices: int) -> List[List[T]]:
    """Contiguous, disjoint, near-equal slices for parallel sessions."""
    if slices < 1:
        raise ValueError(f"Slice count must be at least 1, got {slices}")
    if not items:
        return []
    size = -(-len(items) // slices)
    return partition(items, size)


def is_baseline_font(font: FontDescriptor, baseline_family: str) -> bool:
    return font.family_name.casefold() == baseline_family.casefold()


def plan_scale_batches(
    fonts: Sequence[FontDescriptor], size: int, baseline_family: str
) -> Tuple[List[FontDescriptor], List[List[FontDescriptor]]]:
    """Separate fonts identical to the baseline, then batch the rest.

    Returns:
        Tuple of (trivial_fonts, batches) where trivial fonts have scale 1.0
        and need no rendering.
    """
    trivial = [f for f in fonts if is_baseline_font(f, baseline_family)]
    rendered = [f for f in fonts if not is_baseline_font(f, baseline_family)]
    return trivial, partition(rendered, size)
