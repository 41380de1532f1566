"""
Ring configuration rules.

A tournament runs 1-10 rings. Ring numbers are 1-10 and unique; colors are
the viewers' way of telling rings apart, so they must be unique too.
"""
from typing import Iterable, Optional, Tuple

MIN_RINGS = 1
MAX_RINGS = 10


def validate_ring_configuration(rings: Iterable[Tuple[int, str]]) -> Optional[str]:
    """
    Check (ring_number, color) pairs against the ring rules.

    Returns:
        None if valid, otherwise the first failing rule's message
    """
    rings = list(rings)
    if len(rings) < MIN_RINGS or len(rings) > MAX_RINGS:
        return f"Tournament must have between {MIN_RINGS} and {MAX_RINGS} rings"

    colors = [normalize_color(color) for _, color in rings]
    if any(not c for c in colors):
        return "Ring colors must not be empty"
    if len(set(c.lower() for c in colors)) != len(colors):
        return "Ring colors must be unique"

    numbers = [number for number, _ in rings]
    if any(n < MIN_RINGS or n > MAX_RINGS for n in numbers):
        return f"Ring numbers must be between {MIN_RINGS} and {MAX_RINGS}"
    if len(set(numbers)) != len(numbers):
        return "Ring numbers must be unique"

    return None


def normalize_color(color: Optional[str]) -> str:
    """Strip surrounding whitespace; None -> ''."""
    return (color or "").strip()
