"""
Machine ordering.

Why this file exists
The machines listing is consumed by lab tooling that expects a fixed order:

- names starting with "lin" come first
- among those, the fourth character is compared by character code, larger first
- everything else, and any remaining tie, falls back to plain string order

This is a lab naming convention. Do not generalize it.
"""

from __future__ import annotations

from typing import Iterable

LIN_PREFIX = "lin"

# "lin" with no fourth character sorts after every longer "lin" name
_NO_FOURTH_CHAR = 1


def machine_sort_key(name: str) -> tuple[int, int, str]:
    """Return the sort key that places name in machine order."""
    if name.startswith(LIN_PREFIX):
        if len(name) > len(LIN_PREFIX):
            return (0, -ord(name[len(LIN_PREFIX)]), name)
        return (0, _NO_FOURTH_CHAR, name)
    return (1, 0, name)


def sort_machines(names: Iterable[str]) -> list[str]:
    """Return names deduplicated and sorted in machine order."""
    return sorted(set(names), key=machine_sort_key)
