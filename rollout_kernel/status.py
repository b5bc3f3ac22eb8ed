"""
Rollout Kernel — Status Roll-up v1.0

RAGB roll-up over child statuses. Pure, total over the Status enum.
"""

from __future__ import annotations

from typing import Iterable

from .domain_types import Status

# Lower value = worse status.
STATUS_PRIORITY = {
    Status.RED: 0,
    Status.AMBER: 1,
    Status.GREEN: 2,
    Status.BLUE: 3,
}


def get_worst_status(a: Status, b: Status) -> Status:
    """The worse of two statuses: red > amber > green > blue."""
    a, b = Status(a), Status(b)
    return a if STATUS_PRIORITY[a] <= STATUS_PRIORITY[b] else b


def calculate_status(
    child_statuses: Iterable[Status],
    fallback: Status = Status.RED,
) -> Status:
    """
    Roll child statuses up into a single status.

    - no children         -> fallback
    - any red             -> red
    - any amber (no red)  -> amber
    - all blue            -> blue
    - anything else       -> green

    Blue only survives when every child agrees, so this is not a plain
    ordinal min/max.
    """
    statuses = {Status(s) for s in child_statuses}
    if not statuses:
        return Status(fallback)
    if Status.RED in statuses:
        return Status.RED
    if Status.AMBER in statuses:
        return Status.AMBER
    if statuses == {Status.BLUE}:
        return Status.BLUE
    return Status.GREEN
