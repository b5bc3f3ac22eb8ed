"""
Rollout Kernel — Device Count Aggregation v1.0

Absent counts are normalised to zero in one place (normalise_count);
nothing downstream null-coalesces on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class DeviceTotals:
    """Summed device / completion counts."""

    total_devices: int = 0
    total_completed: int = 0

    # Lets a DeviceTotals be fed back into aggregate_device_counts.
    @property
    def device_count(self) -> int:
        return self.total_devices

    @property
    def completed_count(self) -> int:
        return self.total_completed

    def to_dict(self) -> dict:
        return {
            "totalDevices": self.total_devices,
            "totalCompleted": self.total_completed,
        }


def normalise_count(value: Optional[int]) -> int:
    """Absent (None) counts contribute zero."""
    return 0 if value is None else value


def _pair(item: Any) -> tuple:
    if isinstance(item, dict):
        return item.get("deviceCount"), item.get("completedCount")
    return item.device_count, item.completed_count


def aggregate_device_counts(pairs: Iterable[Any]) -> DeviceTotals:
    """
    Sum device and completed counts independently.

    Accepts anything exposing ``device_count`` / ``completed_count``
    (Node, DeviceTotals) or wire dicts with ``deviceCount`` /
    ``completedCount``. No cross-check between the two sums here.
    """
    devices = 0
    completed = 0
    for item in pairs:
        device_count, completed_count = _pair(item)
        devices += normalise_count(device_count)
        completed += normalise_count(completed_count)
    return DeviceTotals(devices, completed)


def calculate_completion_percentage(completed: int, total: int) -> int:
    """
    round(100 * completed / total), 0 when total is 0, capped at 100.

    Integer arithmetic; halves round up (no banker's rounding).
    """
    if total == 0:
        return 0
    percentage = (200 * completed + total) // (2 * total)
    return min(percentage, 100)
