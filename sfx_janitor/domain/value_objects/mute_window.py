"""
Mute Window Value Object

Architectural Intent:
- Immutable description of an alert muting rule for a single detector
- Owns the wire payload shape of the v2 alertmuting endpoint
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Any, Optional

DEFAULT_DESCRIPTION = "Muted by signalfx-janitor"
DETECTOR_ID_PROPERTY = "sf_detectorId"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds.

    Uses timedelta floor division so the result is exact (no float rounding).
    """
    return (moment - _EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True)
class MuteWindow:
    detector_id: str
    start_ms: int
    stop_ms: int
    description: str = DEFAULT_DESCRIPTION

    def __post_init__(self) -> None:
        if not self.detector_id:
            raise ValueError("detector_id cannot be empty")
        if self.stop_ms < self.start_ms:
            raise ValueError(
                f"stop time {self.stop_ms} is before start time {self.start_ms}"
            )

    @classmethod
    def starting_at(
        cls,
        detector_id: str,
        duration: timedelta,
        info: str = "",
        now: Optional[datetime] = None,
    ) -> "MuteWindow":
        """Build a window from ``now`` until ``now + duration``."""
        now = now or datetime.now(UTC)
        description = DEFAULT_DESCRIPTION
        if info:
            description = f"{DEFAULT_DESCRIPTION}: {info}"
        try:
            stop = now + duration
        except OverflowError as e:
            raise ValueError(f"mute window of {duration} is out of range") from e
        return cls(
            detector_id=detector_id,
            start_ms=to_epoch_ms(now),
            stop_ms=to_epoch_ms(stop),
            description=description,
        )

    @property
    def duration_ms(self) -> int:
        return self.stop_ms - self.start_ms

    def to_payload(self) -> dict[str, Any]:
        return {
            "filters": [
                {"property": DETECTOR_ID_PROPERTY, "propertyValue": self.detector_id}
            ],
            "startTime": self.start_ms,
            "stopTime": self.stop_ms,
            "description": self.description,
        }
