"""
Incident Entities

Architectural Intent:
- RawIncident mirrors one record of the SignalFx event time series listing
- Incident is the normalized form used for display and staleness decisions
- Normalization is a pure transformation with no I/O

Design Decisions:
- Timestamps are epoch milliseconds, truncated to whole seconds
- created_at is timezone-aware UTC so comparisons never mix naive/aware values
- The incident id is mandatory: it addresses the clear endpoint
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Any, Iterable, Optional

# Accepted sf_updatedOnMs range: 1970 through the end of year 9999.
_MIN_MS = 0
_MAX_MS = 253_402_300_799_999


@dataclass(frozen=True)
class RawIncident:
    """One active incident as returned by the v1 event time series API."""

    incident_id: str
    updated_on_ms: float
    detector: str = ""
    detector_id: str = ""

    @classmethod
    def from_api(cls, record: Any) -> "RawIncident":
        """Build from a decoded ``rs`` entry.

        Raises:
            ValueError: if the record is not an object or has invalid fields
        """
        if not isinstance(record, dict):
            raise ValueError(f"expected incident object, got {type(record).__name__}")

        incident_id = record.get("sf_incidentId")
        if not isinstance(incident_id, str) or not incident_id:
            raise ValueError("sf_incidentId must be a non-empty string")

        updated = record.get("sf_updatedOnMs", 0)
        if isinstance(updated, bool) or not isinstance(updated, (int, float)):
            raise ValueError(
                f"sf_updatedOnMs must be a number for incident {incident_id}"
            )
        if not _MIN_MS <= updated <= _MAX_MS:
            raise ValueError(
                f"sf_updatedOnMs out of range for incident {incident_id}: {updated}"
            )

        return cls(
            incident_id=incident_id,
            updated_on_ms=updated,
            detector=str(record.get("sf_detector") or ""),
            detector_id=str(record.get("sf_detectorId") or ""),
        )


@dataclass(frozen=True)
class Incident:
    """Normalized incident: id, human-readable label and last update time."""

    incident_id: str
    label: str
    created_at: datetime

    def __post_init__(self) -> None:
        if not self.incident_id:
            raise ValueError("Incident ID cannot be empty")

    @classmethod
    def from_raw(cls, raw: RawIncident) -> "Incident":
        seconds = int(raw.updated_on_ms) // 1000
        return cls(
            incident_id=raw.incident_id,
            label=f"{raw.detector} -- {raw.detector_id}",
            created_at=datetime.fromtimestamp(seconds, tz=UTC),
        )

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(UTC)
        return now - self.created_at

    def describe(self, now: Optional[datetime] = None) -> str:
        return f"{self.label} (time ago = {self.age(now)})"

    def __str__(self) -> str:
        return self.describe()


def normalize_incidents(raws: Iterable[RawIncident]) -> list[Incident]:
    """Map raw API records to normalized incidents, preserving order."""
    return [Incident.from_raw(raw) for raw in raws]
