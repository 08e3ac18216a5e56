"""
Staleness Policy

Architectural Intent:
- Decides whether an incident has gone quiet long enough to auto-clear
- Pure domain logic; the clock is passed in by the caller
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Optional

from sfx_janitor.domain.entities.incident import Incident

DEFAULT_MAX_AGE = timedelta(minutes=30)


@dataclass(frozen=True)
class StalenessPolicy:
    """An incident is stale when its last update is strictly older than max_age."""

    max_age: timedelta = DEFAULT_MAX_AGE

    def __post_init__(self) -> None:
        if self.max_age <= timedelta(0):
            raise ValueError(f"max_age must be positive, got {self.max_age}")

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(UTC)
        return now - self.max_age

    def is_stale(self, incident: Incident, now: Optional[datetime] = None) -> bool:
        return incident.created_at < self.cutoff(now)
