"""
Monitoring Port

Architectural Intent:
- Abstract interface to the monitoring service's incident and muting APIs
- Use cases depend on this contract, the SignalFx adapter implements it

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Write operations return None and raise on failure; there is no
  partial-success result to inspect
"""

from typing import Protocol, runtime_checkable

from sfx_janitor.domain.entities.incident import RawIncident
from sfx_janitor.domain.value_objects.mute_window import MuteWindow


@runtime_checkable
class MonitoringPort(Protocol):
    """Port for reading active incidents and issuing clear/mute writes."""

    async def list_active_incidents(self) -> list[RawIncident]:
        """Return the first batch of active incidents, most important first."""
        ...

    async def clear_incident(self, incident_id: str) -> None:
        """Clear (resolve) a single incident."""
        ...

    async def mute_detector(self, window: MuteWindow) -> None:
        """Create an alert muting rule for a detector."""
        ...
