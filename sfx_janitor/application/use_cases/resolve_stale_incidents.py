"""
Resolve Stale Incidents Use Case

Architectural Intent:
- Lists active incidents, normalizes them and clears the stale ones
- Incidents are processed one at a time, in the order the API returned them

Design Decisions:
- Fail-fast by default: the first clear failure aborts the remaining loop
- fail_fast=False keeps going and reports the failed ids instead
- Clock is injectable so staleness decisions are testable
"""

import logging
from datetime import datetime, UTC
from typing import Callable, Optional

from sfx_janitor.application.dtos.janitor_dtos import ResolveStaleResponse
from sfx_janitor.domain.entities.incident import normalize_incidents
from sfx_janitor.domain.errors import IncidentResolutionError, JanitorError
from sfx_janitor.domain.ports.monitoring_port import MonitoringPort
from sfx_janitor.domain.services.staleness import StalenessPolicy

logger = logging.getLogger(__name__)


class ResolveStaleIncidents:
    def __init__(
        self,
        monitoring: MonitoringPort,
        policy: Optional[StalenessPolicy] = None,
        fail_fast: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        telemetry=None,
    ):
        self.monitoring = monitoring
        self.policy = policy or StalenessPolicy()
        self.fail_fast = fail_fast
        self.clock = clock
        self.telemetry = telemetry

    async def execute(self) -> ResolveStaleResponse:
        raws = await self.monitoring.list_active_incidents()
        incidents = normalize_incidents(raws)
        logger.info("Found %d incidents", len(incidents))
        if self.telemetry:
            self.telemetry.record_incidents_found(len(incidents))

        cleared: list[str] = []
        skipped: list[str] = []
        failed: list[str] = []

        for incident in incidents:
            now = self.clock()
            context = {"incident_id": incident.incident_id}
            logger.info("Incident: %s", incident.describe(now), extra=context)
            stale = self.policy.is_stale(incident, now)
            logger.info("Should auto resolve: %s", stale, extra=context)
            if not stale:
                skipped.append(incident.incident_id)
                continue

            try:
                await self.monitoring.clear_incident(incident.incident_id)
            except JanitorError as e:
                if self.fail_fast:
                    raise IncidentResolutionError(incident.incident_id, e) from e
                logger.error(
                    "error resolving incident %s: %s",
                    incident.incident_id,
                    e,
                    extra=context,
                )
                failed.append(incident.incident_id)
                continue

            cleared.append(incident.incident_id)
            if self.telemetry:
                self.telemetry.record_incident_cleared(incident.incident_id)

        return ResolveStaleResponse(
            found=len(incidents),
            cleared=cleared,
            skipped=skipped,
            failed=failed,
        )
