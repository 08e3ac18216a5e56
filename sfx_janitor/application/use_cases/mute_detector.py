"""
Mute Detector Use Case

Architectural Intent:
- Suppresses a detector's alerts from now until now + duration
- Delegates the write to the monitoring port; no retry, no read-back
"""

import logging
from datetime import datetime, timedelta, UTC
from typing import Callable

from sfx_janitor.application.dtos.janitor_dtos import (
    MuteDetectorRequest,
    MuteDetectorResponse,
)
from sfx_janitor.domain.ports.monitoring_port import MonitoringPort
from sfx_janitor.domain.value_objects.duration import (
    InvalidDurationError,
    parse_duration,
)
from sfx_janitor.domain.value_objects.mute_window import MuteWindow

logger = logging.getLogger(__name__)


class MuteDetector:
    def __init__(
        self,
        monitoring: MonitoringPort,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        telemetry=None,
    ):
        self.monitoring = monitoring
        self.clock = clock
        self.telemetry = telemetry

    async def execute(self, request: MuteDetectorRequest) -> MuteDetectorResponse:
        duration = parse_duration(request.duration)
        if duration <= timedelta(0):
            raise InvalidDurationError(
                f"mute duration must be positive, got {request.duration!r}"
            )

        window = MuteWindow.starting_at(
            request.detector, duration, request.description, now=self.clock()
        )
        logger.info(
            "Muting detector %s for %s (%s)",
            window.detector_id,
            duration,
            window.description,
            extra={"detector_id": window.detector_id},
        )
        await self.monitoring.mute_detector(window)
        if self.telemetry:
            self.telemetry.record_detector_muted(window.detector_id, window.duration_ms)

        return MuteDetectorResponse(
            detector=window.detector_id,
            start_ms=window.start_ms,
            stop_ms=window.stop_ms,
            description=window.description,
        )
