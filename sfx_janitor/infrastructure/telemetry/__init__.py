"""
Janitor Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for observability
- Metrics and traces export
"""

from sfx_janitor.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
