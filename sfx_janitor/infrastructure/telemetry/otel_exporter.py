"""
OpenTelemetry Exporter for the janitor

Architectural Intent:
- Exports janitor run telemetry to OTLP-compatible backends
- Counts incidents found/cleared and detectors muted, times API requests
- Wraps each SignalFx API call in a tracing span

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "signalfx-janitor"
    environment: str = "production"
    enable_traces: bool = True
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for janitor runs.

    Metrics are always buffered locally; they are forwarded to the SDK only
    when an endpoint is configured and the SDK is importable.
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._counters: dict[str, Any] = {}
        self._histograms: dict[str, Any] = {}
        self._meter_provider: Any = None
        self._tracer_provider: Any = None

    @property
    def enabled(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.debug("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry import trace
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry import metrics
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )
        except ImportError:
            logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
            return

        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.service_name,
                "environment": self.config.environment,
            }
        )

        if self.config.enable_traces:
            self._tracer_provider = TracerProvider(resource=resource)
            self._tracer_provider.add_span_processor(
                BatchSpanProcessor(
                    OTLPSpanExporter(
                        endpoint=self.config.endpoint, insecure=self.config.insecure
                    )
                )
            )
            trace.set_tracer_provider(self._tracer_provider)

        if self.config.enable_metrics:
            metric_reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(
                    endpoint=self.config.endpoint, insecure=self.config.insecure
                )
            )
            self._meter_provider = MeterProvider(
                resource=resource, metric_readers=[metric_reader]
            )
            metrics.set_meter_provider(self._meter_provider)
            self._meter = metrics.get_meter(__name__)

        self._initialized = True

    def _get_counter(self, name: str, unit: str = "") -> Any:
        if name not in self._counters and self._meter:
            self._counters[name] = self._meter.create_counter(name, unit=unit)
        return self._counters.get(name)

    def _get_histogram(self, name: str, unit: str = "") -> Any:
        if name not in self._histograms and self._meter:
            self._histograms[name] = self._meter.create_histogram(name, unit=unit)
        return self._histograms.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
        kind: str = "counter",
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if not self._initialized:
            return
        if kind == "histogram":
            instrument = self._get_histogram(name, unit)
            if instrument:
                instrument.record(value, attributes=attributes or {})
        else:
            instrument = self._get_counter(name, unit)
            if instrument:
                instrument.add(value, attributes=attributes or {})

    def record_incidents_found(self, count: int) -> None:
        self.record_metric("janitor.incidents.found", float(count))

    def record_incident_cleared(self, incident_id: str) -> None:
        self.record_metric(
            "janitor.incidents.cleared", 1.0, attributes={"incident_id": incident_id}
        )

    def record_detector_muted(self, detector_id: str, duration_ms: int) -> None:
        self.record_metric(
            "janitor.detector.muted",
            1.0,
            attributes={"detector_id": detector_id, "duration_ms": str(duration_ms)},
        )

    def record_api_request(self, method: str, path: str, duration_ms: float) -> None:
        """Record the wall time of one SignalFx API request."""
        self.record_metric(
            "janitor.api.request_ms",
            duration_ms,
            unit="ms",
            attributes={"method": method, "path": path},
            kind="histogram",
        )

    def start_span(
        self,
        name: str,
        attributes: Optional[dict[str, str]] = None,
    ) -> Optional[Any]:
        """Start a tracing span."""
        if not self._initialized or not self._tracer_provider:
            return None

        tracer = self._tracer_provider.get_tracer(__name__)
        return tracer.start_span(name, attributes=attributes or {})

    def end_span(self, span: Any) -> None:
        """End a tracing span."""
        if span:
            span.end()

    async def shutdown(self) -> None:
        """Flush pending telemetry and stop the SDK providers."""
        if not self._initialized:
            return

        exported_count = len(self._metrics_buffer)
        if self._tracer_provider:
            self._tracer_provider.shutdown()
        if self._meter_provider:
            self._meter_provider.shutdown()
        self._metrics_buffer.clear()
        self._initialized = False
        logger.debug("Flushed %d buffered metrics", exported_count)


async def create_exporter(
    endpoint: Optional[str] = None,
    insecure: bool = False,
    service_name: str = "signalfx-janitor",
) -> OTELExporter:
    """Factory function to create OTEL exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        insecure=insecure,
    )
    exporter = OTELExporter(config)
    await exporter.initialize()
    return exporter
