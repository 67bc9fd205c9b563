"""
OpenTelemetry configuration with OTLP exporters for the payroll chat client.

Tracing and metrics export are opt-in; when disabled the global no-op
providers stay in place and spans and instruments cost nothing.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from payroll_chat.lib.metrics import initialize_metrics


logger = logging.getLogger(__name__)


class TelemetryManager:
    """Manages OpenTelemetry setup and lifecycle."""

    def __init__(self, config: Dict[str, Any]):
        self.enabled = config.get("enabled", False)
        self.service_name = config.get("service_name", "payroll-chat")
        self.service_version = config.get("service_version", "1.0.0")
        self.otlp_endpoint = config.get("otlp_endpoint", "http://localhost:4317")
        self.export_timeout = config.get("export_timeout", 10)
        self._tracer_provider: Optional[TracerProvider] = None
        self._meter_provider: Optional[MeterProvider] = None

    def initialize(self) -> None:
        """Install SDK providers with OTLP exporters when enabled."""
        if not self.enabled:
            logger.debug("Telemetry export disabled")
            initialize_metrics(metrics.get_meter("payroll_chat"))
            return

        resource = Resource.create({
            "service.name": self.service_name,
            "service.version": self.service_version,
        })

        self._tracer_provider = TracerProvider(resource=resource)
        self._tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint, timeout=self.export_timeout))
        )
        trace.set_tracer_provider(self._tracer_provider)

        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=self.otlp_endpoint, timeout=self.export_timeout),
            export_interval_millis=10000
        )
        self._meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
        metrics.set_meter_provider(self._meter_provider)

        initialize_metrics(metrics.get_meter("payroll_chat"))
        logger.info(f"OpenTelemetry initialized for service: {self.service_name}")

    def shutdown(self) -> None:
        """Flush and shut down installed providers."""
        try:
            if self._tracer_provider:
                self._tracer_provider.shutdown()
            if self._meter_provider:
                self._meter_provider.shutdown()
        except Exception as e:
            logger.error(f"Error during telemetry shutdown: {e}")
        finally:
            self._tracer_provider = None
            self._meter_provider = None


def initialize_telemetry(config: Dict[str, Any]) -> TelemetryManager:
    """Create and initialize a telemetry manager."""
    manager = TelemetryManager(config)
    manager.initialize()
    return manager
