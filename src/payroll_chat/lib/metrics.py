"""
Metrics collection for chat turns, runs and uploads.

Uses OpenTelemetry metrics. Until a meter provider is installed the global
meter is a no-op, so instruments can be recorded unconditionally.
"""

import time
from typing import Optional

from opentelemetry import metrics


class ChatMetrics:
    """Collects payroll chat metrics."""

    def __init__(self, meter: metrics.Meter):
        self.meter = meter
        self._setup_instruments()

    def _setup_instruments(self) -> None:
        """Setup OpenTelemetry metric instruments."""
        self.turns_total = self.meter.create_counter(
            name="payroll_chat_turns_total",
            description="Turns submitted to the agent",
            unit="1"
        )

        self.turn_failures = self.meter.create_counter(
            name="payroll_chat_turn_failures_total",
            description="Turns that failed, by error type",
            unit="1"
        )

        self.turn_duration = self.meter.create_histogram(
            name="payroll_chat_turn_duration_ms",
            description="End-to-end duration of a turn",
            unit="ms"
        )

        self.poll_reads = self.meter.create_counter(
            name="payroll_chat_run_polls_total",
            description="Run status reads performed while waiting for a run",
            unit="1"
        )

        self.uploads = self.meter.create_counter(
            name="payroll_chat_uploads_total",
            description="Attachment uploads by result",
            unit="1"
        )

        self.upload_bytes = self.meter.create_histogram(
            name="payroll_chat_upload_bytes",
            description="Size of uploaded attachments",
            unit="By"
        )

    def record_turn(self, duration_ms: int, success: bool, error_type: Optional[str] = None) -> None:
        """Record a finished turn."""
        attributes = {"success": str(success)}
        self.turns_total.add(1, attributes)
        self.turn_duration.record(duration_ms, attributes)

        if not success:
            self.turn_failures.add(1, {"error_type": error_type or "Unknown"})

    def record_poll(self, status: str) -> None:
        self.poll_reads.add(1, {"status": status})

    def record_upload(self, byte_size: int, success: bool) -> None:
        self.uploads.add(1, {"success": str(success)})
        if success:
            self.upload_bytes.record(byte_size)


class TurnTimer:
    """Context manager for timing a turn."""

    def __init__(self, collector: ChatMetrics):
        self.collector = collector
        self.start_time: Optional[float] = None
        self.success: bool = True
        self.error_type: Optional[str] = None

    def fail(self, error: BaseException) -> None:
        """Mark the turn as failed without raising."""
        self.success = False
        self.error_type = type(error).__name__

    def __enter__(self) -> "TurnTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        duration_ms = int((time.time() - self.start_time) * 1000)
        if exc_type is not None:
            self.success = False
            self.error_type = exc_type.__name__

        self.collector.record_turn(duration_ms, self.success, self.error_type)


# Global metrics collector instance
_metrics_collector: Optional[ChatMetrics] = None


def initialize_metrics(meter: metrics.Meter) -> ChatMetrics:
    """Initialize global metrics collector."""
    global _metrics_collector
    _metrics_collector = ChatMetrics(meter)
    return _metrics_collector


def get_metrics() -> ChatMetrics:
    """Get the global metrics collector, bound to the global meter if not initialized."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = ChatMetrics(metrics.get_meter("payroll_chat"))
    return _metrics_collector
