"""Shared infrastructure: configuration, errors, cancellation, logging and telemetry."""
