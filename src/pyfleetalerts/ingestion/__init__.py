"""Ingestion layer.

Helpers that turn untyped telemetry-store data into typed values at the
deserialization boundary, so the evaluator never sees raw feed shapes.
"""

__all__: list[str] = []
