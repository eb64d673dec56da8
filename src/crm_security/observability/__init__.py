"""Observability helpers for crm-security."""

from .metrics import SecurityMetrics

__all__: list[str] = ["SecurityMetrics"]
