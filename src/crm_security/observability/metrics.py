"""Prometheus metrics for account-security operations.

Usage:
    ```python
    from crm_security.observability import SecurityMetrics

    with SecurityMetrics.operation("mfa.verify_login"):
        result = await lifecycle.verify_login(account_id, code)

    SecurityMetrics.record_event(event)
    ```
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Generator

    from ..audit.events import AuditEvent


class _SecurityMetricsRegistry:
    """Registry for security Prometheus metrics.

    Metrics are created on first use so that importing the package does not
    touch the default Prometheus registry.
    """

    def __init__(self) -> None:
        self._histogram: Any = None
        self._counter: Any = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        from prometheus_client import Counter, Histogram

        self._histogram = Histogram(
            "account_security_operation_duration_seconds",
            "Account security operation duration",
            ["operation"],
        )
        self._counter = Counter(
            "account_security_operations_total",
            "Account security operation count",
            ["operation", "result"],
        )
        self._initialized = True

    @property
    def histogram(self) -> Any:
        self._ensure_initialized()
        return self._histogram

    @property
    def counter(self) -> Any:
        self._ensure_initialized()
        return self._counter


# Global registry instance
_registry = _SecurityMetricsRegistry()


class SecurityMetrics:
    """Helpers for recording account-security metrics."""

    @staticmethod
    @contextmanager
    def operation(operation: str) -> Generator[None, None, None]:
        """Time an operation and count it as success or error.

        Args:
            operation: Operation name (e.g. ``mfa.begin_setup``).
        """
        result = "success"
        start = time.monotonic()

        try:
            yield
        except Exception:
            result = "error"
            raise
        finally:
            duration = time.monotonic() - start
            _registry.histogram.labels(operation=operation).observe(duration)
            _registry.counter.labels(operation=operation, result=result).inc()

    @staticmethod
    def record_event(event: AuditEvent) -> None:
        """Count an audit event by type and outcome."""
        _registry.counter.labels(
            operation=event.event_type.value,
            result="success" if event.success else "failure",
        ).inc()
        _logger.debug(
            "Recorded metric for %s (success=%s)",
            event.event_type.value,
            event.success,
        )


__all__: list[str] = ["SecurityMetrics"]
