"""
Shared error types and instrumentation for external collaborators.

Every collaborator call is attempt-once: no retries, no backoff. Callers
decide whether a failure is fatal or logged-and-ignored.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog

from app.observability.metrics import external_api_errors_total, external_api_latency_seconds

logger = structlog.get_logger(__name__)


class IntegrationError(Exception):
    """Raised when an external collaborator call fails."""

    def __init__(self, provider: str, operation: str, message: str):
        self.provider = provider
        self.operation = operation
        self.message = message
        super().__init__(f"[{provider}] {operation}: {message}")


class IntegrationNotConfigured(IntegrationError):
    """Raised when a collaborator is called without credentials configured."""

    def __init__(self, provider: str, operation: str = "configure"):
        super().__init__(provider, operation, "not configured")


@asynccontextmanager
async def instrumented(provider: str, operation: str) -> AsyncIterator[None]:
    """Time an external call and count its failures."""
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        external_api_errors_total.labels(provider=provider, operation=operation).inc()
        logger.warning(
            "external_call_failed", provider=provider, operation=operation, error=str(e)
        )
        raise
    finally:
        external_api_latency_seconds.labels(provider=provider, operation=operation).observe(
            time.perf_counter() - started
        )
