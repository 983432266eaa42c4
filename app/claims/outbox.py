"""
Side-effect outbox.

Best-effort work that follows a committed claim change (eligibility, CRM
mirror, emails) is queued here by name and dispatched once. Each effect
runs independently: a failure is logged and recorded, never raised, and
never stops the effects queued after it.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from app.integrations.base import IntegrationNotConfigured
from app.models.enums import SideEffectOutcome
from app.observability.metrics import side_effects_total

logger = structlog.get_logger(__name__)

Effect = Callable[[], Awaitable[Optional[str]]]


@dataclass
class SideEffectResult:
    name: str
    outcome: SideEffectOutcome
    detail: Optional[str] = None


class Outbox:
    def __init__(self):
        self._pending: list[tuple[str, Effect]] = []

    def add(self, name: str, effect: Effect) -> None:
        self._pending.append((name, effect))

    @property
    def pending(self) -> list[str]:
        return [name for name, _ in self._pending]

    async def dispatch(self) -> list[SideEffectResult]:
        """Run every pending effect once, in order. The outbox is empty afterwards."""
        pending, self._pending = self._pending, []
        results = []
        for name, effect in pending:
            try:
                detail = await effect()
                result = SideEffectResult(name, SideEffectOutcome.SUCCEEDED, detail)
            except IntegrationNotConfigured as e:
                result = SideEffectResult(name, SideEffectOutcome.SKIPPED, str(e))
                logger.info("side_effect_skipped", effect=name, reason=str(e))
            except Exception as e:
                result = SideEffectResult(name, SideEffectOutcome.FAILED, str(e))
                logger.warning(
                    "side_effect_failed", effect=name, error=str(e), error_type=type(e).__name__
                )
            side_effects_total.labels(effect=name, outcome=result.outcome.value).inc()
            results.append(result)
        return results
