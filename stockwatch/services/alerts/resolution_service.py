"""
Alert Resolution Workflow.

OPEN -> RESOLVED is the only transition and it is terminal. A condition
that is still true after resolution is picked up again by the next sweep as
a new alert with a new id.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from stockwatch import metrics
from stockwatch.core.cache import SummaryCache
from stockwatch.core.exceptions import AlertAlreadyResolvedError
from stockwatch.models.alert_models import StockAlert
from .base import BaseAlertService, Clock
from .repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertResolutionService(BaseAlertService):
    """Service for closing alerts."""

    def __init__(
        self,
        db: Session,
        clock: Clock | None = None,
        repository: AlertRepository | None = None,
        cache: SummaryCache | None = None,
    ):
        super().__init__(db, clock)
        self._alerts = repository or AlertRepository(db, clock)
        self._cache = cache

    def resolve(
        self,
        alert_id: int,
        resolved_by: int,
        notes: str | None = None,
        *,
        system: bool = False,
    ) -> StockAlert:
        """
        Resolve an OPEN alert.

        Raises:
            AlertNotFoundError: no alert with this id
            AlertAlreadyResolvedError: the alert was already closed; its
                resolved_at/resolved_by are left as they were
        """
        if not self._alerts.mark_resolved(alert_id, resolved_by, notes, self.now()):
            existing = self._alerts.get(alert_id)
            raise AlertAlreadyResolvedError(alert_id, existing.resolved_by)

        metrics.alert_resolved(system=system)
        if self._cache is not None:
            self._cache.invalidate()

        alert = self._alerts.get(alert_id)
        logger.info(
            "Alert %s (%s) resolved by %s",
            alert.id,
            alert.alert_type.value,
            resolved_by,
            extra={"alert_id": alert.id, "alert_type": alert.alert_type.value},
        )
        return alert
