"""
Alert Query & Dashboard Aggregator.

Read-only views over the alert store: filtered listing, single lookups and
the dashboard summary.
"""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from stockwatch.core.cache import SummaryCache
from stockwatch.core.config import settings
from stockwatch.core.exceptions import AlertValidationError
from stockwatch.models.alert_models import AlertSeverity, StockAlert
from stockwatch.models.alert_schemas import (
    AlertDashboardOut,
    AlertFilters,
    AlertListOut,
    AlertOut,
    AlertTypeCount,
)
from .base import BaseAlertService, Clock
from .repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertQueryService(BaseAlertService):
    """Service for alert listing and dashboard aggregation."""

    def __init__(
        self,
        db: Session,
        clock: Clock | None = None,
        repository: AlertRepository | None = None,
        cache: SummaryCache | None = None,
        *,
        recent_limit: int | None = None,
        max_page_size: int | None = None,
    ):
        super().__init__(db, clock)
        self._alerts = repository or AlertRepository(db, clock)
        self._cache = cache
        self._recent_limit = recent_limit or settings.DASHBOARD_RECENT_LIMIT
        self._max_page_size = max_page_size or settings.ALERT_LIST_MAX_PAGE_SIZE

    def list_alerts(self, page: int = 1, page_size: int = 10, **filters: Any) -> AlertListOut:
        """
        List alerts with filtering and pagination.

        Filters accept the raw values a caller sends (strings for enums and
        dates are fine); anything malformed raises AlertValidationError.
        """
        if page < 1:
            raise AlertValidationError("page", "must be 1 or greater")
        if not 1 <= page_size <= self._max_page_size:
            raise AlertValidationError("page_size", f"must be between 1 and {self._max_page_size}")

        parsed = self._parse_filters(filters)
        alerts, total = self._alerts.list(parsed, page=page, page_size=page_size)
        total_pages = (total + page_size - 1) // page_size if total > 0 else 1

        return AlertListOut(
            alerts=[AlertOut.model_validate(a) for a in alerts],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
        )

    def get_alert(self, alert_id: int) -> StockAlert:
        return self._alerts.get(alert_id)

    def dashboard_summary(self) -> AlertDashboardOut:
        """Open/critical totals, per-type counts and the most urgent open alerts."""
        if self._cache is not None:
            cached = self._cache.get()
            if cached is not None:
                return AlertDashboardOut.model_validate(cached)

        summary = AlertDashboardOut(
            open_total=self._alerts.count_open(),
            open_critical_total=self._alerts.count_open(AlertSeverity.CRITICAL),
            counts_by_type=[
                AlertTypeCount(alert_type=alert_type, count=count)
                for alert_type, count in self._alerts.count_open_by_type()
            ],
            recent_open=[AlertOut.model_validate(a) for a in self._alerts.recent_open(self._recent_limit)],
        )

        if self._cache is not None:
            self._cache.set(summary.model_dump(mode="json"))
        return summary

    @staticmethod
    def _parse_filters(raw: dict[str, Any]) -> AlertFilters:
        values = {key: value for key, value in raw.items() if value is not None}
        try:
            return AlertFilters(**values)
        except ValidationError as exc:
            error = exc.errors()[0]
            field_name = ".".join(str(part) for part in error.get("loc", ())) or "date_range"
            raise AlertValidationError(field_name, error.get("msg", "invalid value")) from exc
