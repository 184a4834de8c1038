"""
Alert Store.

Owns every read and write of ``stock_alert`` rows. Writes commit their own
transaction so that each created or resolved alert stands on its own: a sweep
interrupted half-way keeps what it already committed.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Sequence

from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query

from stockwatch import metrics
from stockwatch.core.exceptions import AlertNotFoundError
from stockwatch.models.alert_models import AlertSeverity, AlertStatus, AlertType, StockAlert
from stockwatch.models.alert_schemas import AlertFilters
from .base import BaseAlertService

logger = logging.getLogger(__name__)

# CRITICAL sorts above WARNING regardless of how the enum is stored
_SEVERITY_RANK = case((StockAlert.severity == AlertSeverity.CRITICAL, 1), else_=0)


class AlertRepository(BaseAlertService):
    """Persistence operations for alerts."""

    # ========================================================================
    # Writes
    # ========================================================================

    def create(self, alert: StockAlert) -> StockAlert | None:
        """
        Insert a new OPEN alert.

        Returns None when an OPEN alert for the same subject and type already
        exists. The partial unique index is the final arbiter, so a sweep that
        loses a race with another sweep ends up here instead of duplicating.
        """
        alert.status = AlertStatus.OPEN
        alert.severity = alert.alert_type.severity
        if alert.generated_at is None:
            alert.generated_at = self.now()

        self._db.add(alert)
        try:
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            if not self.has_open_alert(alert.alert_type, component_id=alert.component_id, lot_id=alert.lot_id):
                raise
            metrics.duplicate_skipped()
            logger.info(
                "Open %s alert already exists for component=%s lot=%s; skipped",
                alert.alert_type.value,
                alert.component_id,
                alert.lot_id,
            )
            return None
        return alert

    def mark_resolved(
        self,
        alert_id: int,
        resolved_by: int,
        notes: str | None,
        resolved_at: dt.datetime,
    ) -> bool:
        """
        Move an OPEN alert to RESOLVED.

        The status guard in the WHERE clause makes this a compare-and-set: of
        two concurrent calls only one can match the OPEN row. Returns whether
        this call performed the transition.
        """
        result = self._db.execute(
            update(StockAlert)
            .where(StockAlert.id == alert_id, StockAlert.status == AlertStatus.OPEN)
            .values(
                status=AlertStatus.RESOLVED,
                resolved_at=resolved_at,
                resolved_by=resolved_by,
                resolution_notes=notes,
            )
            .execution_options(synchronize_session=False)
        )
        self._db.commit()
        return result.rowcount == 1

    # ========================================================================
    # Reads
    # ========================================================================

    def get(self, alert_id: int) -> StockAlert:
        """Get an alert by ID, refreshed from the database."""
        alert = self._db.get(StockAlert, alert_id, populate_existing=True)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def has_open_alert(
        self,
        alert_type: AlertType,
        component_id: int | None = None,
        lot_id: int | None = None,
    ) -> bool:
        """Indexed existence check for an OPEN alert on one subject."""
        query = self._db.query(StockAlert.id).filter(
            StockAlert.alert_type == alert_type,
            StockAlert.status == AlertStatus.OPEN,
        )
        if lot_id is not None:
            query = query.filter(StockAlert.lot_id == lot_id)
        else:
            query = query.filter(StockAlert.component_id == component_id)
        return self._db.query(query.exists()).scalar()

    def find_open(self, alert_type: AlertType, component_id: int) -> StockAlert | None:
        """Return the OPEN alert of a type for a component, if any."""
        return self._db.query(StockAlert).filter(
            StockAlert.alert_type == alert_type,
            StockAlert.component_id == component_id,
            StockAlert.status == AlertStatus.OPEN,
        ).one_or_none()

    def list(
        self,
        filters: AlertFilters,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[Sequence[StockAlert], int]:
        """List alerts, most urgent and most recent first."""
        total = self._apply_filters(self._db.query(func.count(StockAlert.id)), filters).scalar() or 0

        offset = (page - 1) * page_size
        items = (
            self._apply_filters(self._db.query(StockAlert), filters)
            .order_by(_SEVERITY_RANK.desc(), StockAlert.generated_at.desc(), StockAlert.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )
        return items, total

    def count_open(self, severity: AlertSeverity | None = None) -> int:
        query = self._db.query(func.count(StockAlert.id)).filter(StockAlert.status == AlertStatus.OPEN)
        if severity is not None:
            query = query.filter(StockAlert.severity == severity)
        return query.scalar() or 0

    def count_open_by_type(self) -> list[tuple[AlertType, int]]:
        rows = (
            self._db.query(StockAlert.alert_type, func.count(StockAlert.id))
            .filter(StockAlert.status == AlertStatus.OPEN)
            .group_by(StockAlert.alert_type)
            .all()
        )
        return sorted(((alert_type, count) for alert_type, count in rows), key=lambda row: row[0].value)

    def recent_open(self, limit: int = 10) -> list[StockAlert]:
        return (
            self._db.query(StockAlert)
            .filter(StockAlert.status == AlertStatus.OPEN)
            .order_by(_SEVERITY_RANK.desc(), StockAlert.generated_at.desc(), StockAlert.id.desc())
            .limit(limit)
            .all()
        )

    # ========================================================================
    # Private Helpers
    # ========================================================================

    @staticmethod
    def _apply_filters(query: Query, filters: AlertFilters) -> Query:
        if filters.alert_type is not None:
            query = query.filter(StockAlert.alert_type == filters.alert_type)
        if filters.severity is not None:
            query = query.filter(StockAlert.severity == filters.severity)
        if filters.status is not None:
            query = query.filter(StockAlert.status == filters.status)
        if filters.component_id is not None:
            query = query.filter(StockAlert.component_id == filters.component_id)
        if filters.lot_id is not None:
            query = query.filter(StockAlert.lot_id == filters.lot_id)
        if filters.date_from is not None:
            query = query.filter(StockAlert.generated_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.filter(StockAlert.generated_at <= filters.date_to)
        return query
