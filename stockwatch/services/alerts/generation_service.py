"""
Alert Generation Orchestrator.

A sweep reads the component stock ledger and the lot ledger, classifies each
candidate and opens alerts for conditions that are not already flagged.
Each candidate is handled in its own transaction: a failure is rolled back,
recorded in the result and the sweep moves on to the next candidate.
"""
from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from stockwatch import metrics
from stockwatch.core.cache import SummaryCache
from stockwatch.core.config import settings
from stockwatch.core.exceptions import (
    AlertAlreadyResolvedError,
    ComponentNotFoundError,
    PartialGenerationFailure,
)
from stockwatch.models.alert_models import AlertType, StockAlert
from stockwatch.models.alert_schemas import (
    GenerationCounts,
    GenerationFailureOut,
    GenerationResultOut,
)
from stockwatch.models.inventory_models import Component, ComponentLot, LotState
from .base import BaseAlertService, Clock
from .classifier import Classification, classify_expiration, classify_stock, days_until
from .repository import AlertRepository
from .resolution_service import AlertResolutionService

logger = logging.getLogger(__name__)


@dataclass
class GenerationFailure:
    subject: str  # "component" or "lot"
    subject_id: int
    error: str


@dataclass
class GenerationResult:
    """Outcome of a sweep. Always returned, even when some items failed."""
    counts_by_type: dict[AlertType, int] = field(default_factory=lambda: {t: 0 for t in AlertType})
    failures: list[GenerationFailure] = field(default_factory=list)
    superseded: int = 0

    @property
    def total_created(self) -> int:
        return sum(self.counts_by_type.values())

    def record(self, alert_type: AlertType) -> None:
        self.counts_by_type[alert_type] += 1

    def raise_for_failures(self) -> None:
        """Raise PartialGenerationFailure if any candidate failed."""
        if self.failures:
            raise PartialGenerationFailure(
                [(f.subject, f.subject_id) for f in self.failures],
                created=self.total_created,
            )

    def to_schema(self) -> GenerationResultOut:
        return GenerationResultOut(
            alerts_generated=self.total_created,
            by_type=GenerationCounts(**{t.counter_key: n for t, n in self.counts_by_type.items()}),
            failed_items=len(self.failures),
            failures=[
                GenerationFailureOut(subject=f.subject, subject_id=f.subject_id, error=f.error)
                for f in self.failures
            ],
        )


class AlertGenerationService(BaseAlertService):
    """Service that sweeps the ledgers and opens alerts."""

    def __init__(
        self,
        db: Session,
        clock: Clock | None = None,
        repository: AlertRepository | None = None,
        resolution: AlertResolutionService | None = None,
        cache: SummaryCache | None = None,
        *,
        critical_floor: int | None = None,
        critical_days: int | None = None,
        warning_days: int | None = None,
        scan_window_days: int | None = None,
        system_actor_id: int | None = None,
    ):
        super().__init__(db, clock)
        self._alerts = repository or AlertRepository(db, clock)
        self._resolution = resolution or AlertResolutionService(db, clock, self._alerts, cache)
        self._cache = cache

        self._critical_floor = critical_floor if critical_floor is not None else settings.STOCK_CRITICAL_FLOOR
        self._critical_days = critical_days if critical_days is not None else settings.EXPIRATION_CRITICAL_DAYS
        self._warning_days = warning_days if warning_days is not None else settings.EXPIRATION_WARNING_DAYS
        self._scan_window_days = (
            scan_window_days if scan_window_days is not None else settings.EXPIRATION_SCAN_WINDOW_DAYS
        )
        self._system_actor_id = system_actor_id if system_actor_id is not None else settings.SYSTEM_ACTOR_ID

    # ========================================================================
    # Public operations
    # ========================================================================

    def generate_alerts(self) -> GenerationResult:
        """
        Sweep every component and every near-expiry lot.

        Safe to call repeatedly and concurrently: a condition that already
        has an OPEN alert is never flagged twice.
        """
        started = time.perf_counter()
        now = self.now()
        result = GenerationResult()

        for row in self._load_components():
            self._run_isolated(result, "component", row.id, lambda row=row: self._evaluate_component(row, result))

        for row in self._load_expiring_lots(now):
            self._run_isolated(result, "lot", row.id, lambda row=row: self._evaluate_lot(row, now, result))

        self._finish(result)
        metrics.sweep_completed(time.perf_counter() - started)
        logger.info(
            "Alert sweep finished: created=%s failed=%s superseded=%s",
            result.total_created,
            len(result.failures),
            result.superseded,
            extra={"alerts_created": result.total_created, "items_failed": len(result.failures)},
        )
        return result

    def evaluate_component(self, component_id: int) -> GenerationResult:
        """Re-check a single component, e.g. right after a stock movement."""
        row = self._component_query().filter(Component.id == component_id).one_or_none()
        if row is None:
            raise ComponentNotFoundError(component_id)

        result = GenerationResult()
        self._run_isolated(result, "component", row.id, lambda: self._evaluate_component(row, result))
        self._finish(result)
        return result

    # ========================================================================
    # Candidate evaluation
    # ========================================================================

    def _evaluate_component(self, row: Any, result: GenerationResult) -> None:
        classification = classify_stock(
            row.name,
            row.quantity_on_hand or 0,
            row.minimum_quantity,
            critical_floor=self._critical_floor,
        )
        if classification is None:
            return

        self._open_alert(classification, result, component_id=row.id)
        if classification.alert_type is AlertType.STOCK_CRITICAL:
            self._supersede_minimum(row.id, result)

    def _evaluate_lot(self, row: Any, now: dt.datetime, result: GenerationResult) -> None:
        classification = classify_expiration(
            row.lot_code,
            row.component_name,
            days_until(row.expiration_date, now),
            critical_days=self._critical_days,
            warning_days=self._warning_days,
        )
        if classification is None:
            return
        self._open_alert(classification, result, lot_id=row.id)

    def _open_alert(
        self,
        classification: Classification,
        result: GenerationResult,
        component_id: int | None = None,
        lot_id: int | None = None,
    ) -> None:
        if self._alerts.has_open_alert(classification.alert_type, component_id=component_id, lot_id=lot_id):
            return

        created = self._alerts.create(
            StockAlert(
                alert_type=classification.alert_type,
                component_id=component_id,
                lot_id=lot_id,
                message=classification.message,
                trigger_value=classification.trigger_value,
                threshold_value=classification.threshold_value,
            )
        )
        if created is None:
            return

        result.record(created.alert_type)
        metrics.alert_generated(created.alert_type.value)
        logger.info(
            "Opened %s alert %s: %s",
            created.alert_type.value,
            created.id,
            created.message,
            extra={"alert_id": created.id, "alert_type": created.alert_type.value},
        )

    def _supersede_minimum(self, component_id: int, result: GenerationResult) -> None:
        """Close an OPEN STOCK_MINIMUM alert once the component is critical."""
        minimum = self._alerts.find_open(AlertType.STOCK_MINIMUM, component_id)
        if minimum is None:
            return

        critical = self._alerts.find_open(AlertType.STOCK_CRITICAL, component_id)
        note = (
            f"Superseded by STOCK_CRITICAL alert {critical.id}"
            if critical is not None
            else "Superseded by STOCK_CRITICAL condition"
        )
        try:
            self._resolution.resolve(minimum.id, self._system_actor_id, note, system=True)
        except AlertAlreadyResolvedError:
            # Closed concurrently by an operator or another sweep
            return
        result.superseded += 1

    # ========================================================================
    # Private Helpers
    # ========================================================================

    def _run_isolated(
        self,
        result: GenerationResult,
        subject: str,
        subject_id: int,
        evaluate: Callable[[], None],
    ) -> None:
        try:
            evaluate()
        except Exception as exc:  # noqa: BLE001 - reported in the result, sweep continues
            self._db.rollback()
            logger.exception(
                "Alert evaluation failed for %s %s",
                subject,
                subject_id,
                extra={"subject": subject, "subject_id": subject_id},
            )
            metrics.generation_failure(subject)
            result.failures.append(GenerationFailure(subject, subject_id, str(exc) or type(exc).__name__))

    def _finish(self, result: GenerationResult) -> None:
        if self._cache is not None and (result.total_created or result.superseded):
            self._cache.invalidate()

    def _component_query(self):
        return self._db.query(
            Component.id,
            Component.name,
            Component.quantity_on_hand,
            Component.minimum_quantity,
        )

    def _load_components(self) -> list[Any]:
        # Materialized up front: each candidate commits or rolls back on its own
        return self._component_query().order_by(Component.id).all()

    def _load_expiring_lots(self, now: dt.datetime) -> list[Any]:
        horizon = now + dt.timedelta(days=self._scan_window_days)
        return (
            self._db.query(
                ComponentLot.id,
                ComponentLot.lot_code,
                ComponentLot.expiration_date,
                Component.name.label("component_name"),
            )
            .join(Component, ComponentLot.component_id == Component.id)
            .filter(
                ComponentLot.state == LotState.AVAILABLE,
                ComponentLot.quantity_remaining > 0,
                ComponentLot.expiration_date.isnot(None),
                ComponentLot.expiration_date <= horizon,
            )
            .order_by(ComponentLot.expiration_date, ComponentLot.id)
            .all()
        )
