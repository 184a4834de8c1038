"""
Stock alert service module.

The AlertService class acts as a facade composing the alert store, the
generation orchestrator, the query aggregator and the resolution workflow.

Usage:
    from stockwatch.services.alerts import AlertService, build_alert_service

    service = build_alert_service(db, cache=summary_cache)

    result = service.generate_alerts()
    page = service.list_alerts(status="OPEN", page=1, page_size=20)
    summary = service.dashboard_summary()
    alert = service.resolve_alert(alert_id, resolved_by=42, notes="Restocked")
"""
from __future__ import annotations

from sqlalchemy.orm import Session

from stockwatch.core.cache import SummaryCache
from stockwatch.models.alert_models import StockAlert
from stockwatch.models.alert_schemas import AlertDashboardOut, AlertListOut

from .base import Clock
from .generation_service import AlertGenerationService, GenerationFailure, GenerationResult
from .query_service import AlertQueryService
from .repository import AlertRepository
from .resolution_service import AlertResolutionService


class AlertService:
    """
    Facade for stock alert operations.

    All sub-services share one repository, one session and one clock.
    """

    def __init__(self, db: Session, cache: SummaryCache | None = None, clock: Clock | None = None):
        self._db = db
        self._repository = AlertRepository(db, clock)
        self._resolution = AlertResolutionService(db, clock, self._repository, cache)
        self._generation = AlertGenerationService(db, clock, self._repository, self._resolution, cache)
        self._queries = AlertQueryService(db, clock, self._repository, cache)

    # ========================================================================
    # Generation (delegated to AlertGenerationService)
    # ========================================================================

    def generate_alerts(self) -> GenerationResult:
        """Run a full sweep over components and lots."""
        return self._generation.generate_alerts()

    def evaluate_component(self, component_id: int) -> GenerationResult:
        """Re-check one component's stock."""
        return self._generation.evaluate_component(component_id)

    # ========================================================================
    # Queries (delegated to AlertQueryService)
    # ========================================================================

    def list_alerts(self, page: int = 1, page_size: int = 10, **filters) -> AlertListOut:
        """List alerts with filtering and pagination."""
        return self._queries.list_alerts(page=page, page_size=page_size, **filters)

    def get_alert(self, alert_id: int) -> StockAlert:
        """Get an alert by ID."""
        return self._queries.get_alert(alert_id)

    def dashboard_summary(self) -> AlertDashboardOut:
        """Get the open-alert summary for the dashboard."""
        return self._queries.dashboard_summary()

    # ========================================================================
    # Resolution (delegated to AlertResolutionService)
    # ========================================================================

    def resolve_alert(self, alert_id: int, resolved_by: int, notes: str | None = None) -> StockAlert:
        """Resolve an OPEN alert."""
        return self._resolution.resolve(alert_id, resolved_by, notes)


def build_alert_service(
    db: Session,
    cache: SummaryCache | None = None,
    clock: Clock | None = None,
) -> AlertService:
    """Factory function to create an AlertService instance."""
    return AlertService(db=db, cache=cache, clock=clock)


__all__ = [
    "AlertService",
    "build_alert_service",
    "AlertRepository",
    "AlertGenerationService",
    "AlertQueryService",
    "AlertResolutionService",
    "GenerationFailure",
    "GenerationResult",
]
