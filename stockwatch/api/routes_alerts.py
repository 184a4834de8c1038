"""
Stock Alert API Routes.

- Generation (full sweep, single component re-check)
- Listing with filters and pagination
- Dashboard summary
- Resolution
"""
import datetime as dt
import logging
from typing import Annotated, TypeAlias

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from stockwatch.core.cache import SummaryCache
from stockwatch.db.session import get_db
from stockwatch.models import alert_schemas as schemas
from stockwatch.services.alerts import AlertService, build_alert_service

router = APIRouter()
logger = logging.getLogger(__name__)

DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


def get_summary_cache(request: Request) -> SummaryCache | None:
    """Cache built for this application in create_app()."""
    return getattr(request.app.state, "summary_cache", None)


def get_alert_service(db: DbDep, cache: Annotated[SummaryCache | None, Depends(get_summary_cache)]) -> AlertService:
    return build_alert_service(db, cache=cache)


AlertServiceDep: TypeAlias = Annotated[AlertService, Depends(get_alert_service)]


# ============================================================================
# Generation Endpoints
# ============================================================================

@router.post("/generate", response_model=schemas.GenerationResultOut)
def generate_alerts(service: AlertServiceDep):
    """Sweep all components and near-expiry lots and open new alerts."""
    result = service.generate_alerts()
    return result.to_schema()


@router.post("/components/{component_id}/evaluate", response_model=schemas.GenerationResultOut)
def evaluate_component(component_id: int, service: AlertServiceDep):
    """Re-check one component's stock, typically after an inventory movement."""
    result = service.evaluate_component(component_id)
    return result.to_schema()


# ============================================================================
# Query Endpoints
# ============================================================================

@router.get("", response_model=schemas.AlertListOut)
def list_alerts(
    service: AlertServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, description="Items per page (upper bound from ALERT_LIST_MAX_PAGE_SIZE)"),
    alert_type: str | None = Query(None, description="STOCK_MINIMUM, STOCK_CRITICAL, EXPIRATION_UPCOMING or EXPIRATION_CRITICAL"),
    severity: str | None = Query(None, description="WARNING or CRITICAL"),
    status: str | None = Query(None, description="OPEN or RESOLVED"),
    component_id: int | None = Query(None, description="Filter by component"),
    lot_id: int | None = Query(None, description="Filter by lot"),
    date_from: dt.datetime | None = Query(None, description="Generated at or after"),
    date_to: dt.datetime | None = Query(None, description="Generated at or before"),
):
    """List alerts, critical and most recent first."""
    return service.list_alerts(
        page=page,
        page_size=page_size,
        alert_type=alert_type,
        severity=severity,
        status=status,
        component_id=component_id,
        lot_id=lot_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/dashboard", response_model=schemas.AlertDashboardOut)
def get_dashboard(service: AlertServiceDep):
    """Open-alert totals, per-type counts and the most recent open alerts."""
    return service.dashboard_summary()


@router.get("/{alert_id}", response_model=schemas.AlertOut)
def get_alert(alert_id: int, service: AlertServiceDep):
    """Get an alert by ID."""
    return service.get_alert(alert_id)


# ============================================================================
# Resolution Endpoints
# ============================================================================

@router.post("/{alert_id}/resolve", response_model=schemas.AlertOut)
def resolve_alert(
    alert_id: int,
    data: schemas.AlertResolveRequest,
    service: AlertServiceDep,
):
    """Resolve an open alert. Resolving twice is rejected with 409."""
    alert = service.resolve_alert(alert_id, resolved_by=data.resolved_by_user_id, notes=data.notes)
    return alert
