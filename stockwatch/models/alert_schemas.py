"""
Pydantic schemas for the stock alert API.
"""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stockwatch.models.alert_models import AlertSeverity, AlertStatus, AlertType

# ============================================================================
# Alert Schemas
# ============================================================================

class ComponentRef(BaseModel):
    """Component summary embedded in alert responses."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    internal_code: str | None = None


class LotRef(BaseModel):
    """Lot summary embedded in expiration alert responses."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    lot_code: str
    component_id: int
    expiration_date: dt.datetime | None = None


class AlertOut(BaseModel):
    """Schema for alert API response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    alert_type: AlertType
    severity: AlertSeverity
    status: AlertStatus
    component_id: int | None = None
    lot_id: int | None = None
    message: str
    trigger_value: int | None = None
    threshold_value: int | None = None
    generated_at: dt.datetime
    resolved_at: dt.datetime | None = None
    resolved_by: int | None = None
    resolution_notes: str | None = None

    component: ComponentRef | None = None
    lot: LotRef | None = None


class AlertListOut(BaseModel):
    """Paginated alert list."""
    alerts: list[AlertOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class AlertFilters(BaseModel):
    """Optional filters for alert listing. All combine with AND."""
    model_config = ConfigDict(extra="forbid")

    alert_type: AlertType | None = None
    severity: AlertSeverity | None = None
    status: AlertStatus | None = None
    component_id: int | None = Field(None, ge=1)
    lot_id: int | None = Field(None, ge=1)
    date_from: dt.datetime | None = None
    date_to: dt.datetime | None = None

    @field_validator("date_from", "date_to")
    @classmethod
    def _as_utc(cls, value: dt.datetime | None) -> dt.datetime | None:
        # Stored timestamps are UTC; naive bounds are read the same way
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)

    @model_validator(mode="after")
    def _check_date_range(self) -> AlertFilters:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class AlertResolveRequest(BaseModel):
    """Body for resolving an alert."""
    resolved_by_user_id: int = Field(..., ge=1)
    notes: str | None = Field(None, max_length=2000)


# ============================================================================
# Generation Schemas
# ============================================================================

class GenerationCounts(BaseModel):
    stock_minimum: int = 0
    stock_critical: int = 0
    expiration_upcoming: int = 0
    expiration_critical: int = 0


class GenerationFailureOut(BaseModel):
    subject: str  # "component" or "lot"
    subject_id: int
    error: str


class GenerationResultOut(BaseModel):
    """Outcome of a sweep: what was created and what could not be processed."""
    alerts_generated: int
    by_type: GenerationCounts
    failed_items: int = 0
    failures: list[GenerationFailureOut] = []


# ============================================================================
# Dashboard Schemas
# ============================================================================

class AlertTypeCount(BaseModel):
    alert_type: AlertType
    count: int


class AlertDashboardOut(BaseModel):
    """Summary of open alerts for the dashboard."""
    open_total: int
    open_critical_total: int
    counts_by_type: list[AlertTypeCount]
    recent_open: list[AlertOut]
