"""
Threshold classification for stock readings and lot expirations.

Pure functions: no session, no clock. Each rule set checks its critical tier
first and stops there, so a reading maps to at most one alert type.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass

from stockwatch.models.alert_models import AlertSeverity, AlertType

DEFAULT_CRITICAL_FLOOR = 2
DEFAULT_EXPIRATION_CRITICAL_DAYS = 7
DEFAULT_EXPIRATION_WARNING_DAYS = 30

_UNNAMED = "Unnamed component"
_SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class Classification:
    """Result of a rule firing: the alert to open and the facts behind it."""
    alert_type: AlertType
    message: str
    trigger_value: int
    threshold_value: int

    @property
    def severity(self) -> AlertSeverity:
        return self.alert_type.severity


def classify_stock(
    name: str | None,
    quantity: int,
    minimum: int | None,
    *,
    critical_floor: int = DEFAULT_CRITICAL_FLOOR,
) -> Classification | None:
    """Classify a component's stock reading.

    Below the absolute floor is critical; otherwise below a configured minimum
    is a warning. A missing or zero minimum disables the warning tier.
    """
    label = name or _UNNAMED
    if quantity < critical_floor:
        return Classification(
            alert_type=AlertType.STOCK_CRITICAL,
            message=(
                f'CRITICAL: stock on hand ({quantity}) of component "{label}" '
                f"is below {critical_floor} units"
            ),
            trigger_value=quantity,
            threshold_value=critical_floor,
        )
    if minimum and quantity < minimum:
        return Classification(
            alert_type=AlertType.STOCK_MINIMUM,
            message=(
                f'Stock on hand ({quantity}) of component "{label}" '
                f"is below the defined minimum ({minimum})"
            ),
            trigger_value=quantity,
            threshold_value=minimum,
        )
    return None


def days_until(expiration: dt.datetime, now: dt.datetime) -> int:
    """Whole days left before ``expiration``, rounded up.

    Naive datetimes (SQLite hands them back that way) are read as UTC.
    """
    delta = _as_utc(expiration) - _as_utc(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def classify_expiration(
    lot_code: str,
    component_name: str | None,
    days_remaining: int,
    *,
    critical_days: int = DEFAULT_EXPIRATION_CRITICAL_DAYS,
    warning_days: int = DEFAULT_EXPIRATION_WARNING_DAYS,
) -> Classification | None:
    """Classify a lot by the days left before it expires."""
    label = component_name or _UNNAMED
    if days_remaining < critical_days:
        return Classification(
            alert_type=AlertType.EXPIRATION_CRITICAL,
            message=f'CRITICAL: Lot {lot_code} of "{label}" {_expiry_phrase(days_remaining)}',
            trigger_value=days_remaining,
            threshold_value=critical_days,
        )
    if days_remaining < warning_days:
        return Classification(
            alert_type=AlertType.EXPIRATION_UPCOMING,
            message=f'Lot {lot_code} of "{label}" {_expiry_phrase(days_remaining)}',
            trigger_value=days_remaining,
            threshold_value=warning_days,
        )
    return None


def _expiry_phrase(days: int) -> str:
    if days > 0:
        return f"expires in {days} day{'s' if days != 1 else ''}"
    if days == 0:
        return "expires today"
    return f"expired {-days} day{'s' if days != -1 else ''} ago"


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)
