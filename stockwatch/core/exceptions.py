"""Exception hierarchy for the stock alerting engine.

Every error a caller can observe derives from ``StockwatchException`` so the
API layer can translate them in one place.

Error codes follow pattern: [CATEGORY][NUMBER]
- ALR: Alert lookup/lifecycle errors (001-099)
- INV: Inventory ledger errors (100-199)
- GEN: Alert generation errors (200-299)
- VAL: Request validation errors (300-399)
"""

from __future__ import annotations

from typing import Any


class StockwatchException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a readable message and metadata.

        Args:
            message: Human readable error message
            code: Unique error code (e.g., "ALR001")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# ALERT ERRORS (ALR001-099)
# ============================================================================

class AlertError(StockwatchException):
    """Base class for alert lookup and lifecycle errors."""
    pass


class AlertNotFoundError(AlertError):
    """Alert does not exist."""

    def __init__(self, alert_id: int):
        super().__init__(
            message=f"Alert {alert_id} not found",
            code="ALR001",
            status_code=404,
            details={"alert_id": alert_id},
        )


class AlertAlreadyResolvedError(AlertError):
    """Resolution was requested for an alert that is already closed."""

    def __init__(self, alert_id: int, resolved_by: int | None = None):
        super().__init__(
            message=f"Alert {alert_id} is already resolved",
            code="ALR002",
            status_code=409,
            details={"alert_id": alert_id, "resolved_by": resolved_by},
        )


# ============================================================================
# INVENTORY ERRORS (INV100-199)
# ============================================================================

class ComponentNotFoundError(StockwatchException):
    """Component is not present in the stock ledger."""

    def __init__(self, component_id: int):
        super().__init__(
            message=f"Component {component_id} not found",
            code="INV100",
            status_code=404,
            details={"component_id": component_id},
        )


# ============================================================================
# GENERATION ERRORS (GEN200-299)
# ============================================================================

class PartialGenerationFailure(StockwatchException):
    """Some candidates failed during a sweep while others were processed.

    ``failed_items`` holds ``(subject, subject_id)`` pairs, e.g.
    ``("component", 12)`` or ``("lot", 7)``.
    """

    def __init__(self, failed_items: list[tuple[str, int]], created: int = 0):
        self.failed_items = failed_items
        super().__init__(
            message=f"{len(failed_items)} item(s) failed classification; {created} alert(s) generated",
            code="GEN200",
            status_code=500,
            details={
                "alerts_generated": created,
                "failed_items": [{"subject": s, "id": i} for s, i in failed_items],
            },
        )


# ============================================================================
# VALIDATION ERRORS (VAL300-399)
# ============================================================================

class AlertValidationError(StockwatchException):
    """Malformed filter or pagination parameters."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid value for '{field}': {reason}",
            code="VAL300",
            status_code=422,
            details={"field": field, "reason": reason},
        )
