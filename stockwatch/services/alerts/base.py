"""
Base alert service with shared functionality.

Every alert service receives the database session through its constructor
and shares the clock, so tests can move time forward without patching.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class BaseAlertService:
    """
    Base service class for the alerting engine.

    All alert services inherit from this class to share the database
    session and the clock.
    """

    def __init__(self, db: Session, clock: Clock | None = None):
        """
        Initialize the base alert service.

        Args:
            db: SQLAlchemy database session
            clock: Callable returning the current aware datetime (UTC by default)
        """
        self._db = db
        self._clock = clock or utcnow

    @property
    def db(self) -> Session:
        """Database session accessor."""
        return self._db

    def now(self) -> dt.datetime:
        return self._clock()
