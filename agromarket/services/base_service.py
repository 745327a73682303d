# File: agromarket/services/base_service.py

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from agromarket.core.events import DomainEvent, EventBus
from agromarket.core.exceptions import (
    BusyException,
    DomainException,
    MarketException,
    PersistenceException,
    ValidationException,
)
from agromarket.db.models.base import ModelValidationError
from agromarket.db.session import begin_write

logger = logging.getLogger(__name__)

# Session.info key holding events raised inside the current write transaction
PENDING_EVENTS_KEY = "agromarket_pending_events"

# Driver messages and PostgreSQL SQLSTATEs meaning "could not get the lock in time"
_LOCK_TIMEOUT_MESSAGES = ("database is locked", "database table is locked", "lock timeout", "could not obtain lock")
_LOCK_TIMEOUT_PGCODES = ("55P03", "40P01")


class BaseService:
    """
    Base service for all AgroMarket services.

    Provides common functionality including:
    - Write transaction management with row locking
    - Error handling and standardization
    - Logging
    - Event publishing after commit
    """

    def __init__(self, session: Session, event_bus: Optional[EventBus] = None):
        """
        Initialize service with dependencies.

        Args:
            session: Database session for persistence operations
            event_bus: Optional event bus for publishing domain events
        """
        self.session = session
        self.event_bus = event_bus

    @contextmanager
    def transaction(self, operation: str) -> Iterator[None]:
        """
        Provide a write transaction around a stock-affecting operation.

        Any read transaction still open on the session is closed first, so the
        write transaction starts fresh and takes its locks before reading.
        Edits made to loaded objects outside a service write are discarded
        rather than committed, since they carry no inventory log entry.
        Events queued with `_emit` are published only after a successful commit.

        Args:
            operation: Name of the operation, used in logs and error details

        Raises:
            DomainException: Caller errors, re-raised unchanged after rollback
            BusyException: When a lock could not be acquired in time
            PersistenceException: For any other storage failure
        """
        if self.session.new or self.session.dirty or self.session.deleted:
            logger.warning(f"Discarding uncommitted session changes before {operation}")
            self.session.rollback()
        elif self.session.in_transaction():
            self.session.commit()
        pending: List[DomainEvent] = []
        self.session.info[PENDING_EVENTS_KEY] = pending

        try:
            begin_write(self.session)
            yield
            self.session.commit()
        except DomainException as e:
            self.session.rollback()
            logger.warning(f"{operation} rejected: {e.message}")
            raise
        except ModelValidationError as e:
            self.session.rollback()
            logger.warning(f"{operation} rejected by model validation: {e}")
            raise ValidationException(e.message, {e.field: [e.message]}) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Transaction {operation} failed: {str(e)}", exc_info=True)
            raise self._transform_error(e, operation) from e
        except OverflowError as e:
            # Raised by the driver while binding a value the column cannot hold
            self.session.rollback()
            logger.error(f"Transaction {operation} failed: {str(e)}", exc_info=True)
            raise PersistenceException(f"Database error during {operation}: {e}", operation) from e
        except Exception as e:
            self.session.rollback()
            logger.error(f"Transaction {operation} failed: {str(e)}", exc_info=True)
            raise
        finally:
            self.session.info.pop(PENDING_EVENTS_KEY, None)

        self._publish(pending)

    def _transform_error(self, error: SQLAlchemyError, operation: str) -> MarketException:
        """Translate a database error into a storage-layer exception."""
        if isinstance(error, OperationalError) and self._is_lock_timeout(error):
            return BusyException(operation=operation)
        cause = getattr(error, "orig", None) or error
        return PersistenceException(f"Database error during {operation}: {cause}", operation)

    @staticmethod
    def _is_lock_timeout(error: OperationalError) -> bool:
        pgcode = getattr(error.orig, "pgcode", None)
        if pgcode in _LOCK_TIMEOUT_PGCODES:
            return True
        message = str(error.orig).lower()
        return any(text in message for text in _LOCK_TIMEOUT_MESSAGES)

    def _emit(self, event: DomainEvent) -> None:
        """Queue an event for publication once the current transaction commits."""
        pending = self.session.info.get(PENDING_EVENTS_KEY)
        if pending is None:
            self._publish([event])
        else:
            pending.append(event)

    def _publish(self, events: List[DomainEvent]) -> None:
        if not self.event_bus:
            return
        for event in events:
            self.event_bus.publish(event)
