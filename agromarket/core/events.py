# File: agromarket/core/events.py

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
import logging
import threading
import uuid

logger = logging.getLogger(__name__)

# Type definitions
T_event = TypeVar("T_event", bound="DomainEvent")
EventHandler = Callable[[T_event], None]


# --- Base DomainEvent ---
@dataclass(eq=False)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["event_type"] = self.__class__.__name__
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
        return result


# --- Inventory Event Definitions ---
@dataclass(eq=False)
class StockAdjusted(DomainEvent):
    product_id: int = 0
    log_type: str = ""
    previous_stock: int = 0
    new_stock: int = 0
    sale_id: Optional[int] = None
    actor_id: Optional[int] = None


@dataclass(eq=False)
class LowStockAlert(DomainEvent):
    product_id: int = 0
    name: str = ""
    stock: int = 0
    min_stock: int = 0


# --- Sale Event Definitions ---
@dataclass(eq=False)
class SaleCreated(DomainEvent):
    sale_id: int = 0
    buyer_id: int = 0
    total: Decimal = Decimal("0.00")
    item_count: int = 0


@dataclass(eq=False)
class PaymentStatusChanged(DomainEvent):
    sale_id: int = 0
    previous_status: str = ""
    new_status: str = ""
    transaction_ref: Optional[str] = None


@dataclass(eq=False)
class SaleRefunded(DomainEvent):
    sale_id: int = 0
    total: Decimal = Decimal("0.00")


class EventBus:
    """
    Synchronous in-process event bus.

    Handlers are registered per event class and called in subscription order.
    A failing handler is logged and never interrupts publishing, so the
    caller's committed work is not affected by subscribers.

    Usage:
        bus = EventBus()
        bus.subscribe(SaleCreated, handle_sale_created)
        bus.publish(SaleCreated(sale_id=1, buyer_id=7))
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        with self._lock:
            self.subscribers[event_type.__name__].append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event_type.__name__}")

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        with self._lock:
            handlers = self.subscribers.get(event_type.__name__, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event synchronously to all registered handlers.

        Args:
            event: The domain event to publish
        """
        event_type = type(event).__name__
        logger.debug(f"Publishing event {event_type} ID {event.event_id}")
        with self._lock:
            subscribers_copy = list(self.subscribers.get(event_type, []))
        for handler in subscribers_copy:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', handler)} for {event_type} ID {event.event_id}: {e}",
                    exc_info=True,
                )


# Process-wide bus used by the HTTP adapter
global_event_bus = EventBus()
