"""
Auction events.

Each event carries enough data for an observer to reconstruct engine
state without querying it. Events are published on an EventBus, which
keeps an in-memory history and fans out to subscribers.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Type, TypeVar

from hammer.core.config import EligibilityMode
from hammer.utils.logger import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class Event:
    """Base class for engine notifications."""


# =============================================================================
# Lifecycle
# =============================================================================


@dataclass(frozen=True)
class AuctionCreated(Event):
    unit_id: int
    start_time: int
    end_time: int
    reserve_price: int


@dataclass(frozen=True)
class AuctionBid(Event):
    unit_id: int
    bidder: str
    amount: int
    extended: bool


@dataclass(frozen=True)
class AuctionExtended(Event):
    unit_id: int
    end_time: int


@dataclass(frozen=True)
class AuctionSettled(Event):
    unit_id: int
    winner: Optional[str]
    amount: int


@dataclass(frozen=True)
class EnginePaused(Event):
    reason: str = ""


@dataclass(frozen=True)
class EngineUnpaused(Event):
    pass


# =============================================================================
# Configuration updates
# =============================================================================


@dataclass(frozen=True)
class TimeBufferUpdated(Event):
    time_buffer: int


@dataclass(frozen=True)
class ReservePriceUSDUpdated(Event):
    reserve_price_usd: int


@dataclass(frozen=True)
class MinBidIncrementPercentageUpdated(Event):
    min_bid_increment_percentage: int


@dataclass(frozen=True)
class EligibilityModeUpdated(Event):
    eligibility_mode: EligibilityMode


@dataclass(frozen=True)
class PublicBiddingUpdated(Event):
    public_bidding: bool


# =============================================================================
# Event Bus
# =============================================================================


E = TypeVar("E", bound=Event)
Subscriber = Callable[[Event], None]


class EventBus:
    """
    In-process notification channel.

    Subscribers are called synchronously in subscription order. A
    subscriber that raises aborts the publishing operation, so observers
    should not raise.
    """

    def __init__(self):
        self.history: List[Event] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback for every future event."""
        self._subscribers.append(callback)

    def publish(self, event: Event) -> None:
        """Record an event and notify subscribers."""
        self.history.append(event)
        logger.debug(f"Event: {event}")
        for callback in self._subscribers:
            callback(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        """All recorded events of the given type, oldest first."""
        return [e for e in self.history if isinstance(e, event_type)]

    def last(self) -> Optional[Event]:
        """Most recent event, if any."""
        return self.history[-1] if self.history else None
