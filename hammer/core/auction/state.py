"""
Auction state.

The Auction record is the single live auction owned by the engine.
Only `settled` is stored; whether bidding is still open is derived
from the clock at each check (see auction_phase).

Lifecycle:
    UNINITIALIZED -> ACTIVE -> EXPIRED -> SETTLED -> (next unit) ACTIVE
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional


class AuctionPhase(IntEnum):
    """Derived lifecycle phase of an auction."""
    UNINITIALIZED = 0  # No auction created yet
    ACTIVE = 1         # Accepting bids
    EXPIRED = 2        # Past end_time, awaiting settlement
    SETTLED = 3        # Unit and proceeds delivered


@dataclass
class Auction:
    """
    The auction currently running (or most recently settled).

    Attributes:
        unit_id: Unit being sold
        amount: Highest bid so far (native units)
        start_time: Unix timestamp bidding opened
        end_time: Unix timestamp bidding closes (only moves forward)
        reserve_price: Minimum bid, fixed at creation
        bidder: Current high bidder, None when there are no bids
        settled: True once unit and proceeds are delivered
        time_buffer: Anti-snipe window in force for this auction
        min_bid_increment_percentage: Increment in force for this auction
    """
    unit_id: int
    amount: int = 0
    start_time: int = 0
    end_time: int = 0
    reserve_price: int = 0
    bidder: Optional[str] = None
    settled: bool = False
    time_buffer: int = 0
    min_bid_increment_percentage: int = 0

    def is_expired(self, now: int) -> bool:
        """Bidding window has closed."""
        return now >= self.end_time

    def minimum_bid(self) -> int:
        """Smallest value the next bid must reach."""
        if self.bidder is None:
            return self.reserve_price
        increment = self.amount * self.min_bid_increment_percentage // 100
        # A bid must always beat the current high bid outright
        return max(self.amount + increment, self.amount + 1, self.reserve_price)

    def snapshot(self) -> "Auction":
        """Detached copy safe to hand to callers."""
        return replace(self)


@dataclass(frozen=True)
class Settlement:
    """Historical record of a settled auction."""
    unit_id: int
    winner: Optional[str]
    amount: int
    settled_at: int


def auction_phase(auction: Optional[Auction], now: int) -> AuctionPhase:
    """
    Derive the phase of an auction at time `now`.

    Args:
        auction: The auction record, or None before the first auction
        now: Current unix timestamp

    Returns:
        AuctionPhase
    """
    if auction is None or auction.start_time == 0:
        return AuctionPhase.UNINITIALIZED
    if auction.settled:
        return AuctionPhase.SETTLED
    if auction.is_expired(now):
        return AuctionPhase.EXPIRED
    return AuctionPhase.ACTIVE
