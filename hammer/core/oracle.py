"""
Price Reference - USD price of the native currency.

Wraps a Chainlink-style feed reporting a scaled integer answer and
normalizes it by dividing out the feed's decimals. Every call reads
the feed again; the engine snapshots the result once per auction.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from hammer.core.errors import PriceUnavailable
from hammer.core.clock import Clock, system_clock
from hammer.utils.logger import get_logger

logger = get_logger("oracle")


@dataclass(frozen=True)
class RoundData:
    """One answer reported by a price feed."""
    round_id: int
    answer: int       # price scaled by 10**decimals
    updated_at: int   # unix timestamp


class PriceFeed(Protocol):
    """Upstream feed. Aggregation is the feed's own business."""

    decimals: int

    def latest_round_data(self) -> RoundData:
        ...


class StaticPriceFeed:
    """
    Settable feed for tests, demos and manual operation.

    Each update starts a new round stamped with the clock.
    """

    def __init__(self, answer: int, decimals: int = 8, clock: Clock = system_clock):
        self.decimals = decimals
        self.clock = clock
        self._round = RoundData(round_id=1, answer=answer, updated_at=clock())

    def update(self, answer: int) -> None:
        self._round = RoundData(
            round_id=self._round.round_id + 1,
            answer=answer,
            updated_at=self.clock(),
        )

    def latest_round_data(self) -> RoundData:
        return self._round


class PriceReference:
    """
    Normalized view over a PriceFeed.

    Args:
        feed: Upstream feed
        max_staleness: Reject rounds older than this many seconds (None = never)
        clock: Time source for staleness checks
    """

    def __init__(
        self,
        feed: PriceFeed,
        max_staleness: Optional[int] = None,
        clock: Clock = system_clock,
    ):
        self.feed = feed
        self.max_staleness = max_staleness
        self.clock = clock

    def latest_price(self) -> int:
        """
        Most recent price with the feed's decimal scaling removed.

        Raises:
            PriceUnavailable: Non-positive answer, stale round, or a price
                that normalizes to zero
        """
        data = self.feed.latest_round_data()

        if data.answer <= 0:
            raise PriceUnavailable(f"Feed answered {data.answer} in round {data.round_id}")

        if self.max_staleness is not None:
            age = self.clock() - data.updated_at
            if age > self.max_staleness:
                raise PriceUnavailable(f"Round {data.round_id} is {age}s old (max {self.max_staleness}s)")

        price = data.answer // 10 ** self.feed.decimals
        if price == 0:
            raise PriceUnavailable(f"Answer {data.answer} rounds to zero at {self.feed.decimals} decimals")

        logger.debug(f"Latest price {price} (round {data.round_id})")
        return price
