"""
Hammer Auction Module.

This module provides the recurring auction:
- Auction record and derived lifecycle phase
- Bid admission, anti-snipe extension and settlement
- Pluggable bidding eligibility
- Event notifications
"""

from hammer.core.auction.state import (
    Auction,
    AuctionPhase,
    Settlement,
    auction_phase,
)

from hammer.core.auction.eligibility import (
    AllowAllPolicy,
    EligibilityPolicy,
    HoldingsPolicy,
    HoldingsSource,
)

from hammer.core.auction.events import (
    Event,
    EventBus,
    AuctionCreated,
    AuctionBid,
    AuctionExtended,
    AuctionSettled,
    EnginePaused,
    EngineUnpaused,
    TimeBufferUpdated,
    ReservePriceUSDUpdated,
    MinBidIncrementPercentageUpdated,
    EligibilityModeUpdated,
    PublicBiddingUpdated,
)

from hammer.core.auction.engine import AuctionEngine, build_engine

__all__ = [
    # State
    "Auction",
    "AuctionPhase",
    "Settlement",
    "auction_phase",
    # Eligibility
    "AllowAllPolicy",
    "EligibilityPolicy",
    "HoldingsPolicy",
    "HoldingsSource",
    # Events
    "Event",
    "EventBus",
    "AuctionCreated",
    "AuctionBid",
    "AuctionExtended",
    "AuctionSettled",
    "EnginePaused",
    "EngineUnpaused",
    "TimeBufferUpdated",
    "ReservePriceUSDUpdated",
    "MinBidIncrementPercentageUpdated",
    "EligibilityModeUpdated",
    "PublicBiddingUpdated",
    # Engine
    "AuctionEngine",
    "build_engine",
]
