"""
Tests for the Auction Engine.

Tests cover:
1. Auction creation and reserve pricing
2. Bid admission (reserve, increment, unit id, expiry)
3. Anti-snipe extension
4. Settlement (sold and unsold)
5. Pause gate and administration
6. Configuration setters
"""

import pytest

from hammer.core.access import AuthorizationContext
from hammer.core.auction import (
    AuctionBid,
    AuctionCreated,
    AuctionExtended,
    AuctionPhase,
    AuctionSettled,
    EnginePaused,
    TimeBufferUpdated,
    build_engine,
)
from hammer.core.clock import ManualClock
from hammer.core.config import AuctionConfig
from hammer.core.errors import (
    AlreadySettled,
    BelowReserve,
    Expired,
    InsufficientFunds,
    InsufficientIncrement,
    InvalidConfiguration,
    InvalidInput,
    NotExpired,
    NotPaused,
    NotStarted,
    Paused,
    Unauthorized,
    WrongUnit,
)
from hammer.core.oracle import StaticPriceFeed
from hammer.crypto import derive_address


# =============================================================================
# Fixtures
# =============================================================================

START = 1_700_000_000

ADMIN = derive_address("test.admin")
TREASURY = derive_address("test.treasury")
ALICE = derive_address("test.alice")
BOB = derive_address("test.bob")
CAROL = derive_address("test.carol")


def as_(address):
    return AuthorizationContext(address)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def feed(clock):
    # 2000 USD per native unit, 8 decimals
    return StaticPriceFeed(answer=2000 * 10**8, decimals=8, clock=clock)


@pytest.fixture
def config():
    return AuctionConfig(
        reserve_price_usd=50_000,
        duration=86_400,
        time_buffer=900,
        min_bid_increment_percentage=0,
    )


@pytest.fixture
def engine(clock, feed, config):
    engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
    for account in (ALICE, BOB, CAROL):
        engine.ledger.mint(account, 1_000)
    engine.unpause(as_(ADMIN))
    return engine


@pytest.fixture
def unit(engine):
    return engine.auction.unit_id


# =============================================================================
# Creation Tests
# =============================================================================


class TestAuctionCreation:
    """Tests for opening auctions."""

    def test_engine_starts_paused_and_uninitialized(self, clock, feed, config):
        """A fresh engine has no auction until unpaused."""
        engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
        assert engine.paused
        assert engine.auction is None
        assert engine.phase() == AuctionPhase.UNINITIALIZED

    def test_unpause_creates_first_auction(self, engine):
        """Unpausing opens an auction with the configured window."""
        auction = engine.auction
        assert auction.start_time == START
        assert auction.end_time == START + 86_400
        assert auction.amount == 0
        assert auction.bidder is None
        assert not auction.settled
        assert engine.phase() == AuctionPhase.ACTIVE

    def test_reserve_price_truncates(self, engine):
        """50000 USD at 2000 USD/unit -> reserve of 25."""
        assert engine.auction.reserve_price == 25

    def test_reserve_price_rounds_toward_zero(self, clock, config):
        """Fractional reserve is discarded, never rounded up."""
        feed = StaticPriceFeed(answer=3000 * 10**8, decimals=8, clock=clock)
        engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
        engine.unpause(as_(ADMIN))
        assert engine.auction.reserve_price == 16  # 50000 / 3000 = 16.67

    def test_first_unit_follows_treasury_bonus(self, engine):
        """Unit 0 goes to the treasury; unit 1 is auctioned."""
        assert engine.auction.unit_id == 1
        assert engine.issuer.holdings_of(TREASURY) == [0]
        assert engine.issuer.registry.owner_of(1) == engine.address

    def test_created_event(self, engine):
        """AuctionCreated carries the bidding window."""
        event = engine.events.of_type(AuctionCreated)[0]
        assert event.unit_id == 1
        assert event.start_time == START
        assert event.end_time == START + 86_400
        assert event.reserve_price == 25

    def test_reserve_not_affected_by_later_price_moves(self, engine, feed):
        """Reserve is snapshotted at creation."""
        feed.update(1000 * 10**8)
        assert engine.auction.reserve_price == 25
        engine.create_bid(as_(ALICE), engine.auction.unit_id, 25)
        assert engine.auction.amount == 25

    def test_price_failure_pauses_engine(self, engine, clock, feed, unit):
        """A broken price feed pauses instead of creating a half auction."""
        clock.set(engine.auction.end_time)
        feed.update(0)

        new = engine.settle_current_and_create_new_auction(as_(ALICE))

        assert new is None
        assert engine.paused
        assert engine.auction.settled
        assert engine.auction.unit_id == unit
        assert isinstance(engine.events.last(), EnginePaused)

    def test_recover_after_price_failure(self, engine, clock, feed):
        """Admin can resume once the feed recovers."""
        clock.set(engine.auction.end_time)
        feed.update(0)
        engine.settle_current_and_create_new_auction(as_(ALICE))

        feed.update(2500 * 10**8)
        created = engine.unpause(as_(ADMIN))

        assert created is not None
        assert created.unit_id == 2
        assert created.reserve_price == 20
        assert not engine.paused


# =============================================================================
# Bid Admission Tests
# =============================================================================


class TestBidAdmission:
    """Tests for bid validation."""

    def test_reserve_scenario(self, engine, unit):
        """24 rejected, 25 accepted, 26 accepted, 25 rejected."""
        with pytest.raises(BelowReserve):
            engine.create_bid(as_(ALICE), unit, 24)

        engine.create_bid(as_(ALICE), unit, 25)
        engine.create_bid(as_(BOB), unit, 26)

        with pytest.raises(InsufficientIncrement):
            engine.create_bid(as_(CAROL), unit, 25)

        assert engine.auction.amount == 26
        assert engine.auction.bidder == BOB

    def test_equal_bid_rejected_at_zero_increment(self, engine, unit):
        """A bid must beat the high bid outright."""
        engine.create_bid(as_(ALICE), unit, 30)
        with pytest.raises(InsufficientIncrement):
            engine.create_bid(as_(BOB), unit, 30)

    def test_increment_percentage(self, clock, feed):
        """With 10%, a 100 bid must be followed by at least 110."""
        config = AuctionConfig(reserve_price_usd=50_000, min_bid_increment_percentage=10)
        engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
        engine.ledger.mint(ALICE, 1_000)
        engine.ledger.mint(BOB, 1_000)
        engine.unpause(as_(ADMIN))
        unit = engine.auction.unit_id

        engine.create_bid(as_(ALICE), unit, 100)
        assert engine.minimum_next_bid() == 110
        with pytest.raises(InsufficientIncrement):
            engine.create_bid(as_(BOB), unit, 109)
        engine.create_bid(as_(BOB), unit, 110)
        assert engine.auction.amount == 110

    def test_below_reserve_checked_before_increment(self, engine, unit):
        """A low bid reports BelowReserve even when a high bid exists."""
        engine.create_bid(as_(ALICE), unit, 100)
        with pytest.raises(BelowReserve):
            engine.create_bid(as_(BOB), unit, 10)

    def test_wrong_unit(self, engine, unit):
        """Bids on any other unit are rejected."""
        with pytest.raises(WrongUnit):
            engine.create_bid(as_(ALICE), unit + 1, 100)

    def test_expired(self, engine, clock, unit):
        """No bids at or after end_time."""
        clock.set(engine.auction.end_time)
        with pytest.raises(Expired):
            engine.create_bid(as_(ALICE), unit, 100)
        assert engine.phase() == AuctionPhase.EXPIRED

    def test_insufficient_funds_leaves_state(self, engine, unit):
        """A bidder cannot bid more than they hold."""
        with pytest.raises(InsufficientFunds):
            engine.create_bid(as_(ALICE), unit, 5_000)
        assert engine.auction.amount == 0
        assert engine.auction.bidder is None
        assert engine.ledger.balance_of(ALICE) == 1_000

    def test_invalid_value(self, engine, unit):
        """Negative or non-integer values are malformed input."""
        with pytest.raises(InvalidInput):
            engine.create_bid(as_(ALICE), unit, -1)
        with pytest.raises(InvalidInput):
            engine.create_bid(as_(ALICE), unit, 25.5)

    def test_rejected_bid_mutates_nothing(self, engine, unit):
        """Failed validation leaves escrow and auction as they were."""
        engine.create_bid(as_(ALICE), unit, 50)
        before = engine.auction

        with pytest.raises(InsufficientIncrement):
            engine.create_bid(as_(BOB), unit, 40)

        assert engine.auction == before
        assert engine.ledger.balance_of(BOB) == 1_000
        assert engine.ledger.balance_of(engine.address) == 50

    def test_accepted_bids_strictly_increase(self, clock, feed):
        """Every accepted bid beats the previous by the increment."""
        config = AuctionConfig(reserve_price_usd=50_000, min_bid_increment_percentage=5)
        engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
        bidders = [ALICE, BOB, CAROL]
        for account in bidders:
            engine.ledger.mint(account, 10_000)
        engine.unpause(as_(ADMIN))
        unit = engine.auction.unit_id

        accepted = []
        for i, value in enumerate([25, 26, 30, 31, 31, 40, 41, 42, 60, 62, 63]):
            try:
                engine.create_bid(as_(bidders[i % 3]), unit, value)
                accepted.append(value)
            except InsufficientIncrement:
                pass

        assert accepted == [25, 26, 30, 31, 40, 42, 60, 63]
        for prev, cur in zip(accepted, accepted[1:]):
            assert cur > prev
            assert cur >= prev + prev * 5 // 100


# =============================================================================
# Refund Tests
# =============================================================================


class TestRefunds:
    """Tests for refunding outbid bidders."""

    def test_outbid_bidder_refunded(self, engine, unit):
        """Previous bidder gets exactly their amount back."""
        engine.create_bid(as_(ALICE), unit, 25)
        assert engine.ledger.balance_of(ALICE) == 975

        engine.create_bid(as_(BOB), unit, 40)

        assert engine.ledger.balance_of(ALICE) == 1_000
        assert engine.ledger.balance_of(BOB) == 960
        assert engine.ledger.balance_of(engine.address) == 40

    def test_self_outbid(self, engine, unit):
        """Raising your own bid refunds the old amount to you."""
        engine.create_bid(as_(ALICE), unit, 25)
        engine.create_bid(as_(ALICE), unit, 50)
        assert engine.ledger.balance_of(ALICE) == 950
        assert engine.ledger.balance_of(engine.address) == 50


# =============================================================================
# Extension Tests
# =============================================================================


class TestExtension:
    """Tests for anti-snipe extension."""

    def test_late_bid_extends(self, engine, clock, unit):
        """A bid at T+86399 pushes the end to T+86399+900."""
        clock.set(START + 86_399)
        engine.create_bid(as_(ALICE), unit, 25)

        assert engine.auction.end_time == START + 86_399 + 900
        bid = engine.events.of_type(AuctionBid)[-1]
        assert bid.extended
        extended = engine.events.of_type(AuctionExtended)[-1]
        assert extended.end_time == START + 86_399 + 900

    def test_early_bid_does_not_extend(self, engine, unit):
        """A bid with plenty of time left leaves end_time alone."""
        engine.create_bid(as_(ALICE), unit, 25)
        assert engine.auction.end_time == START + 86_400
        assert not engine.events.of_type(AuctionBid)[-1].extended
        assert engine.events.of_type(AuctionExtended) == []

    def test_end_time_never_moves_backward(self, engine, clock, unit):
        """Later non-extending bids keep the extended end."""
        clock.set(START + 86_000)
        engine.create_bid(as_(ALICE), unit, 25)
        extended_end = engine.auction.end_time
        assert extended_end == START + 86_000 + 900

        clock.advance(100)
        engine.create_bid(as_(BOB), unit, 30)
        assert engine.auction.end_time >= extended_end

    def test_bid_at_exact_buffer_does_not_extend(self, engine, clock, unit):
        """Exactly time_buffer remaining is enough headroom."""
        clock.set(START + 86_400 - 900)
        engine.create_bid(as_(ALICE), unit, 25)
        assert engine.auction.end_time == START + 86_400


# =============================================================================
# Settlement Tests
# =============================================================================


class TestSettlement:
    """Tests for settling auctions."""

    def test_winner_gets_unit_treasury_gets_funds(self, engine, clock, unit):
        """Sold auction delivers unit and proceeds."""
        engine.create_bid(as_(ALICE), unit, 25)
        engine.create_bid(as_(BOB), unit, 60)
        clock.set(engine.auction.end_time)

        new = engine.settle_current_and_create_new_auction(as_(CAROL))

        assert engine.issuer.registry.owner_of(unit) == BOB
        assert engine.ledger.balance_of(TREASURY) == 60
        assert engine.ledger.balance_of(engine.address) == 0
        assert new.unit_id == unit + 1
        event = engine.events.of_type(AuctionSettled)[-1]
        assert (event.unit_id, event.winner, event.amount) == (unit, BOB, 60)

    def test_zero_bids_unit_to_treasury(self, engine, clock, unit):
        """Unsold unit goes to treasury, no payout."""
        clock.set(engine.auction.end_time)
        engine.pause(as_(ADMIN))

        settlement = engine.settle_auction(as_(ALICE))

        assert engine.auction.settled
        assert engine.auction.amount == 0
        assert engine.issuer.registry.owner_of(unit) == TREASURY
        assert engine.ledger.balance_of(TREASURY) == 0
        assert settlement.winner is None
        assert settlement.amount == 0
        assert engine.phase() == AuctionPhase.SETTLED

    def test_settle_before_end(self, engine):
        """Cannot settle a running auction."""
        engine.pause(as_(ADMIN))
        with pytest.raises(NotExpired):
            engine.settle_auction(as_(ALICE))

    def test_settle_twice(self, engine, clock, unit):
        """Second settle rejects; no double payout or transfer."""
        engine.create_bid(as_(ALICE), unit, 25)
        clock.set(engine.auction.end_time)
        engine.pause(as_(ADMIN))
        engine.settle_auction(as_(BOB))

        with pytest.raises(AlreadySettled):
            engine.settle_auction(as_(BOB))

        assert engine.ledger.balance_of(TREASURY) == 25
        assert engine.issuer.registry.owner_of(unit) == ALICE
        assert len(engine.events.of_type(AuctionSettled)) == 1
        assert len(engine.settlements) == 1

    def test_settle_before_any_auction(self, clock, feed, config):
        """NotStarted when no auction was ever created."""
        engine = build_engine(ADMIN, TREASURY, feed, config=config, clock=clock)
        with pytest.raises(NotStarted):
            engine.settle_auction(as_(ALICE))

    def test_settle_auction_requires_pause(self, engine, clock):
        """Direct settlement is only for the paused path."""
        clock.set(engine.auction.end_time)
        with pytest.raises(NotPaused):
            engine.settle_auction(as_(ALICE))

    def test_settle_and_create_requires_unpaused(self, engine, clock):
        """The combined path is only for the running engine."""
        clock.set(engine.auction.end_time)
        engine.pause(as_(ADMIN))
        with pytest.raises(Paused):
            engine.settle_current_and_create_new_auction(as_(ALICE))

    def test_settlement_history(self, engine, clock):
        """get_settlements and get_prices report newest first."""
        for value in (25, None, 40):
            unit = engine.auction.unit_id
            if value:
                engine.create_bid(as_(ALICE), unit, value)
            clock.set(engine.auction.end_time)
            engine.settle_current_and_create_new_auction(as_(ALICE))

        recent = engine.get_settlements(2)
        assert [s.amount for s in recent] == [40, 0]
        assert recent[1].winner is None
        assert engine.get_prices(5) == [40, 25]
        assert engine.get_settlements(0) == []


# =============================================================================
# Pause and Administration Tests
# =============================================================================


class TestPause:
    """Tests for the pause gate and admin checks."""

    def test_paused_rejects_bids(self, engine, unit):
        """No bidding while paused."""
        engine.pause(as_(ADMIN))
        with pytest.raises(Paused):
            engine.create_bid(as_(ALICE), unit, 25)

    def test_unpause_keeps_live_auction(self, engine, unit):
        """Unpausing with a live auction does not open another."""
        engine.pause(as_(ADMIN))
        assert engine.unpause(as_(ADMIN)) is None
        assert engine.auction.unit_id == unit

    def test_unpause_after_paused_settlement(self, engine, clock, unit):
        """Unpausing after a paused settlement opens the next auction."""
        clock.set(engine.auction.end_time)
        engine.pause(as_(ADMIN))
        engine.settle_auction(as_(ALICE))

        created = engine.unpause(as_(ADMIN))
        assert created.unit_id == unit + 1

    def test_non_admin_cannot_pause(self, engine):
        """Only the admin toggles the pause gate."""
        with pytest.raises(Unauthorized):
            engine.pause(as_(ALICE))
        assert not engine.paused

    def test_double_pause_rejected(self, engine):
        """Pausing twice is a precondition error."""
        engine.pause(as_(ADMIN))
        with pytest.raises(Paused):
            engine.pause(as_(ADMIN))
        with pytest.raises(NotPaused):
            engine.unpause(as_(ADMIN))
            engine.unpause(as_(ADMIN))


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConfiguration:
    """Tests for admin setters."""

    def test_setters_require_admin(self, engine):
        """Every setter is admin-only."""
        with pytest.raises(Unauthorized):
            engine.set_time_buffer(as_(ALICE), 60)
        with pytest.raises(Unauthorized):
            engine.set_reserve_price_usd(as_(ALICE), 1)
        with pytest.raises(Unauthorized):
            engine.set_min_bid_increment_percentage(as_(ALICE), 1)
        with pytest.raises(Unauthorized):
            engine.toggle_public_bidding(as_(ALICE))

    def test_setter_emits_update(self, engine):
        """Setters publish an update notification."""
        engine.set_time_buffer(as_(ADMIN), 60)
        assert engine.events.last() == TimeBufferUpdated(time_buffer=60)
        assert engine.config.time_buffer == 60

    def test_out_of_range_values_rejected(self, engine):
        """Invalid settings raise and leave config untouched."""
        with pytest.raises(InvalidConfiguration):
            engine.set_min_bid_increment_percentage(as_(ADMIN), 256)
        with pytest.raises(InvalidConfiguration):
            engine.set_time_buffer(as_(ADMIN), -1)
        with pytest.raises(InvalidConfiguration):
            engine.set_public_bidding(as_(ADMIN), "yes")
        assert engine.config.min_bid_increment_percentage == 0
        assert engine.config.time_buffer == 900

    def test_changes_apply_to_next_auction(self, engine, clock, unit):
        """Live auction keeps its reserve and time buffer."""
        engine.set_reserve_price_usd(as_(ADMIN), 100_000)
        engine.set_time_buffer(as_(ADMIN), 60)

        assert engine.auction.reserve_price == 25
        clock.set(engine.auction.end_time - 10)
        engine.create_bid(as_(ALICE), unit, 25)
        assert engine.auction.end_time == clock() + 900

        clock.set(engine.auction.end_time)
        new = engine.settle_current_and_create_new_auction(as_(ALICE))
        assert new.reserve_price == 50
        assert new.time_buffer == 60

    def test_toggle_public_bidding(self, engine):
        """Toggle flips and reports the new value."""
        assert engine.toggle_public_bidding(as_(ADMIN)) is True
        assert engine.toggle_public_bidding(as_(ADMIN)) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
