"""
Auction Engine - Recurring English auction for one unit per cycle.

Conceptual Background:
---------------------
Each cycle the engine mints a unit through the UnitIssuer and sells it
in an ascending (English) auction:

1. **Create**: reserve_price = reserve_price_usd // latest_price(),
   snapshotted once; bidding runs for `duration` seconds
2. **Bid**: each bid must clear the reserve and beat the high bid by
   the minimum increment; the outbid bidder is refunded immediately
3. **Anti-snipe**: a bid landing within `time_buffer` of the end pushes
   the end to now + time_buffer
4. **Settle**: the winner receives the unit and the treasury the
   proceeds; with no bids the unit goes to the treasury

Safety:
------
- Every mutating entry point holds the ReentrancyGuard for its whole
  duration, including the external payments it makes
- Payments go through FundsTransfer, which falls back to wrapped
  transfers, so no recipient can block a refund or settlement
- A refund or payout that cannot be delivered leaves the auction as it
  was: the new bid is handed back, and settlement stays retryable
- If the issuer or price reference fails while creating an auction, the
  engine pauses instead of leaving a half-created auction
"""

from typing import List, Optional

from pydantic import ValidationError as ConfigValidationError

from hammer.core.access import AccessControl, AuthorizationContext, ReentrancyGuard
from hammer.core.auction.eligibility import AllowAllPolicy, EligibilityPolicy, HoldingsPolicy
from hammer.core.auction.events import (
    AuctionBid,
    AuctionCreated,
    AuctionExtended,
    AuctionSettled,
    EligibilityModeUpdated,
    EnginePaused,
    EngineUnpaused,
    EventBus,
    MinBidIncrementPercentageUpdated,
    PublicBiddingUpdated,
    ReservePriceUSDUpdated,
    TimeBufferUpdated,
)
from hammer.core.auction.state import Auction, AuctionPhase, Settlement, auction_phase
from hammer.core.clock import Clock, system_clock
from hammer.core.config import AuctionConfig, EligibilityMode
from hammer.core.errors import (
    AlreadySettled,
    AuctionError,
    BelowReserve,
    CollaboratorError,
    Expired,
    InsufficientIncrement,
    InvalidConfiguration,
    InvalidInput,
    NotEligible,
    NotExpired,
    NotStarted,
    ValidationError,
    WrongUnit,
)
from hammer.core.issuer import UnitIssuer, UnitRegistry
from hammer.core.oracle import PriceFeed, PriceReference
from hammer.core.transfer import FundsTransfer, NativeLedger, WrappedNative
from hammer.crypto import derive_address
from hammer.utils.logger import get_logger
from hammer.utils.validation import (
    validate_amount,
    validate_duration,
    validate_percentage,
    validate_unit_id,
)

logger = get_logger("engine")


class AuctionEngine:
    """
    Runs the auction cycle.

    The engine owns an escrow account (`address`) in the native ledger.
    Bids are held there until the bidder is outbid or the auction settles.
    Sellable units are minted to the same address, so the issuer's
    minter must be the engine.

    Attributes:
        config: Live configuration; changes apply from the next auction
        access: Administrator and pause state
        events: Notification bus
        settlements: One record per settled auction, oldest first
    """

    def __init__(
        self,
        admin: str,
        treasury: str,
        issuer: UnitIssuer,
        price_reference: PriceReference,
        ledger: NativeLedger,
        funds: FundsTransfer,
        config: Optional[AuctionConfig] = None,
        eligibility: Optional[EligibilityPolicy] = None,
        clock: Clock = system_clock,
        events: Optional[EventBus] = None,
    ):
        self.access = AccessControl(admin, paused=True)
        self.treasury = treasury
        self.issuer = issuer
        self.address = issuer.minter
        self.price_reference = price_reference
        self.ledger = ledger
        self.funds = funds
        self.config = config or AuctionConfig()
        self.eligibility = eligibility or AllowAllPolicy()
        self.clock = clock
        self.events = events or EventBus()

        self.settlements: List[Settlement] = []

        self._auction: Optional[Auction] = None
        self._guard = ReentrancyGuard()

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def auction(self) -> Optional[Auction]:
        """Copy of the current (or last settled) auction."""
        return self._auction.snapshot() if self._auction else None

    @property
    def paused(self) -> bool:
        return self.access.paused

    def phase(self) -> AuctionPhase:
        return auction_phase(self._auction, self.clock())

    def minimum_next_bid(self) -> int:
        """Smallest bid the live auction would accept right now."""
        if self._auction is None:
            raise NotStarted("No auction has been created")
        return self._auction.minimum_bid()

    def get_settlements(self, count: int) -> List[Settlement]:
        """Up to `count` most recent settlements, newest first."""
        return list(reversed(self.settlements[-count:])) if count > 0 else []

    def get_prices(self, count: int) -> List[int]:
        """Winning amounts of up to `count` most recent sold units, newest first."""
        prices = [s.amount for s in reversed(self.settlements) if s.winner is not None]
        return prices[:count]

    # =========================================================================
    # Bidding
    # =========================================================================

    def create_bid(self, ctx: AuthorizationContext, unit_id: int, value: int) -> Auction:
        """
        Bid `value` on `unit_id` on behalf of ctx.caller.

        The value is taken from the bidder's ledger balance into escrow;
        the previous high bidder is refunded.

        Returns:
            Snapshot of the auction after the bid

        Raises:
            Paused, NotStarted, AlreadySettled, NotEligible, WrongUnit,
            Expired, BelowReserve, InsufficientIncrement,
            InsufficientFunds, InvalidInput, ReentrancyError
        """
        with self._guard.acquire():
            self.access.require_not_paused()
            try:
                auction = self._validate_bid(ctx.caller, unit_id, value)
                self.ledger.move(ctx.caller, self.address, value)
            except ValidationError as e:
                logger.debug(f"Bid of {value} on unit {unit_id} by {ctx.caller} rejected: {e}")
                raise

            now = self.clock()
            last_bidder, last_amount = auction.bidder, auction.amount
            if last_bidder is not None:
                try:
                    self.funds.safe_transfer(self.address, last_bidder, last_amount)
                except AuctionError:
                    # Bid is not recorded; hand the escrowed value back
                    self.ledger.move(self.address, ctx.caller, value)
                    raise

            auction.amount = value
            auction.bidder = ctx.caller

            extended = auction.end_time - now < auction.time_buffer
            if extended:
                auction.end_time = now + auction.time_buffer

            logger.info(f"Bid on unit {unit_id}: {value} from {ctx.caller}" + (" (extended)" if extended else ""))
            self.events.publish(AuctionBid(unit_id=unit_id, bidder=ctx.caller, amount=value, extended=extended))
            if extended:
                self.events.publish(AuctionExtended(unit_id=unit_id, end_time=auction.end_time))

            return auction.snapshot()

    def _validate_bid(self, bidder: str, unit_id: int, value: int) -> Auction:
        """Run every bid check; no state is touched."""
        valid, err = validate_unit_id(unit_id)
        if not valid:
            raise InvalidInput(err)
        valid, err = validate_amount(value, "value")
        if not valid:
            raise InvalidInput(err)

        auction = self._auction
        if auction is None or auction.start_time == 0:
            raise NotStarted("No auction has been created")
        if auction.settled:
            raise AlreadySettled(f"Auction for unit {auction.unit_id} is settled")

        self._check_eligibility(bidder)

        if unit_id != auction.unit_id:
            raise WrongUnit(f"Unit {unit_id} is not up for auction (current: {auction.unit_id})")
        if auction.is_expired(self.clock()):
            raise Expired(f"Auction for unit {unit_id} has expired")
        if value < auction.reserve_price:
            raise BelowReserve(f"Bid {value} below reserve {auction.reserve_price}")
        if auction.bidder is not None and value < auction.minimum_bid():
            raise InsufficientIncrement(
                f"Bid {value} must be at least {auction.minimum_bid()} "
                f"(high bid {auction.amount} + {auction.min_bid_increment_percentage}%)"
            )
        return auction

    def _check_eligibility(self, bidder: str) -> None:
        mode = self.config.eligibility_mode
        if mode == EligibilityMode.UNRESTRICTED or self.config.public_bidding:
            return
        if not self.eligibility.is_eligible(bidder, mode):
            raise NotEligible(f"{bidder} is not eligible to bid under {mode.name}")

    # =========================================================================
    # Settlement
    # =========================================================================

    def settle_auction(self, ctx: AuthorizationContext) -> Settlement:
        """
        Settle the expired auction while the engine is paused.

        Anyone may call this; pausing never traps a unit or funds.
        """
        with self._guard.acquire():
            self.access.require_paused()
            return self._settle()

    def settle_current_and_create_new_auction(self, ctx: AuthorizationContext) -> Optional[Auction]:
        """
        Settle the expired auction and open the next one.

        Returns:
            The new auction, or None if creation failed and the engine paused
        """
        with self._guard.acquire():
            self.access.require_not_paused()
            self._settle()
            return self._create_auction()

    def _settle(self) -> Settlement:
        auction = self._auction
        if auction is None or auction.start_time == 0:
            raise NotStarted("Auction hasn't begun")
        if auction.settled:
            raise AlreadySettled(f"Auction for unit {auction.unit_id} has already been settled")
        now = self.clock()
        if not auction.is_expired(now):
            raise NotExpired(f"Auction for unit {auction.unit_id} ends at {auction.end_time}")

        # Only reachable with zero bids: admission never accepts a bid below reserve
        if auction.bidder is None or auction.amount < auction.reserve_price:
            winner = None
        else:
            winner = auction.bidder

        # Payout first: if it fails nothing has changed and settlement can be retried
        if auction.amount > 0:
            self.funds.safe_transfer(self.address, self.treasury, auction.amount)

        auction.settled = True
        self.issuer.transfer_unit(self.address, winner or self.treasury, auction.unit_id)

        settlement = Settlement(
            unit_id=auction.unit_id,
            winner=winner,
            amount=auction.amount if winner else 0,
            settled_at=now,
        )
        self.settlements.append(settlement)

        if winner:
            logger.info(f"Unit {auction.unit_id} settled: {winner} won with {auction.amount}")
        else:
            logger.info(f"Unit {auction.unit_id} settled unsold, sent to treasury")
        self.events.publish(AuctionSettled(unit_id=auction.unit_id, winner=winner, amount=settlement.amount))
        return settlement

    # =========================================================================
    # Creation
    # =========================================================================

    def _create_auction(self) -> Optional[Auction]:
        """
        Open an auction for a freshly issued unit.

        Collaborator failures pause the engine instead of propagating.
        """
        try:
            # Price first: a failed read must not strand a minted unit
            price = self.price_reference.latest_price()
            unit_id = self.issuer.issue_next()
        except CollaboratorError as e:
            logger.warning(f"Auction creation failed, pausing: {e}")
            self._pause(reason=str(e))
            return None

        now = self.clock()
        auction = Auction(
            unit_id=unit_id,
            amount=0,
            start_time=now,
            end_time=now + self.config.duration,
            reserve_price=self.config.reserve_price_usd // price,
            bidder=None,
            settled=False,
            time_buffer=self.config.time_buffer,
            min_bid_increment_percentage=self.config.min_bid_increment_percentage,
        )
        self._auction = auction

        logger.info(
            f"Auction created: unit={unit_id}, reserve={auction.reserve_price} "
            f"(usd={self.config.reserve_price_usd}, price={price}), ends={auction.end_time}"
        )
        self.events.publish(AuctionCreated(
            unit_id=unit_id,
            start_time=auction.start_time,
            end_time=auction.end_time,
            reserve_price=auction.reserve_price,
        ))
        return auction.snapshot()

    # =========================================================================
    # Pause
    # =========================================================================

    def pause(self, ctx: AuthorizationContext) -> None:
        """Stop new bids and new auctions. Settlement stays available."""
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self.access.require_not_paused()
            self._pause(reason="admin")

    def unpause(self, ctx: AuthorizationContext) -> Optional[Auction]:
        """
        Resume operation; opens an auction if none is live.

        Returns:
            The auction created on resume, if any
        """
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self.access.require_paused()
            self.access.paused = False
            logger.info("Engine unpaused")
            self.events.publish(EngineUnpaused())

            if self._auction is None or self._auction.settled:
                return self._create_auction()
            return None

    def _pause(self, reason: str) -> None:
        self.access.paused = True
        logger.info(f"Engine paused ({reason})")
        self.events.publish(EnginePaused(reason=reason))

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_time_buffer(self, ctx: AuthorizationContext, time_buffer: int) -> None:
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self._check(validate_duration(time_buffer, "time_buffer"))
            self._update_config("time_buffer", time_buffer)
            self.events.publish(TimeBufferUpdated(time_buffer=time_buffer))

    def set_reserve_price_usd(self, ctx: AuthorizationContext, reserve_price_usd: int) -> None:
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self._check(validate_amount(reserve_price_usd, "reserve_price_usd"))
            self._update_config("reserve_price_usd", reserve_price_usd)
            self.events.publish(ReservePriceUSDUpdated(reserve_price_usd=reserve_price_usd))

    def set_min_bid_increment_percentage(self, ctx: AuthorizationContext, percentage: int) -> None:
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self._check(validate_percentage(percentage, "min_bid_increment_percentage"))
            self._update_config("min_bid_increment_percentage", percentage)
            self.events.publish(MinBidIncrementPercentageUpdated(min_bid_increment_percentage=percentage))

    def set_eligibility_mode(self, ctx: AuthorizationContext, mode: EligibilityMode) -> None:
        with self._guard.acquire():
            self.access.require_admin(ctx)
            self._update_config("eligibility_mode", mode)
            self.events.publish(EligibilityModeUpdated(eligibility_mode=self.config.eligibility_mode))

    def set_public_bidding(self, ctx: AuthorizationContext, enabled: bool) -> None:
        with self._guard.acquire():
            self.access.require_admin(ctx)
            if not isinstance(enabled, bool):
                raise InvalidConfiguration(f"public_bidding must be bool, got {type(enabled).__name__}")
            self._update_config("public_bidding", enabled)
            self.events.publish(PublicBiddingUpdated(public_bidding=enabled))

    def toggle_public_bidding(self, ctx: AuthorizationContext) -> bool:
        """Flip public bidding; returns the new setting."""
        enabled = not self.config.public_bidding
        self.set_public_bidding(ctx, enabled)
        return enabled

    @staticmethod
    def _check(result) -> None:
        valid, err = result
        if not valid:
            raise InvalidConfiguration(err)

    def _update_config(self, field: str, value) -> None:
        try:
            setattr(self.config, field, value)
        except ConfigValidationError as e:
            raise InvalidConfiguration(str(e)) from e
        logger.info(f"Config {field} set to {getattr(self.config, field)}")


# =============================================================================
# Assembly
# =============================================================================


def build_engine(
    admin: str,
    treasury: str,
    price_feed: PriceFeed,
    config: Optional[AuctionConfig] = None,
    eligibility: Optional[EligibilityPolicy] = None,
    clock: Clock = system_clock,
    ledger: Optional[NativeLedger] = None,
    registry: Optional[UnitRegistry] = None,
    wrapped: Optional[WrappedNative] = None,
) -> AuctionEngine:
    """
    Wire an engine to fresh in-process collaborators.

    Args:
        admin: Administrator address
        treasury: Receives proceeds, unsold units and bonus units
        price_feed: Upstream USD price feed
        config: Engine configuration (defaults if None)
        eligibility: Bidding policy (holdings-based over the issuer with
            config.genesis_cutoff if None)
        clock: Time source
        ledger: Native ledger to use (new one if None)
        registry: Unit ownership book (new one if None)
        wrapped: Fallback wrapped token over `ledger` (new one if None)

    Returns:
        A paused AuctionEngine; unpause it to open the first auction
    """
    config = config or AuctionConfig()
    ledger = ledger or NativeLedger()
    registry = registry or UnitRegistry()

    engine_address = derive_address("hammer.auction-engine")
    issuer = UnitIssuer(
        registry,
        minter=engine_address,
        treasury=treasury,
        cadence=config.bonus_cadence,
        bonus_cap=config.bonus_cap,
        max_supply=config.max_supply,
    )
    price_reference = PriceReference(price_feed, max_staleness=config.price_max_staleness, clock=clock)
    wrapped = wrapped or WrappedNative(ledger)
    ledger.track(registry)
    if eligibility is None:
        eligibility = HoldingsPolicy(issuer, genesis_cutoff=config.genesis_cutoff)
    funds = FundsTransfer.with_fallback(ledger, wrapped, gas_stipend=config.gas_stipend)

    return AuctionEngine(
        admin=admin,
        treasury=treasury,
        issuer=issuer,
        price_reference=price_reference,
        ledger=ledger,
        funds=funds,
        config=config,
        eligibility=eligibility,
        clock=clock,
    )
