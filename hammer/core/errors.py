"""
Engine errors.

Every rejection raised by the engine leaves auction state untouched.

Taxonomy:
- ValidationError: bad caller input (wrong unit, low bid, ...)
- PreconditionError: misordered call (not started, already settled, ...)
- Unauthorized: non-admin calling an admin-only operation
- ReentrancyError: nested call while a mutating operation is in flight
- CollaboratorError: issuer or price reference failure; recovered by pausing
"""


class AuctionError(Exception):
    """Base class for all auction engine errors."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(AuctionError):
    """Caller input rejected; retry with corrected input."""


class WrongUnit(ValidationError):
    """Bid names a unit that is not up for auction."""


class Expired(ValidationError):
    """Bidding window has closed."""


class BelowReserve(ValidationError):
    """Bid is below the auction's reserve price."""


class InsufficientIncrement(ValidationError):
    """Bid does not beat the current high bid by the minimum increment."""


class NotEligible(ValidationError):
    """Bidder does not satisfy the configured eligibility mode."""


class InsufficientFunds(ValidationError):
    """Account cannot cover the amount."""


class InvalidInput(ValidationError):
    """Malformed address, amount or identifier."""


class InvalidConfiguration(ValidationError):
    """Configuration value out of range."""


# =============================================================================
# Preconditions
# =============================================================================


class PreconditionError(AuctionError):
    """Operation called in the wrong lifecycle state."""


class NotStarted(PreconditionError):
    """No auction has been created yet."""


class AlreadySettled(PreconditionError):
    """Auction has already been settled."""


class NotExpired(PreconditionError):
    """Auction is still accepting bids."""


class Paused(PreconditionError):
    """Operation requires the engine to be unpaused."""


class NotPaused(PreconditionError):
    """Operation requires the engine to be paused."""


# =============================================================================
# Authorization / concurrency
# =============================================================================


class Unauthorized(AuctionError):
    """Caller is not the administrator."""


class ReentrancyError(AuctionError):
    """A mutating operation is already in progress."""


# =============================================================================
# Collaborators
# =============================================================================


class CollaboratorError(AuctionError):
    """An external collaborator could not serve the request."""


class IssuanceExhausted(CollaboratorError):
    """The unit issuer cannot mint any more units."""


class PriceUnavailable(CollaboratorError):
    """The price feed returned no usable price."""
