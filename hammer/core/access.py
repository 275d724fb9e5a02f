"""
Access and lifecycle control.

Provides:
- AuthorizationContext: identity of the caller, passed into every
  mutating engine call and validated once at the boundary
- AccessControl: administrator check and the pause gate
- ReentrancyGuard: scoped lock rejecting nested mutating calls
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from hammer.core.errors import (
    InvalidInput,
    NotPaused,
    Paused,
    ReentrancyError,
    Unauthorized,
)
from hammer.utils.logger import get_logger
from hammer.utils.validation import validate_address

logger = get_logger("access")


@dataclass(frozen=True)
class AuthorizationContext:
    """Who is calling. Validated on construction."""
    caller: str

    def __post_init__(self):
        valid, err = validate_address(self.caller, "caller")
        if not valid:
            raise InvalidInput(err)


class AccessControl:
    """
    Administrator and pause state.

    The engine starts paused; the administrator unpauses it to open the
    first auction.
    """

    def __init__(self, admin: str, paused: bool = True):
        valid, err = validate_address(admin, "admin")
        if not valid:
            raise InvalidInput(err)
        self.admin = admin
        self.paused = paused

    def require_admin(self, ctx: AuthorizationContext) -> None:
        """Raise Unauthorized unless ctx is the administrator."""
        if ctx.caller != self.admin:
            logger.debug(f"Unauthorized call from {ctx.caller}")
            raise Unauthorized(f"{ctx.caller} is not the administrator")

    def require_not_paused(self) -> None:
        if self.paused:
            raise Paused("Engine is paused")

    def require_paused(self) -> None:
        if not self.paused:
            raise NotPaused("Engine is not paused")


class ReentrancyGuard:
    """
    Explicit non-reentrancy lock.

    The flag is set before the operation starts (and therefore before
    any external call it makes) and cleared only after it finishes,
    whether it returned or raised.
    """

    def __init__(self):
        self._entered = False

    @property
    def locked(self) -> bool:
        return self._entered

    @contextmanager
    def acquire(self) -> Iterator[None]:
        if self._entered:
            raise ReentrancyError("Reentrant call rejected")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False
