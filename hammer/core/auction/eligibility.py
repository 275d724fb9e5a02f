"""
Bidding eligibility policies.

When public bidding is off and the configured mode is not
UNRESTRICTED, the engine asks an EligibilityPolicy whether a bidder
may participate. Policies are read-only predicates.

Modes:
- GENESIS_ONLY: bidder holds at least one unit with id <= genesis_cutoff
- RESTRICTED_HOLDER_ONLY: bidder holds at least one unit of any id
"""

from typing import List, Protocol, runtime_checkable

from hammer.core.config import EligibilityMode


@runtime_checkable
class HoldingsSource(Protocol):
    """Anything that can list the units an address owns."""

    def holdings_of(self, address: str) -> List[int]:
        ...


@runtime_checkable
class EligibilityPolicy(Protocol):
    """Decides whether an address may bid under a given mode."""

    def is_eligible(self, address: str, mode: EligibilityMode) -> bool:
        ...


class AllowAllPolicy:
    """Default policy: every address may bid."""

    def is_eligible(self, address: str, mode: EligibilityMode) -> bool:
        return True


class HoldingsPolicy:
    """
    Eligibility based on units already held by the bidder.

    Args:
        source: Collaborator providing holdings_of(address)
        genesis_cutoff: Highest unit id counted as "genesis"
    """

    def __init__(self, source: HoldingsSource, genesis_cutoff: int):
        self.source = source
        self.genesis_cutoff = genesis_cutoff

    def is_eligible(self, address: str, mode: EligibilityMode) -> bool:
        if mode == EligibilityMode.UNRESTRICTED:
            return True

        holdings = self.source.holdings_of(address)
        if mode == EligibilityMode.GENESIS_ONLY:
            return any(unit_id <= self.genesis_cutoff for unit_id in holdings)
        if mode == EligibilityMode.RESTRICTED_HOLDER_ONLY:
            return len(holdings) > 0
        return False
