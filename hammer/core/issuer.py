"""
Unit Issuer - Minting cadence for auctioned units.

Every call to issue_next() mints exactly one sellable unit to the
minter (the auction engine). Whenever the next id is a multiple of the
bonus cadence and does not exceed the bonus cap, that id is first
minted to the treasury and the counter moves past it:

    ids:   0   1   2 ... 9   10   11 ...
    owner: T   M   M     M   T    M       (T = treasury, M = minter)

With max_supply set, issuance fails with IssuanceExhausted once the
next sellable id would reach it.
"""

from typing import Dict, List, Optional

from hammer.core.errors import IssuanceExhausted
from hammer.utils.logger import get_logger

logger = get_logger("issuer")

DEFAULT_BONUS_CADENCE = 10
DEFAULT_BONUS_CAP = 1820


class UnitRegistry:
    """Ownership book for minted units."""

    def __init__(self):
        self.owners: Dict[int, str] = {}

    @property
    def total_supply(self) -> int:
        return len(self.owners)

    def mint(self, to: str, unit_id: int) -> None:
        if unit_id in self.owners:
            raise ValueError(f"Unit {unit_id} already minted")
        self.owners[unit_id] = to

    def owner_of(self, unit_id: int) -> Optional[str]:
        return self.owners.get(unit_id)

    def transfer_unit(self, sender: str, to: str, unit_id: int) -> None:
        owner = self.owners.get(unit_id)
        if owner is None:
            raise ValueError(f"Unit {unit_id} does not exist")
        if owner != sender:
            raise ValueError(f"Unit {unit_id} is owned by {owner}, not {sender}")
        self.owners[unit_id] = to

    def holdings_of(self, address: str) -> List[int]:
        """Unit ids owned by address, ascending."""
        return sorted(uid for uid, owner in self.owners.items() if owner == address)

    def checkpoint(self):
        return dict(self.owners)

    def restore(self, state) -> None:
        self.owners.clear()
        self.owners.update(state)


class UnitIssuer:
    """
    Mints the next sellable unit, with periodic treasury bonus units.

    Args:
        registry: Ownership book to mint into
        minter: Address receiving sellable units (the engine)
        treasury: Address receiving bonus units
        cadence: Every id divisible by this goes to the treasury
        bonus_cap: Highest id eligible for a bonus mint
        max_supply: Exclusive upper bound on unit ids (None = unbounded)
    """

    def __init__(
        self,
        registry: UnitRegistry,
        minter: str,
        treasury: str,
        cadence: int = DEFAULT_BONUS_CADENCE,
        bonus_cap: int = DEFAULT_BONUS_CAP,
        max_supply: Optional[int] = None,
    ):
        if cadence <= 0:
            raise ValueError("cadence must be positive")
        self.registry = registry
        self.minter = minter
        self.treasury = treasury
        self.cadence = cadence
        self.bonus_cap = bonus_cap
        self.max_supply = max_supply
        self.next_id = 0

    def _is_bonus_id(self, unit_id: int) -> bool:
        return unit_id <= self.bonus_cap and unit_id % self.cadence == 0

    def issue_next(self) -> int:
        """
        Mint the next sellable unit to the minter.

        Returns:
            The sellable unit id

        Raises:
            IssuanceExhausted: If max_supply has been reached
        """
        bonus = self._is_bonus_id(self.next_id)
        sellable_id = self.next_id + 1 if bonus else self.next_id

        # Nothing is minted unless the sellable unit fits
        if self.max_supply is not None and sellable_id >= self.max_supply:
            raise IssuanceExhausted(f"Unit {sellable_id} would exceed max supply {self.max_supply}")

        if bonus:
            self.registry.mint(self.treasury, self.next_id)
            logger.info(f"Bonus unit {self.next_id} minted to treasury")

        self.registry.mint(self.minter, sellable_id)
        self.next_id = sellable_id + 1
        logger.debug(f"Unit {sellable_id} minted to {self.minter}")
        return sellable_id

    def transfer_unit(self, sender: str, to: str, unit_id: int) -> None:
        self.registry.transfer_unit(sender, to, unit_id)

    def holdings_of(self, address: str) -> List[int]:
        return self.registry.holdings_of(address)
