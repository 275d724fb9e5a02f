"""
Engine configuration parameters for Hammer.

Defines auction timing, reserve pricing, bid increments, eligibility
policy and the cadence of the unit issuer. Values can be overridden
from the environment (HAMMER_* variables) or a .env file.
"""

import os
from enum import IntEnum
from typing import Any, Dict, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "HAMMER_"


class EligibilityMode(IntEnum):
    """Who may bid when public bidding is off."""
    UNRESTRICTED = 0            # Anyone
    GENESIS_ONLY = 1            # Holders of a unit with id <= genesis_cutoff
    RESTRICTED_HOLDER_ONLY = 2  # Holders of any unit


class AuctionConfig(BaseModel):
    """Process-wide configuration parameters"""

    model_config = ConfigDict(validate_assignment=True)

    # Auction timing (seconds)
    duration: int = Field(default=86_400, gt=0)  # Length of each auction
    time_buffer: int = Field(default=300, ge=0)  # Anti-snipe window

    # Pricing
    reserve_price_usd: int = Field(default=0, ge=0)  # Scaled USD reserve
    min_bid_increment_percentage: int = Field(default=2, ge=0, le=255)

    # Bidding eligibility
    eligibility_mode: EligibilityMode = EligibilityMode.UNRESTRICTED
    public_bidding: bool = False
    genesis_cutoff: int = Field(default=100, ge=0)  # Highest "genesis" unit id

    # Unit issuer cadence
    bonus_cadence: int = Field(default=10, gt=0)  # Every Nth unit goes to treasury
    bonus_cap: int = Field(default=1820, ge=0)  # No bonus units past this id
    max_supply: Optional[int] = Field(default=None, gt=0)

    # Funds transfer
    gas_stipend: int = Field(default=10_000, gt=0)

    # Price reference
    price_max_staleness: Optional[int] = Field(default=None, gt=0)

    @field_validator("eligibility_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        """Accept mode names (e.g. "GENESIS_ONLY") as well as numbers."""
        if not isinstance(value, str):
            return value
        value = value.strip()
        if value.isdigit():
            return int(value)
        try:
            return EligibilityMode[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown eligibility mode: {value}") from None


def _read_overrides(env_file: Optional[str]) -> Dict[str, Any]:
    """Collect HAMMER_* settings, process environment taking precedence."""
    raw: Dict[str, Optional[str]] = {}
    if env_file:
        raw.update(dotenv_values(env_file))
    raw.update(os.environ)

    overrides: Dict[str, Any] = {}
    for key, value in raw.items():
        if not key.startswith(ENV_PREFIX) or value is None or value == "":
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in AuctionConfig.model_fields:
            overrides[name] = value
    return overrides


def load_config(env_file: Optional[str] = None) -> AuctionConfig:
    """
    Load configuration from the environment and an optional .env file.

    Args:
        env_file: Optional path to a dotenv file

    Returns:
        AuctionConfig instance

    Raises:
        pydantic.ValidationError: If an override is out of range
    """
    return AuctionConfig(**_read_overrides(env_file))
