"""
Input Validation - Boundary checks for engine inputs.

Provides validation for all external inputs to prevent:
- Malformed account addresses
- Negative or non-integer amounts
- Out-of-range percentages and durations
"""

from typing import Tuple, Any

from hammer.crypto import is_valid_address

# =============================================================================
# Constants
# =============================================================================

# Field bounds
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MAX_PERCENTAGE = 255  # stored as uint8
MAX_TIMESTAMP = 2**40 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.
    
    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        
    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"
    
    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"
    
    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"
    
    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a native-currency amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_unit_id(unit_id: Any) -> Tuple[bool, str]:
    """Validate a unit identifier."""
    return validate_integer(unit_id, "unit_id", 0, MAX_AMOUNT)


def validate_percentage(value: Any, name: str = "percentage") -> Tuple[bool, str]:
    """Validate a whole-number percentage (uint8)."""
    return validate_integer(value, name, 0, MAX_PERCENTAGE)


def validate_duration(value: Any, name: str = "duration") -> Tuple[bool, str]:
    """Validate a duration in seconds."""
    return validate_integer(value, name, 0, MAX_TIMESTAMP)


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """
    Validate a 0x-prefixed 20-byte hex address.
    
    Args:
        address: Value to validate
        name: Field name for errors
        
    Returns:
        (is_valid, error_message)
    """
    if not isinstance(address, str):
        return False, f"{name} must be str, got {type(address).__name__}"
    
    if not is_valid_address(address):
        return False, f"{name} is not a valid 0x-prefixed 20-byte address"
    
    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_amount",
    "validate_unit_id",
    "validate_percentage",
    "validate_duration",
    "validate_address",
    "MIN_AMOUNT",
    "MAX_AMOUNT",
    "MAX_PERCENTAGE",
    "MAX_TIMESTAMP",
]
