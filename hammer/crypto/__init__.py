"""
Account primitives for Hammer.

This module provides:
- Keccak-256 hashing
- Key generation (secp256k1)
- Ethereum-style address derivation

Design Notes:
-------------
Every participant in an auction (bidders, the treasury, the engine's own
escrow account, the wrapped-token contract) is identified by a 20-byte
address rendered as a 0x-prefixed hex string. Addresses for people are
derived from secp256k1 key pairs; addresses for system accounts are
derived deterministically from a label so they are stable across runs.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ZERO_ADDRESS = "0x" + "00" * 20


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).
    
    Used for: address derivation, compatibility with EVM conventions.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.
    
    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)
    
    @property
    def address(self) -> str:
        """
        Derive address from public key (Ethereum-style).
        
        Address = last 20 bytes of keccak256(public_key), hex-encoded with 0x prefix.
        """
        return bytes_to_hex(address_from_public_key(self.public_key))


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.
    
    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.
    
    Args:
        private_key: 32-byte private key
        
    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")
    
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


# =============================================================================
# Addresses
# =============================================================================


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive address from public key (Ethereum-style).
    
    address = keccak256(public_key)[-20:]
    
    Args:
        public_key: 64-byte public key
        
    Returns:
        20-byte address
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-20:]


def derive_address(label: str) -> str:
    """
    Derive a stable system account address from a label.

    Used for the engine escrow, treasury and wrapped-token accounts.
    """
    return bytes_to_hex(keccak256(label.encode("utf-8"))[-20:])


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


__all__ = [
    "SECP256K1_ORDER",
    "ZERO_ADDRESS",
    "keccak256",
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "derive_address",
    "bytes_to_hex",
    "is_valid_address",
]
