"""
Hammer - recurring reserve auction engine.

Runs one English auction per cycle:
- Mints the next unit through a unit issuer
- Converts a USD reserve into native units via a price reference
- Extends the bidding window on late bids (anti-snipe)
- Settles proceeds to a treasury with fallback-safe transfers
"""

__version__ = "0.1.0"
