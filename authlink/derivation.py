"""
Deterministic product-account address derivation.

A product account lives at the program-derived address of

    [b"product", <authority pubkey bytes>, <tag id utf-8 bytes>]

under the product program id. The same inputs always give the same
address, so every read path recomputes exactly what the write path used.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from .errors import InvalidInput

PRODUCT_SEED = b"product"

# Solana rejects any single PDA seed longer than this.
MAX_SEED_LEN = 32


def tag_seed(physical_tag_id: str) -> bytes:
    """Validate a tag id and return its seed bytes."""
    if not physical_tag_id:
        raise InvalidInput("Physical tag id is required")
    seed = physical_tag_id.encode("utf-8")
    if len(seed) > MAX_SEED_LEN:
        raise InvalidInput(
            f"Physical tag id must be at most {MAX_SEED_LEN} bytes",
            details=f"got {len(seed)} bytes",
        )
    return seed


def derive_product_address(
    owner: Pubkey, physical_tag_id: str, program_id: Pubkey
) -> Pubkey:
    address, _bump = Pubkey.find_program_address(
        [PRODUCT_SEED, bytes(owner), tag_seed(physical_tag_id)], program_id
    )
    return address
