"""
Binary layout of the on-chain `ProductAccount`.

Anchor stores an 8-byte discriminator (first 8 bytes of
sha256("account:<Name>")) followed by the Borsh-serialised struct:

    owner:      Pubkey (32 bytes)
    nfc_id:     String (u32 length + utf-8)
    product_id: String (u32 length + utf-8)
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from borsh_construct import CStruct, String, U8
from construct import ConstructError
from solders.pubkey import Pubkey

from ..errors import LedgerRejected

ACCOUNT_NAME = "ProductAccount"
DISCRIMINATOR_SIZE = 8


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[
        :DISCRIMINATOR_SIZE
    ]


PRODUCT_DISCRIMINATOR = account_discriminator(ACCOUNT_NAME)

PRODUCT_LAYOUT = CStruct(
    "owner" / U8[32],
    "nfc_id" / String,
    "product_id" / String,
)


@dataclass(frozen=True)
class ProductAccount:
    owner: Pubkey
    physical_tag_id: str
    product_id: str


def is_product_account(data: bytes) -> bool:
    return data[:DISCRIMINATOR_SIZE] == PRODUCT_DISCRIMINATOR


def decode_product_account(data: bytes) -> ProductAccount:
    """Decode raw account bytes, raising `LedgerRejected` if malformed."""
    if not is_product_account(data):
        raise LedgerRejected(
            f"Account is not a {ACCOUNT_NAME}",
            details=f"discriminator={data[:DISCRIMINATOR_SIZE].hex()}",
        )
    try:
        parsed = PRODUCT_LAYOUT.parse(data[DISCRIMINATOR_SIZE:])
    except (ConstructError, UnicodeDecodeError) as exc:
        raise LedgerRejected(
            f"Malformed {ACCOUNT_NAME} data", details=str(exc)
        ) from exc
    return ProductAccount(
        owner=Pubkey.from_bytes(bytes(parsed.owner)),
        physical_tag_id=parsed.nfc_id,
        product_id=parsed.product_id,
    )


def encode_product_account(account: ProductAccount) -> bytes:
    body = PRODUCT_LAYOUT.build(
        {
            "owner": list(bytes(account.owner)),
            "nfc_id": account.physical_tag_id,
            "product_id": account.product_id,
        }
    )
    return PRODUCT_DISCRIMINATOR + body
