"""
Product authenticity verification.

Verification runs the program's read-only `verify_product` method
against the product account derived for the configured authority. The
result is always a boolean verdict:

- if the tag id is malformed, the account does not exist, the program
  rejects the call or the ledger is unreachable, the product is treated
  as *not authentic* (`is_authentic=False`);
- otherwise the verdict is whatever the program returned.

The underlying fault, if any, is kept in `error` / `fault_kind` for
diagnostics only. It never changes the boolean contract.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from ..derivation import derive_product_address
from ..errors import AuthlinkError
from ..ledger.base import LedgerGateway

logger = logging.getLogger(__name__)

VERIFY_METHOD = "verify_product"


@dataclass
class VerificationResult:
    is_authentic: bool
    physical_tag_id: str
    locator: Optional[Pubkey] = None
    error: Optional[str] = None
    fault_kind: Optional[str] = None
    latency_ms: int = 0


def _decode_verdict(data: bytes) -> bool:
    # Borsh encodes `bool` as a single 0/1 byte.
    return len(data) >= 1 and data[0] == 1


async def verify_product(
    gateway: LedgerGateway, physical_tag_id: str
) -> VerificationResult:
    """
    Verify the product behind `physical_tag_id`.

    Never raises for absent or rejected accounts; see module docstring.
    """
    start = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - start) * 1000)

    locator: Optional[Pubkey] = None
    try:
        locator = derive_product_address(
            gateway.authority, physical_tag_id, gateway.program_id
        )
        data = await gateway.call(locator, VERIFY_METHOD, [physical_tag_id])
    except AuthlinkError as exc:
        logger.info(
            "Verification failed for %r (%s): %s",
            physical_tag_id,
            exc.kind,
            exc.message,
        )
        return VerificationResult(
            is_authentic=False,
            physical_tag_id=physical_tag_id,
            locator=locator,
            error=exc.message,
            fault_kind=exc.kind,
            latency_ms=elapsed_ms(),
        )

    verdict = _decode_verdict(data)
    logger.info("Verification result for %r at %s: %s", physical_tag_id, locator, verdict)
    return VerificationResult(
        is_authentic=verdict,
        physical_tag_id=physical_tag_id,
        locator=locator,
        latency_ms=elapsed_ms(),
    )
