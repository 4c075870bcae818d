"""
Product registry: register, verify, fetch and list products on chain.

Each product lives in its own program-derived account (see
`authlink.derivation`), scoped to the single authority the ledger
gateway signs with. The registry keeps no local state; it translates
requests into address derivation plus ledger calls, and ledger faults
into domain results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from solders.pubkey import Pubkey

from ..derivation import derive_product_address
from ..errors import DuplicateRegistration, InvalidInput, LedgerNotFound, LedgerRejected
from ..ledger.base import Instruction, LedgerGateway, TransactionReceipt
from ..ledger.codec import ProductAccount, decode_product_account, is_product_account
from ..verification.verify import VerificationResult, verify_product

logger = logging.getLogger(__name__)

INITIALIZE_METHOD = "initialize_product"

# Space the program reserves for the product id string.
MAX_PRODUCT_ID_LEN = 64

# Substring the system program logs when an account already exists.
ACCOUNT_IN_USE = "already in use"


@dataclass(frozen=True)
class ProductRecord:
    owner: Pubkey
    physical_tag_id: str
    product_id: str
    locator: Pubkey


@dataclass(frozen=True)
class Registration:
    locator: Pubkey
    receipt: TransactionReceipt
    owner: Pubkey
    physical_tag_id: str
    product_id: str


@dataclass(frozen=True)
class ProductNotFound:
    """Fetch result when no product account exists for the tag id."""

    physical_tag_id: str
    locator: Pubkey
    details: Optional[str] = None


@dataclass
class ProductPage:
    products: List[ProductRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.products)


@dataclass(frozen=True)
class LedgerStatus:
    network: str
    block_height: int
    program_id: Pubkey
    authority: Pubkey


def parse_pubkey(value: str, field_name: str = "owner") -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise InvalidInput(f"Invalid {field_name} address", details=str(exc)) from exc


def _is_account_in_use(exc: LedgerRejected) -> bool:
    text = " ".join(part for part in (exc.message, exc.details) if part)
    return ACCOUNT_IN_USE in text


def _validate_product_id(product_id: Optional[str]) -> str:
    if not product_id:
        raise InvalidInput("Product id is required")
    if len(product_id.encode("utf-8")) > MAX_PRODUCT_ID_LEN:
        raise InvalidInput(f"Product id must be at most {MAX_PRODUCT_ID_LEN} bytes")
    return product_id


class ProductRegistry:
    """Orchestrates address derivation and ledger calls for products."""

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> LedgerGateway:
        return self._gateway

    def locate(self, physical_tag_id: str) -> Pubkey:
        """Derive the account address of a tag id under our authority."""
        return derive_product_address(
            self._gateway.authority, physical_tag_id, self._gateway.program_id
        )

    async def register(
        self, physical_tag_id: Optional[str], product_id: Optional[str]
    ) -> Registration:
        """
        Create the product account for `physical_tag_id`.

        Raises `InvalidInput` before touching the ledger if either id is
        missing or too long, and `DuplicateRegistration` if the account
        already exists. Never retries the submission.
        """
        if not physical_tag_id or not product_id:
            raise InvalidInput("Physical tag id and product id are required")
        _validate_product_id(product_id)

        # Derivation validates the tag id before any ledger call.
        locator = self.locate(physical_tag_id)
        logger.info(
            "Registering product: tag=%s product=%s account=%s",
            physical_tag_id,
            product_id,
            locator,
        )
        try:
            receipt = await self._gateway.submit(
                locator, Instruction(INITIALIZE_METHOD, [physical_tag_id, product_id])
            )
        except LedgerRejected as exc:
            if _is_account_in_use(exc):
                logger.info("Tag %s is already registered at %s", physical_tag_id, locator)
                raise DuplicateRegistration(
                    f"Physical tag id {physical_tag_id!r} is already registered",
                    details=exc.details or exc.message,
                ) from exc
            logger.warning("Registration of %s rejected: %s", physical_tag_id, exc.message)
            raise

        logger.info("Transaction %s (%s)", receipt.signature, receipt.commitment)
        return Registration(
            locator=locator,
            receipt=receipt,
            owner=self._gateway.authority,
            physical_tag_id=physical_tag_id,
            product_id=product_id,
        )

    async def verify(self, physical_tag_id: str) -> VerificationResult:
        return await verify_product(self._gateway, physical_tag_id)

    async def fetch(
        self, physical_tag_id: str
    ) -> Union[ProductRecord, ProductNotFound]:
        """Read the product account, or return `ProductNotFound`."""
        locator = self.locate(physical_tag_id)
        logger.info("Fetching product: tag=%s account=%s", physical_tag_id, locator)
        try:
            state = await self._gateway.read(locator)
        except LedgerNotFound as exc:
            return ProductNotFound(
                physical_tag_id=physical_tag_id, locator=locator, details=exc.message
            )
        return self._to_record(locator, decode_product_account(state.data))

    async def list_all(
        self,
        owner: Optional[Pubkey] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ProductPage:
        """
        Enumerate every product account of the program.

        Without `limit` all records are returned in enumeration order.
        With `limit` records are ordered by account address and `cursor`
        is the last address of the previous page. A ledger fault at any
        point aborts the whole listing.
        """
        if limit is not None and limit < 1:
            raise InvalidInput("limit must be a positive integer")
        if cursor and limit is None:
            raise InvalidInput("cursor requires limit")

        records: List[ProductRecord] = []
        async for locator, state in self._gateway.list_all(owner):
            if not is_product_account(state.data):
                logger.debug("Skipping non-product account %s", locator)
                continue
            records.append(self._to_record(locator, decode_product_account(state.data)))
        logger.info("Found %d products", len(records))

        if limit is None:
            return ProductPage(products=records)

        records.sort(key=lambda record: str(record.locator))
        if cursor:
            records = [r for r in records if str(r.locator) > cursor]
        page = records[:limit]
        next_cursor = str(page[-1].locator) if len(records) > limit else None
        return ProductPage(products=page, next_cursor=next_cursor)

    async def health(self) -> LedgerStatus:
        return LedgerStatus(
            network=self._gateway.network,
            block_height=await self._gateway.block_height(),
            program_id=self._gateway.program_id,
            authority=self._gateway.authority,
        )

    @staticmethod
    def _to_record(locator: Pubkey, account: ProductAccount) -> ProductRecord:
        return ProductRecord(
            owner=account.owner,
            physical_tag_id=account.physical_tag_id,
            product_id=account.product_id,
            locator=locator,
        )
