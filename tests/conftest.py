from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

import pytest
from fastapi.testclient import TestClient
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from authlink.derivation import derive_product_address
from authlink.errors import LedgerNotFound, LedgerRejected, LedgerUnavailable
from authlink.ledger.base import (
    AccountState,
    Instruction,
    LedgerGateway,
    TransactionReceipt,
)
from authlink.ledger.codec import (
    ProductAccount,
    decode_product_account,
    encode_product_account,
)
from authlink.main import app
from authlink.registry import ProductRegistry


class InMemoryLedgerGateway(LedgerGateway):
    """
    Ledger stand-in that behaves like the product program: accounts are
    created at most once, stored in the real on-chain layout, and
    `verify_product` returns a Borsh bool.
    """

    def __init__(self, authority: Optional[Keypair] = None) -> None:
        self._keypair = authority or Keypair()
        self._program_id = Pubkey.new_unique()
        self.accounts: Dict[Pubkey, bytes] = {}
        self.calls: List[str] = []
        self.fail_with: Optional[Exception] = None
        # Raise LedgerUnavailable after yielding this many accounts.
        self.fail_after: Optional[int] = None
        self.closed = False

    @property
    def authority(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    @property
    def network(self) -> str:
        return "memory://localnet"

    def _record(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_with is not None:
            raise self.fail_with

    async def submit(
        self, locator: Pubkey, instruction: Instruction
    ) -> TransactionReceipt:
        self._record("submit")
        tag, product_id = instruction.args
        if derive_product_address(self.authority, tag, self.program_id) != locator:
            raise LedgerRejected("A seeds constraint was violated")
        if locator in self.accounts:
            raise LedgerRejected(
                "Transaction simulation failed",
                details=(
                    f"Allocate: account Address {{ address: {locator}, base: None }} "
                    "already in use"
                ),
            )
        self.accounts[locator] = encode_product_account(
            ProductAccount(owner=self.authority, physical_tag_id=tag, product_id=product_id)
        )
        return TransactionReceipt(
            signature=f"sig-{len(self.accounts)}", commitment="confirmed"
        )

    async def read(self, locator: Pubkey) -> AccountState:
        self._record("read")
        if locator not in self.accounts:
            raise LedgerNotFound(f"No account at {locator}")
        return AccountState(data=self.accounts[locator])

    async def call(self, locator: Pubkey, method: str, args: Sequence) -> bytes:
        self._record("call")
        if locator not in self.accounts:
            raise LedgerNotFound("AccountNotInitialized")
        account = decode_product_account(self.accounts[locator])
        return b"\x01" if account.physical_tag_id == args[0] else b"\x00"

    async def list_all(
        self, owner: Optional[Pubkey] = None
    ) -> AsyncIterator[Tuple[Pubkey, AccountState]]:
        self._record("list_all")
        for index, (locator, data) in enumerate(list(self.accounts.items())):
            if self.fail_after is not None and index >= self.fail_after:
                raise LedgerUnavailable("connection reset mid-enumeration")
            if owner is not None and decode_product_account(data).owner != owner:
                continue
            yield locator, AccountState(data=data)

    async def block_height(self) -> int:
        self._record("block_height")
        return 4242

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def gateway() -> InMemoryLedgerGateway:
    return InMemoryLedgerGateway()


@pytest.fixture
def registry(gateway: InMemoryLedgerGateway) -> ProductRegistry:
    return ProductRegistry(gateway)


@pytest.fixture
def client(registry: ProductRegistry) -> TestClient:
    # Replace app.state.registry with one backed by the in-memory ledger.
    app.state.registry = registry
    return TestClient(app)
