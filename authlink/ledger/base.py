"""
Contract between the product registry and the ledger.

The registry only ever talks to the ledger through `LedgerGateway`, so
the Solana client can be swapped for an in-memory ledger in tests.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey


@dataclass(frozen=True)
class Instruction:
    """A state-changing program call: method name plus positional args."""

    name: str
    args: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionReceipt:
    """
    Proof that the ledger accepted a submitted instruction.

    `commitment` is the finality level the transaction had reached when
    the receipt was returned.
    """

    signature: str
    commitment: str


@dataclass(frozen=True)
class AccountState:
    """Raw account data as stored on chain."""

    data: bytes


class LedgerGateway(abc.ABC):
    """
    Async access to the product program.

    Every method may raise `LedgerUnavailable` (network failure or
    timeout) or `LedgerRejected` (program constraint violated).
    """

    @property
    @abc.abstractmethod
    def authority(self) -> Pubkey:
        """Public key of the registrar identity this gateway signs with."""

    @property
    @abc.abstractmethod
    def program_id(self) -> Pubkey:
        ...

    @property
    @abc.abstractmethod
    def network(self) -> str:
        ...

    @abc.abstractmethod
    async def submit(
        self, locator: Pubkey, instruction: Instruction
    ) -> TransactionReceipt:
        """Sign and send `instruction` against the account at `locator`."""

    @abc.abstractmethod
    async def read(self, locator: Pubkey) -> AccountState:
        """Fetch account data. Raises `LedgerNotFound` if absent."""

    @abc.abstractmethod
    async def call(
        self, locator: Pubkey, method: str, args: Sequence[Any]
    ) -> bytes:
        """Run a read-only program method and return its raw return data."""

    @abc.abstractmethod
    def list_all(
        self, owner: Optional[Pubkey] = None
    ) -> AsyncIterator[Tuple[Pubkey, AccountState]]:
        """
        Enumerate every account owned by the program.

        Unordered and finite. When `owner` is given only accounts whose
        owner field equals it are returned.
        """

    @abc.abstractmethod
    async def block_height(self) -> int:
        ...

    async def close(self) -> None:
        """Release network resources. No-op by default."""
