"""
Solana implementation of `LedgerGateway`.

State-changing and read-only program calls go through `anchorpy`, which
builds instructions from the program IDL. Plain account reads and
program-wide enumeration use the `solana-py` RPC client directly and
hand raw bytes back to the registry for decoding.

Finality: transactions are sent with `skip_confirmation=False`, so
`submit` only returns once the cluster reports `confirmed` commitment,
and every read uses `confirmed` commitment too. A product registered
through this gateway is therefore immediately readable.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

import httpx
from anchorpy import Context, Idl, Program, Provider, Wallet
from anchorpy.error import AccountDoesNotExistError
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import MemcmpOpts, TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID

from ..config import load_authority
from ..errors import LedgerError, LedgerNotFound, LedgerRejected, LedgerUnavailable
from .base import AccountState, Instruction, LedgerGateway, TransactionReceipt
from .codec import DISCRIMINATOR_SIZE

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMMITMENT = "confirmed"

# Anchor's AccountNotInitialized error code.
ACCOUNT_NOT_INITIALIZED = 3012


def _extract_logs(exc: BaseException) -> Optional[str]:
    logs = getattr(exc, "logs", None)
    if logs is None and exc.args:
        # RPCException wraps a solders error whose `data` carries the
        # simulation logs of a failed preflight.
        data = getattr(exc.args[0], "data", None)
        logs = getattr(data, "logs", None)
    if not logs:
        return None
    return "\n".join(str(line) for line in logs)


def classify_ledger_error(exc: BaseException) -> LedgerError:
    """Map a client-library exception onto the domain taxonomy."""
    if isinstance(exc, LedgerError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return LedgerUnavailable("Ledger request timed out")
    if isinstance(exc, (httpx.HTTPError, SolanaRpcException, OSError)):
        return LedgerUnavailable(f"Ledger unreachable: {exc}")
    if isinstance(exc, AccountDoesNotExistError):
        return LedgerNotFound(str(exc))
    if getattr(exc, "code", None) == ACCOUNT_NOT_INITIALIZED:
        return LedgerNotFound(str(exc), details=_extract_logs(exc))
    return LedgerRejected(str(exc) or type(exc).__name__, details=_extract_logs(exc))


def parse_return_data(logs: Sequence[str], program_id: Pubkey) -> bytes:
    """Pull the `sol_set_return_data` payload out of simulation logs."""
    prefix = f"Program return: {program_id} "
    for line in reversed(logs):
        if line.startswith(prefix):
            return base64.b64decode(line[len(prefix):])
    raise LedgerRejected("Program returned no data", details="\n".join(logs))


class SolanaLedgerGateway(LedgerGateway):
    """Talks to the product program over JSON-RPC."""

    def __init__(
        self,
        network: str,
        program_id: Pubkey,
        idl: Idl,
        authority: Keypair,
        timeout: float = 30.0,
    ) -> None:
        self._network = network
        self._program_id = program_id
        self._authority = authority.pubkey()
        self._timeout = timeout
        self._client = AsyncClient(network, commitment=Confirmed, timeout=timeout)
        provider = Provider(
            self._client,
            Wallet(authority),
            opts=TxOpts(skip_confirmation=False, preflight_commitment=Confirmed),
        )
        self._program = Program(idl, program_id, provider)

    @classmethod
    def from_files(
        cls,
        network: str,
        program_id: str,
        idl_path: Path,
        keypair_file: Path,
        timeout: float = 30.0,
    ) -> "SolanaLedgerGateway":
        idl = Idl.from_json(Path(idl_path).read_text(encoding="utf-8"))
        return cls(
            network=network,
            program_id=Pubkey.from_string(program_id),
            idl=idl,
            authority=load_authority(keypair_file),
            timeout=timeout,
        )

    @property
    def authority(self) -> Pubkey:
        return self._authority

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    @property
    def network(self) -> str:
        return self._network

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except Exception as exc:
            raise classify_ledger_error(exc) from exc

    def _accounts(self, locator: Pubkey) -> Dict[str, Pubkey]:
        return {
            "authority": self._authority,
            "product_account": locator,
            "system_program": SYS_PROGRAM_ID,
        }

    async def submit(
        self, locator: Pubkey, instruction: Instruction
    ) -> TransactionReceipt:
        send = self._program.rpc[instruction.name]
        try:
            signature = await self._bounded(
                send(*instruction.args, ctx=Context(accounts=self._accounts(locator)))
            )
        except LedgerUnavailable:
            # The transaction may still land; callers must not resubmit blindly.
            logger.warning(
                "Submit of %s to %s did not complete; outcome unknown",
                instruction.name,
                locator,
            )
            raise
        return TransactionReceipt(signature=str(signature), commitment=COMMITMENT)

    async def read(self, locator: Pubkey) -> AccountState:
        resp = await self._bounded(
            self._client.get_account_info(locator, commitment=Confirmed)
        )
        account = resp.value
        if account is None:
            raise LedgerNotFound(f"No account at {locator}")
        if account.owner != self._program_id:
            raise LedgerRejected(
                f"Account {locator} is not owned by the product program",
                details=f"owner={account.owner}",
            )
        return AccountState(data=bytes(account.data))

    async def call(self, locator: Pubkey, method: str, args: Sequence[Any]) -> bytes:
        simulate = self._program.simulate[method]
        resp = await self._bounded(
            simulate(*args, ctx=Context(accounts=self._accounts(locator)))
        )
        return parse_return_data(resp.raw, self._program_id)

    async def list_all(
        self, owner: Optional[Pubkey] = None
    ) -> AsyncIterator[Tuple[Pubkey, AccountState]]:
        filters: Optional[List[MemcmpOpts]] = None
        if owner is not None:
            # Owner is the first field after the discriminator.
            filters = [MemcmpOpts(offset=DISCRIMINATOR_SIZE, bytes=str(owner))]
        resp = await self._bounded(
            self._client.get_program_accounts(
                self._program_id,
                commitment=Confirmed,
                encoding="base64",
                filters=filters,
            )
        )
        for keyed in resp.value:
            yield keyed.pubkey, AccountState(data=bytes(keyed.account.data))

    async def block_height(self) -> int:
        resp = await self._bounded(self._client.get_block_height(Confirmed))
        return resp.value

    async def close(self) -> None:
        await self._client.close()
