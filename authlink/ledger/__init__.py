"""
Ledger access: the gateway contract, the on-chain account codec and the
Solana implementation (imported lazily by `main.build_registry` so the
contract can be used without a cluster).
"""

from .base import AccountState, Instruction, LedgerGateway, TransactionReceipt

__all__ = ["AccountState", "Instruction", "LedgerGateway", "TransactionReceipt"]
