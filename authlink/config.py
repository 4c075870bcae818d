"""
Configuration for the Authlink gateway.

Values come from the environment, after `python-dotenv` has loaded a
`.env` file from the working directory if one exists. The required
values are only checked when the Solana gateway is actually built (see
`require_settings`), so the package imports cleanly in tests.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from dotenv import load_dotenv
from solders.keypair import Keypair

load_dotenv()

# RPC endpoint of the Solana cluster, e.g. https://api.devnet.solana.com
SOLANA_NETWORK: str = os.getenv("SOLANA_NETWORK", "http://127.0.0.1:8899")

# Base58 id of the deployed product program.
PROGRAM_ID: str = os.getenv("PROGRAM_ID", "")

# Anchor IDL describing the program's instructions and account layouts.
IDL_PATH: Path = Path(os.getenv("IDL_PATH", "idl.json")).expanduser()

# Solana CLI keypair file (JSON array of 64 ints) for the registrar.
KEYPAIR_FILE: Path = Path(
    os.getenv("KEYPAIR_FILE", "~/.config/solana/id.json")
).expanduser()

PORT: int = int(os.getenv("PORT", "3001"))

# Upper bound for any single ledger round trip.
LEDGER_TIMEOUT_SECONDS: float = float(os.getenv("LEDGER_TIMEOUT_SECONDS", "30"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def require_settings() -> None:
    """Raise `ValueError` naming every missing piece of required config."""
    missing = []
    if not PROGRAM_ID:
        missing.append("PROGRAM_ID")
    if not IDL_PATH.is_file():
        missing.append(f"IDL_PATH ({IDL_PATH})")
    if not KEYPAIR_FILE.is_file():
        missing.append(f"KEYPAIR_FILE ({KEYPAIR_FILE})")
    if missing:
        raise ValueError("Missing required configuration: " + ", ".join(missing))


def load_authority(path: Path) -> Keypair:
    """
    Load the registrar keypair from a Solana CLI keypair file.

    The file holds a JSON array of 64 integers (secret key followed by
    public key).
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list) or len(raw) != 64:
        raise ValueError(f"{path}: expected a JSON array of 64 integers")
    return Keypair.from_bytes(bytes(raw))
