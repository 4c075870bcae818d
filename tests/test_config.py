import json
from pathlib import Path

import pytest
from solders.keypair import Keypair

from authlink import config


def test_load_authority_reads_cli_keypair(tmp_path: Path):
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))

    loaded = config.load_authority(path)

    assert loaded.pubkey() == keypair.pubkey()


def test_load_authority_rejects_wrong_length(tmp_path: Path):
    path = tmp_path / "id.json"
    path.write_text(json.dumps([1, 2, 3]))

    with pytest.raises(ValueError):
        config.load_authority(path)


def test_require_settings_names_missing_values(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(config, "PROGRAM_ID", "")
    monkeypatch.setattr(config, "IDL_PATH", tmp_path / "missing-idl.json")
    monkeypatch.setattr(config, "KEYPAIR_FILE", tmp_path / "missing-id.json")

    with pytest.raises(ValueError) as excinfo:
        config.require_settings()

    message = str(excinfo.value)
    assert "PROGRAM_ID" in message
    assert "IDL_PATH" in message
    assert "KEYPAIR_FILE" in message


def test_require_settings_accepts_complete_config(tmp_path: Path, monkeypatch):
    idl = tmp_path / "idl.json"
    idl.write_text("{}")
    keypair = tmp_path / "id.json"
    keypair.write_text(json.dumps(list(bytes(Keypair()))))
    monkeypatch.setattr(config, "PROGRAM_ID", "11111111111111111111111111111111")
    monkeypatch.setattr(config, "IDL_PATH", idl)
    monkeypatch.setattr(config, "KEYPAIR_FILE", keypair)

    config.require_settings()
