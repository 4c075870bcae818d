import pytest

from authlink.derivation import derive_product_address
from authlink.ledger.base import Instruction
from authlink.verification.verify import VERIFY_METHOD, verify_product


@pytest.mark.asyncio
async def test_verify_product_missing_account_returns_not_authentic(gateway):
    result = await verify_product(gateway, "nfc-missing")

    assert result.is_authentic is False
    assert result.error
    # Latency should be non-negative.
    assert result.latency_ms >= 0


@pytest.mark.asyncio
async def test_verify_product_uses_read_only_call(gateway):
    locator = derive_product_address(gateway.authority, "nfc123", gateway.program_id)
    await gateway.submit(locator, Instruction("initialize_product", ["nfc123", "p1"]))
    gateway.calls.clear()

    result = await verify_product(gateway, "nfc123")

    assert result.is_authentic is True
    assert result.locator == locator
    assert gateway.calls == ["call"]


@pytest.mark.asyncio
async def test_verify_product_false_verdict_from_program(gateway):
    async def deny(locator, method, args):
        assert method == VERIFY_METHOD
        return b"\x00"

    gateway.call = deny

    result = await verify_product(gateway, "nfc123")

    assert result.is_authentic is False
    assert result.error is None
    assert result.fault_kind is None
