"""
Pydantic schemas used by the FastAPI app.

Python attributes are snake_case; the JSON wire format is camelCase
(`physicalTagId`, `accountLocator`, ...) via the alias generator.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """
    Request payload for POST /api/products.

    Both fields are optional at the schema level so that a missing field
    is reported by the registry as `InvalidInput` (400) rather than as a
    schema validation error. `nfcId` is accepted as an alias for
    `physicalTagId`.
    """

    physical_tag_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("physicalTagId", "nfcId")
    )
    product_id: Optional[str] = None


class RegisterResponse(CamelModel):
    success: bool = True
    transaction: str
    account_locator: str
    physical_tag_id: str
    product_id: str
    owner: str
    commitment: str


class VerifyResponse(CamelModel):
    """
    Response payload for GET /api/products/verify/{physicalTagId}.

    - is_authentic: overall verdict; False for unknown products
    - account_locator: derived account address, when derivation succeeded
    - error / fault_kind: why verification failed, for diagnostics only
    - latency_ms: end-to-end verification latency in milliseconds
    """

    success: bool = True
    is_authentic: bool
    account_locator: Optional[str] = None
    physical_tag_id: str
    error: Optional[str] = None
    fault_kind: Optional[str] = None
    latency_ms: Optional[int] = None


class ProductOut(CamelModel):
    owner: str
    physical_tag_id: str
    product_id: str
    account_locator: str


class ProductResponse(CamelModel):
    success: bool = True
    product: ProductOut


class NotFoundResponse(CamelModel):
    success: bool = False
    error: str = "Product not found"
    details: Optional[str] = None
    physical_tag_id: str


class ProductListResponse(CamelModel):
    success: bool = True
    count: int
    products: List[ProductOut]
    next_cursor: Optional[str] = None


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    details: Optional[str] = None


class LedgerInfo(CamelModel):
    network: str
    block_height: int


class HealthResponse(CamelModel):
    """Health check response, including live ledger connectivity."""

    status: str
    ledger: LedgerInfo
    program_id: str
    wallet_address: str
