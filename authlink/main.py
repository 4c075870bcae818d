"""
FastAPI app for the Authlink product-authenticity gateway.

Endpoints:
- GET /api/health
- POST /api/products
- GET /api/products
- GET /api/products/verify/{physical_tag_id}
- GET /api/products/{physical_tag_id}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .errors import (
    AuthlinkError,
    DuplicateRegistration,
    InvalidInput,
    LedgerError,
    LedgerNotFound,
    LedgerRejected,
    LedgerUnavailable,
)
from .registry import ProductNotFound, ProductRecord, ProductRegistry
from .registry.product_registry import parse_pubkey
from .schemas import (
    ErrorResponse,
    HealthResponse,
    LedgerInfo,
    NotFoundResponse,
    ProductListResponse,
    ProductOut,
    ProductResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (DuplicateRegistration, status.HTTP_409_CONFLICT),
    (LedgerNotFound, status.HTTP_404_NOT_FOUND),
    (LedgerRejected, status.HTTP_502_BAD_GATEWAY),
    (LedgerUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def build_registry() -> ProductRegistry:
    """Build the registry against the configured Solana cluster."""
    from .ledger.solana_gateway import SolanaLedgerGateway

    config.require_settings()
    gateway = SolanaLedgerGateway.from_files(
        network=config.SOLANA_NETWORK,
        program_id=config.PROGRAM_ID,
        idl_path=config.IDL_PATH,
        keypair_file=config.KEYPAIR_FILE,
        timeout=config.LEDGER_TIMEOUT_SECONDS,
    )
    logger.info("Connecting to Solana network: %s", gateway.network)
    logger.info("Program ID: %s", gateway.program_id)
    logger.info("Using wallet public key: %s", gateway.authority)
    return ProductRegistry(gateway)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests pre-populate app.state.registry with an in-memory ledger.
    if app.state.registry is None:
        app.state.registry = build_registry()
    try:
        yield
    finally:
        await app.state.registry.gateway.close()


app = FastAPI(
    title="Authlink Product Authenticity Gateway",
    version="0.1.0",
    description="Registers and verifies NFC-tagged products on a Solana program.",
    lifespan=lifespan,
)

# Permissive CORS for dev; tighten this later if needed.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.registry = None


def _registry() -> ProductRegistry:
    return app.state.registry


def _product_out(record: ProductRecord) -> ProductOut:
    return ProductOut(
        owner=str(record.owner),
        physical_tag_id=record.physical_tag_id,
        product_id=record.product_id,
        account_locator=str(record.locator),
    )


@app.exception_handler(AuthlinkError)
async def authlink_error_handler(request: Request, exc: AuthlinkError) -> JSONResponse:
    status_code = next(
        (code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = ErrorResponse(error=exc.message, details=exc.details)
    return JSONResponse(
        status_code=status_code, content=body.model_dump(by_alias=True)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are plain 400 `InvalidInput`."""
    problems = "; ".join(
        "{}: {}".format(".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    )
    body = ErrorResponse(error="Invalid request", details=problems or None)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=body.model_dump(by_alias=True),
    )


@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check including current block height."""
    try:
        ledger = await _registry().health()
    except LedgerError as exc:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "message": exc.message},
        )
    return HealthResponse(
        status="ok",
        ledger=LedgerInfo(network=ledger.network, block_height=ledger.block_height),
        program_id=str(ledger.program_id),
        wallet_address=str(ledger.authority),
    )


@app.post(
    "/api/products",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register_product(req: RegisterRequest) -> RegisterResponse:
    """Register a new product on chain."""
    registration = await _registry().register(req.physical_tag_id, req.product_id)
    return RegisterResponse(
        transaction=registration.receipt.signature,
        account_locator=str(registration.locator),
        physical_tag_id=registration.physical_tag_id,
        product_id=registration.product_id,
        owner=str(registration.owner),
        commitment=registration.receipt.commitment,
    )


@app.get(
    "/api/products/verify/{physical_tag_id}",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
)
async def verify_product(physical_tag_id: str) -> VerifyResponse:
    """
    Verify whether a product is authentic.

    We *do not* return 404 for unknown products; the verdict is simply
    `isAuthentic=false` with the reason attached for diagnostics.
    """
    result = await _registry().verify(physical_tag_id)
    return VerifyResponse(
        is_authentic=result.is_authentic,
        account_locator=str(result.locator) if result.locator else None,
        physical_tag_id=result.physical_tag_id,
        error=result.error,
        fault_kind=result.fault_kind,
        latency_ms=result.latency_ms,
    )


@app.get(
    "/api/products/{physical_tag_id}",
    response_model=ProductResponse,
    responses={404: {"model": NotFoundResponse}},
)
async def get_product(physical_tag_id: str):
    """Fetch the on-chain details of a registered product."""
    result = await _registry().fetch(physical_tag_id)
    if isinstance(result, ProductNotFound):
        body = NotFoundResponse(details=result.details, physical_tag_id=physical_tag_id)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=body.model_dump(by_alias=True),
        )
    return ProductResponse(product=_product_out(result))


@app.get("/api/products", response_model=ProductListResponse)
async def list_products(
    owner: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> ProductListResponse:
    """
    List registered products.

    With no parameters every product account of the program is returned.
    `owner` narrows to one authority; `limit` / `cursor` page through
    results ordered by account address.
    """
    owner_key = parse_pubkey(owner) if owner else None
    page = await _registry().list_all(owner=owner_key, cursor=cursor, limit=limit)
    return ProductListResponse(
        count=page.count,
        products=[_product_out(record) for record in page.products],
        next_cursor=page.next_cursor,
    )


def run() -> None:
    """
    Convenience entrypoint if you want to run via:

        python -m authlink.main

    or via the `authlink` console_script defined in pyproject.toml.
    """
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "authlink.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=False,
    )


if __name__ == "__main__":
    run()
