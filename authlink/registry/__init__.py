from .product_registry import (
    LedgerStatus,
    ProductNotFound,
    ProductPage,
    ProductRecord,
    ProductRegistry,
    Registration,
)

__all__ = [
    "LedgerStatus",
    "ProductNotFound",
    "ProductPage",
    "ProductRecord",
    "ProductRegistry",
    "Registration",
]
