"""
Top-level package for the Authlink product-authenticity gateway.

The service exposes a FastAPI app (see `main.py`) with:

- GET /api/health
- POST /api/products
- GET /api/products
- GET /api/products/{physicalTagId}
- GET /api/products/verify/{physicalTagId}

Every product record lives on chain as a program-derived account; this
package holds no local copy of any record.
"""

__version__ = "0.1.0"
