"""
Authenticity verification helpers.

Verification is read-only: it simulates the program's `verify_product`
method and never submits a transaction.
"""
