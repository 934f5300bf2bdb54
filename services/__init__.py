"""
Service layer for business logic.

This package contains the message pipeline that orchestrates normalization,
institution matching, classification and extraction, the record assembler,
and the ledger backend client.
"""
