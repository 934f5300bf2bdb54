"""
Core processing modules for financial notification parsing.

This package contains:
- config: Application configuration and settings
- exceptions: Custom exception classes
- extraction: Transaction type, amount, counterparty and reference extraction
- fingerprint: Idempotency key for inbound messages
- institutions: Institution registry loading
- intent: Transactional vs promotional classification
- logger: Logging configuration
- matching: Sender to institution matching
- normalize: Raw message decoding
- parsing: Envelope address parsing
- schema: Pydantic models for pipeline values and outbound records
- verification: Sender-verification code and link extraction
"""
