"""
Hours Kernel - cost and hour accounting core

Shared infrastructure for the resource cost and hour-ledger subsystem:
- Append-only, hash-chained audit trail
- Atomic, service-owned transactions
- Derived balances (credits and debits are never stored)
- Typed errors with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
