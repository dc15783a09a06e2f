"""
Storage module for persisting claims, damage photos and cost breakdowns.

Provides:
- SQLite-based storage (default)
- In-memory storage (tests, demos)
"""

from .base import ClaimNotFoundError, ClaimStorage, generate_claim_number
from .claim_store import SQLiteClaimStore, get_claim_store
from .memory_store import MemoryClaimStore

__all__ = [
    "ClaimStorage",
    "ClaimNotFoundError",
    "SQLiteClaimStore",
    "MemoryClaimStore",
    "generate_claim_number",
    "get_claim_store",
]
