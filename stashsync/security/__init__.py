"""Security module for stashsync.

This module provides:
- The credential primitive (one-way secret hashing)
- The credential gate guarding destructive session operations
"""

from .credentials import (
    CredentialGate,
    CredentialStore,
    hash_secret,
)

__all__ = [
    "CredentialGate",
    "CredentialStore",
    "hash_secret",
]
