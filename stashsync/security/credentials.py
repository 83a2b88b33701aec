"""Administrator credential gate for destructive session operations.

Force-overwriting the shared record, invalidating an access code and
importing over the shared record all require the administrator secret set
when the session was created. Only a one-way hash of the secret is stored in
the shared record.
"""

import hashlib
from collections.abc import Callable
from typing import Optional, Protocol

import structlog

from stashsync.errors import CredentialRejected

logger = structlog.get_logger(__name__)

Hasher = Callable[[str], str]


def hash_secret(secret: str) -> str:
    """One-way hash of an administrator secret.

    Args:
        secret: Plain-text secret.

    Returns:
        SHA-256 hex digest of the UTF-8 encoded secret.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


class CredentialStore(Protocol):
    """Where credential hashes live (the shared record)."""

    async def get_credential_hash(self, code: str) -> Optional[str]: ...

    async def set_credential_hash(self, code: str, credential_hash: str) -> None: ...


class CredentialGate:
    """Verifies administrator secrets against the hash in the shared record.

    A missing hash never means "no password required": verification fails
    closed.
    """

    def __init__(self, store: CredentialStore, hasher: Hasher = hash_secret):
        """Initialize the gate.

        Args:
            store: Source of stored credential hashes.
            hasher: Credential primitive.
        """
        self._store = store
        self._hasher = hasher

    async def verify(self, code: str, secret: Optional[str]) -> bool:
        """Check ``secret`` against the hash stored for ``code``.

        Args:
            code: Access code.
            secret: Secret supplied by a human.

        Returns:
            True only if a hash is stored and matches.
        """
        if not secret:
            return False

        stored_hash = await self._store.get_credential_hash(code)
        if not stored_hash:
            logger.warning("No credential stored for access code", access_code=code)
            return False

        return self._hasher(secret) == stored_hash

    async def require(self, code: str, secret: Optional[str], action: str = "") -> None:
        """Raise unless ``secret`` verifies.

        Raises:
            CredentialRejected: If verification fails.
        """
        if not await self.verify(code, secret):
            logger.warning("Credential rejected", access_code=code, action=action)
            raise CredentialRejected(
                f"Administrator secret rejected{f' for {action}' if action else ''}"
            )

    def credential_hash(self, secret: str) -> str:
        """Hash ``secret`` for storage in a new shared record.

        Raises:
            CredentialRejected: If the secret is empty.
        """
        if not secret:
            raise CredentialRejected("An administrator secret is required to create a session")
        return self._hasher(secret)

    async def set_credential(self, code: str, secret: str) -> str:
        """Store the hash of ``secret`` on an existing record.

        Returns:
            The stored hash.
        """
        credential_hash = self.credential_hash(secret)
        await self._store.set_credential_hash(code, credential_hash)
        logger.info("Credential set for access code", access_code=code)
        return credential_hash
