"""Access codes that address one shared record."""

import secrets
import string
from typing import Optional

from stashsync.errors import InvalidAccessCode

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_ACCESS_CODE_LENGTH = 6


def generate_access_code(length: int = DEFAULT_ACCESS_CODE_LENGTH) -> str:
    """Generate a random, human-copyable access code.

    Args:
        length: Number of characters.

    Returns:
        Upper-case alphanumeric code.
    """
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


def normalize_access_code(code: Optional[str]) -> str:
    """Strip whitespace and upper-case a user-entered code."""
    return (code or "").strip().upper()


def validate_access_code(
    code: Optional[str],
    length: int = DEFAULT_ACCESS_CODE_LENGTH,
) -> str:
    """Normalize and validate an access code.

    Args:
        code: User-entered code.
        length: Expected length.

    Returns:
        The normalized code.

    Raises:
        InvalidAccessCode: If the code has the wrong length or characters.
    """
    normalized = normalize_access_code(code)
    if len(normalized) != length:
        raise InvalidAccessCode(code, f"expected {length} characters, got {len(normalized)}")
    if any(ch not in ACCESS_CODE_ALPHABET for ch in normalized):
        raise InvalidAccessCode(code, "only letters A-Z and digits 0-9 are allowed")
    return normalized
