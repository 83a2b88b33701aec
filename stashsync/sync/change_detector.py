"""Change detection for opaque replica state.

The engine never looks inside a state value. It only needs to know whether
two values are the same, which is answered on a canonical form where dict key
order and set element order are irrelevant.
"""

import hashlib
import json
from typing import Any


def _canonical_sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def normalize_state(state: Any) -> Any:
    """Convert a state value into its canonical JSON-compatible form.

    - dict keys become strings
    - tuples become lists
    - sets and frozensets become lists sorted by their canonical encoding

    Args:
        state: Any JSON-like value.

    Returns:
        Canonical value suitable for comparison and serialization.
    """
    if isinstance(state, dict):
        return {str(k): normalize_state(v) for k, v in state.items()}
    if isinstance(state, (list, tuple)):
        return [normalize_state(v) for v in state]
    if isinstance(state, (set, frozenset)):
        items = [normalize_state(v) for v in state]
        return sorted(items, key=_canonical_sort_key)
    return state


def calculate_checksum(state: Any) -> str:
    """Calculate a deterministic checksum for a state value.

    Args:
        state: State value.

    Returns:
        Truncated SHA-256 hex digest.
    """
    normalized = json.dumps(normalize_state(state), sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def states_equal(left: Any, right: Any) -> bool:
    """Structural deep equality of two state values."""
    if left is right:
        return True
    return normalize_state(left) == normalize_state(right)


def describe_state(state: Any) -> dict:
    """Small, shape-agnostic summary used in logs and conflict prompts."""
    if state is None:
        return {"checksum": None, "size_bytes": 0}
    encoded = json.dumps(normalize_state(state), sort_keys=True, default=str)
    return {
        "checksum": calculate_checksum(state),
        "size_bytes": len(encoded.encode()),
    }
