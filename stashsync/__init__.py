"""stashsync - shared inventory replica synchronization.

Keeps a device-local replica of an opaque application state consistent with
a shared remote record addressed by a short access code.
"""

__version__ = "0.1.0"
