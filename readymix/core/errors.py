"""
Error types for the synchronization core.

Business conditions (unknown id, out-of-range progress) never raise —
they are reported through return values.  Exceptions are reserved for
malformed caller input.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all synchronization core errors."""


class InvalidArgumentError(SyncError, ValueError):
    """Raised when a caller passes input the store cannot accept."""
