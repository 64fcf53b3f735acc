# backend/sstdb/apps/training/errors.py
"""
Classified sync failures.

Parsing problems never get here (they degrade to absent dates and
NOT_TRAINED). These are the fetch/persist failures a caller must be able
to tell apart to show an accurate message.
"""

from __future__ import annotations

import enum


class SyncErrorKind(str, enum.Enum):
    TRANSPORT = "TRANSPORT"
    AUTHORIZATION = "AUTHORIZATION"
    SCHEMA = "SCHEMA"
    EMPTY = "EMPTY"
    BUSY = "BUSY"


class SyncError(Exception):
    kind: SyncErrorKind = SyncErrorKind.SCHEMA
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportError(SyncError):
    """Network failure, timeout or non-success HTTP status. Safe to retry."""

    kind = SyncErrorKind.TRANSPORT
    retryable = True


class AuthorizationError(SyncError):
    """The source answered with a sign-in page instead of data."""

    kind = SyncErrorKind.AUTHORIZATION


class SchemaError(SyncError):
    """Payload shape is wrong, or the store rejected every record."""

    kind = SyncErrorKind.SCHEMA


class EmptyResultError(SyncError):
    """Zero usable rows. A no-op: existing data is kept."""

    kind = SyncErrorKind.EMPTY
    retryable = True


class SyncInProgressError(SyncError):
    kind = SyncErrorKind.BUSY
    retryable = True
