from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..models import TransferRecordModel


class FailureReason(str, Enum):
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    KEY_CONFLICT = "key_conflict"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    STORAGE_ERROR = "storage_error"
    COMMIT_ERROR = "commit_error"
    TIMEOUT = "timeout"

    @property
    def retryable(self) -> bool:
        """Infrastructure faults; retrying with the same key is safe."""
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        FailureReason.STORAGE_UNAVAILABLE,
        FailureReason.STORAGE_ERROR,
        FailureReason.COMMIT_ERROR,
        FailureReason.TIMEOUT,
    }
)


@dataclass(frozen=True)
class Executed:
    """The transfer ran during this call and committed."""

    record: TransferRecordModel


@dataclass(frozen=True)
class Replayed:
    """A transfer with this key had already committed; no balances moved."""

    record: TransferRecordModel


@dataclass(frozen=True)
class Failed:
    """The transfer did not happen; nothing from this call persists."""

    reason: FailureReason
    detail: str


Outcome = Union[Executed, Replayed, Failed]
