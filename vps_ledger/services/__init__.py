from .engine import TransferEngine, failure_reason
from .outcomes import Executed, Failed, FailureReason, Outcome, Replayed
from .repository import AccountStore, TransactionLedger

__all__ = [
    "AccountStore",
    "Executed",
    "Failed",
    "FailureReason",
    "Outcome",
    "Replayed",
    "TransactionLedger",
    "TransferEngine",
    "failure_reason",
]
