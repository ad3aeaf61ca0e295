class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""


class InvalidRequestError(LedgerError):
    """Raised when a transfer request is malformed (bad amount or accounts)."""


class AccountNotFoundError(LedgerError):
    """Raised when an account id is missing from the store."""


class TransferNotFoundError(LedgerError):
    """Raised when no transfer was recorded under an idempotency key."""


class InsufficientFundsError(LedgerError):
    """Raised when a debit would drop a balance below zero and overdraft is off."""


class DuplicateKeyError(LedgerError):
    """Raised when the ledger already holds a record for the idempotency key."""


class IdempotencyKeyConflictError(LedgerError):
    """Raised when an idempotency key is reused with different transfer input."""


class StorageError(LedgerError):
    """Raised when a store round trip fails inside a transaction."""


class StorageUnavailableError(StorageError):
    """Raised when the store cannot be reached or a transaction cannot begin."""


class CommitError(StorageError):
    """Raised when the final commit fails; the outcome is unknown to the caller."""


class TransferTimeoutError(LedgerError):
    """Raised when a transfer overruns its deadline before commit."""
