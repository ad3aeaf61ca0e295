from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.config import Settings
from ..core.db import Database
from ..core.errors import (
    AccountNotFoundError,
    CommitError,
    DuplicateKeyError,
    IdempotencyKeyConflictError,
    InsufficientFundsError,
    InvalidRequestError,
    LedgerError,
    StorageError,
    StorageUnavailableError,
    TransferNotFoundError,
    TransferTimeoutError,
)
from ..models import TransferRecordModel
from .outcomes import Executed, Failed, FailureReason, Outcome, Replayed
from .repository import AccountStore, TransactionLedger


logger = logging.getLogger(__name__)

_REASONS: dict[type[LedgerError], FailureReason] = {
    InvalidRequestError: FailureReason.INVALID_REQUEST,
    AccountNotFoundError: FailureReason.NOT_FOUND,
    InsufficientFundsError: FailureReason.INSUFFICIENT_FUNDS,
    IdempotencyKeyConflictError: FailureReason.KEY_CONFLICT,
    StorageUnavailableError: FailureReason.STORAGE_UNAVAILABLE,
    CommitError: FailureReason.COMMIT_ERROR,
    StorageError: FailureReason.STORAGE_ERROR,
    TransferTimeoutError: FailureReason.TIMEOUT,
}


def failure_reason(exc: LedgerError) -> FailureReason:
    for cls in type(exc).__mro__:
        if cls in _REASONS:
            return _REASONS[cls]
    return FailureReason.STORAGE_ERROR


class TransferEngine:
    """Moves value between two accounts at most once per idempotency key.

    Each call runs one atomic unit: debit, credit and the ledger insert share
    a transaction, and the ledger's primary key decides which of several
    concurrent calls with the same key gets to commit. The up-front lookup
    only short-circuits plain retries.
    """

    def __init__(
        self,
        database: Database,
        *,
        allow_overdraft: bool = False,
        reject_mismatched_replays: bool = False,
        default_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.database = database
        self.allow_overdraft = allow_overdraft
        self.reject_mismatched_replays = reject_mismatched_replays
        self.default_timeout = default_timeout
        self.clock = clock

    @classmethod
    def from_settings(cls, database: Database, settings: Settings) -> TransferEngine:
        return cls(
            database,
            allow_overdraft=settings.allow_overdraft,
            reject_mismatched_replays=settings.reject_mismatched_replays,
            default_timeout=settings.transfer_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def execute(
        self,
        idempotency_key: str,
        from_account: str,
        to_account: str,
        amount: int,
        timeout: Optional[float] = None,
    ) -> Outcome:
        if not isinstance(idempotency_key, str) or not idempotency_key:
            return self._fail(
                idempotency_key,
                InvalidRequestError("Idempotency key must be a non-empty string"),
            )

        deadline = self._deadline(timeout)

        # Fast path for plain retries; the insert below is what actually
        # guards against a concurrent duplicate.
        try:
            existing = self._lookup_committed(idempotency_key)
        except StorageError as exc:
            return self._fail(idempotency_key, StorageUnavailableError(str(exc)))
        if existing is not None:
            return self._replay(existing, from_account, to_account, amount)

        with self.database.session() as session:
            try:
                session.begin()
                session.connection()
            except SQLAlchemyError:
                logger.warning(
                    "transfer.begin_failed",
                    extra={"idempotency_key": idempotency_key},
                    exc_info=True,
                )
                return self._fail(
                    idempotency_key,
                    StorageUnavailableError("Could not begin a transaction"),
                )

            try:
                self._check_deadline(deadline)
                self._limit_lock_wait(session, deadline)
                self._validate(from_account, to_account, amount)
                record = self._apply(
                    session, idempotency_key, from_account, to_account, amount, deadline
                )
                self._check_deadline(deadline)
            except DuplicateKeyError:
                self._rollback(session)
                return self._resolve_lost_race(
                    session, idempotency_key, from_account, to_account, amount
                )
            except LedgerError as exc:
                self._rollback(session)
                return self._fail_unless_committed(
                    session, idempotency_key, exc, deadline, from_account, to_account, amount
                )

            try:
                session.commit()
            except SQLAlchemyError as exc:
                self._rollback(session)
                logger.warning(
                    "transfer.commit_failed",
                    extra={"idempotency_key": idempotency_key},
                    exc_info=True,
                )
                return self._fail(
                    idempotency_key, CommitError(f"Commit failed: {exc.__class__.__name__}")
                )

            try:
                session.refresh(record)
            except SQLAlchemyError:
                # Committed already; the in-memory record is still accurate.
                logger.warning(
                    "transfer.refresh_failed",
                    extra={"idempotency_key": idempotency_key},
                    exc_info=True,
                )

        logger.info(
            "transfer.executed",
            extra={
                "idempotency_key": idempotency_key,
                "from_account": from_account,
                "to_account": to_account,
                "amount": amount,
            },
        )
        return Executed(record)

    def lookup(self, idempotency_key: str) -> TransferRecordModel:
        record = self._lookup_committed(idempotency_key)
        if record is None:
            raise TransferNotFoundError(f"Transfer {idempotency_key} not found")
        return record

    def get_balance(self, account_id: str) -> int:
        try:
            with self.database.session() as session:
                return AccountStore(session).get_balance(account_id)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Store is unavailable") from exc

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------
    def _validate(self, from_account: str, to_account: str, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidRequestError("Amount must be an integer")
        if amount <= 0:
            raise InvalidRequestError("Amount must be positive")
        for account_id in (from_account, to_account):
            if not isinstance(account_id, str) or not account_id:
                raise InvalidRequestError("Account ids must be non-empty strings")
        if from_account == to_account:
            raise InvalidRequestError("Cannot transfer to the same account")

    def _apply(
        self,
        session: Session,
        idempotency_key: str,
        from_account: str,
        to_account: str,
        amount: int,
        deadline: Optional[float],
    ) -> TransferRecordModel:
        accounts = AccountStore(session)
        ledger = TransactionLedger(session)

        # The first statement in the unit must be a write; see AccountStore.adjust.
        accounts.adjust(from_account, -amount)
        if not self.allow_overdraft and accounts.get_balance(from_account) < 0:
            raise InsufficientFundsError("Insufficient funds for transfer")
        self._check_deadline(deadline)

        accounts.adjust(to_account, amount)
        self._check_deadline(deadline)

        return ledger.insert(
            TransferRecordModel(
                idempotency_key=idempotency_key,
                from_account=from_account,
                to_account=to_account,
                amount=amount,
            )
        )

    def _resolve_lost_race(
        self,
        session: Session,
        idempotency_key: str,
        from_account: str,
        to_account: str,
        amount: int,
    ) -> Outcome:
        logger.info("transfer.race_lost", extra={"idempotency_key": idempotency_key})
        try:
            record = TransactionLedger(session).lookup(idempotency_key)
        except StorageError as exc:
            return self._fail(idempotency_key, exc)
        if record is None:
            return self._fail(
                idempotency_key,
                StorageError("Duplicate key reported but no committed record is visible"),
            )
        return self._replay(record, from_account, to_account, amount)

    def _fail_unless_committed(
        self,
        session: Session,
        idempotency_key: str,
        exc: LedgerError,
        deadline: Optional[float],
        from_account: str,
        to_account: str,
        amount: int,
    ) -> Outcome:
        if isinstance(exc, StorageError) and self._expired(deadline):
            exc = TransferTimeoutError("Transfer timed out waiting for the store")
        if isinstance(exc, InvalidRequestError):
            return self._fail(idempotency_key, exc)

        # A caller that waited behind a concurrent unit with the same key can
        # fail on state that unit left behind (a drained balance, a lock wait)
        # before ever reaching the ledger insert.
        try:
            record = TransactionLedger(session).lookup(idempotency_key)
        except StorageError:
            logger.warning(
                "transfer.recheck_failed",
                extra={"idempotency_key": idempotency_key},
                exc_info=True,
            )
            record = None
        if record is not None:
            logger.info("transfer.race_lost", extra={"idempotency_key": idempotency_key})
            return self._replay(record, from_account, to_account, amount)
        return self._fail(idempotency_key, exc)

    def _replay(
        self,
        record: TransferRecordModel,
        from_account: str,
        to_account: str,
        amount: int,
    ) -> Outcome:
        if self.reject_mismatched_replays and (
            record.from_account,
            record.to_account,
            record.amount,
        ) != (from_account, to_account, amount):
            return self._fail(
                record.idempotency_key,
                IdempotencyKeyConflictError(
                    "Idempotency key was previously used with different parameters"
                ),
            )
        logger.info(
            "transfer.replayed",
            extra={"idempotency_key": record.idempotency_key},
        )
        return Replayed(record)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _lookup_committed(self, idempotency_key: str) -> Optional[TransferRecordModel]:
        try:
            with self.database.session() as session:
                return TransactionLedger(session).lookup(idempotency_key)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError("Store is unavailable") from exc

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        if timeout is None:
            timeout = self.default_timeout
        if timeout is None:
            return None
        return self.clock() + timeout

    def _expired(self, deadline: Optional[float]) -> bool:
        return deadline is not None and self.clock() >= deadline

    def _check_deadline(self, deadline: Optional[float]) -> None:
        if self._expired(deadline):
            raise TransferTimeoutError("Transfer timed out before commit")

    def _limit_lock_wait(self, session: Session, deadline: Optional[float]) -> None:
        if deadline is None:
            return
        try:
            self.database.limit_lock_wait(session.connection(), deadline - self.clock())
        except SQLAlchemyError as exc:
            raise StorageError("Could not bound the lock wait") from exc

    def _rollback(self, session: Session) -> None:
        try:
            session.rollback()
        except SQLAlchemyError:
            # The store discards the open transaction with the connection.
            logger.warning("transfer.rollback_failed", exc_info=True)

    def _fail(self, idempotency_key: str, exc: LedgerError) -> Failed:
        reason = failure_reason(exc)
        logger.info(
            "transfer.failed",
            extra={
                "idempotency_key": idempotency_key,
                "reason": reason.value,
                "detail": str(exc),
            },
        )
        return Failed(reason, str(exc))
