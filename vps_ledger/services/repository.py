from __future__ import annotations

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import AccountNotFoundError, DuplicateKeyError, StorageError
from ..models import AccountModel, TransferRecordModel


class AccountStore:
    """Balance reads and adjustments inside the caller's transaction.

    The store never commits or rolls back; the owner of the session decides.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_balance(self, account_id: str) -> int:
        try:
            balance = self.session.exec(
                select(AccountModel.balance).where(AccountModel.id == account_id)
            ).first()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read account {account_id}") from exc
        if balance is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return balance

    def adjust(self, account_id: str, delta: int) -> None:
        # Relative update so the store serializes concurrent writers on the row.
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(balance=AccountModel.balance + delta)
        )
        try:
            result = self.session.exec(stmt)  # type: ignore[call-overload]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to adjust account {account_id}") from exc
        if result.rowcount == 0:
            raise AccountNotFoundError(f"Account {account_id} not found")


class TransactionLedger:
    """Append-only record of committed transfers, keyed by idempotency key."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def lookup(self, idempotency_key: str) -> Optional[TransferRecordModel]:
        try:
            return self.session.get(TransferRecordModel, idempotency_key)
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to look up transfer {idempotency_key}"
            ) from exc

    def insert(self, record: TransferRecordModel) -> TransferRecordModel:
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateKeyError(
                f"Transfer {record.idempotency_key} already recorded"
            ) from exc
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to record transfer {record.idempotency_key}"
            ) from exc
        return record
