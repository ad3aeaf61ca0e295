from __future__ import annotations
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel

class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: str = Field(primary_key=True)
    balance: int = 0

class TransferRecord(SQLModel, table=True):
    __tablename__ = "transactions"

    # The primary key is the idempotency gate: a second insert for the same
    # key fails at the store, inside the transaction that attempted it.
    idempotency_key: str = Field(primary_key=True)
    from_account: str = Field(index=True)
    to_account: str = Field(index=True)
    amount: int
    outcome: str = "success"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
