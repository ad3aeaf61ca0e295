from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection, Engine
from sqlmodel import Session, SQLModel, create_engine

from ..models import AccountModel


logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 5.0


def create_engine_for_url(database_url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
        }
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "checkin", _restore_busy_timeout)
    return engine


def _restore_busy_timeout(dbapi_connection: Any, connection_record: Any) -> None:
    # A unit may have shortened the wait on this connection; see limit_lock_wait.
    if dbapi_connection is not None:
        ms = int(SQLITE_BUSY_TIMEOUT_SECONDS * 1000)
        dbapi_connection.execute(f"PRAGMA busy_timeout = {ms}")


class Database:
    """Process-wide store handle: one engine plus a session factory.

    Created once at startup and disposed on shutdown; everything that needs
    the store receives this object explicitly.
    """

    def __init__(self, database_url: str) -> None:
        self.url = database_url
        self.engine = create_engine_for_url(database_url)

    def create_all(self) -> None:
        SQLModel.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        SQLModel.metadata.drop_all(self.engine)

    def seed_accounts(self, balances: Mapping[str, int]) -> None:
        """Insert the given accounts, leaving existing rows untouched."""
        with self.session() as session:
            created = []
            for account_id, balance in balances.items():
                if session.get(AccountModel, account_id) is None:
                    session.add(AccountModel(id=account_id, balance=balance))
                    created.append(account_id)
            session.commit()
        if created:
            logger.info("accounts.seeded", extra={"account_ids": created})

    def limit_lock_wait(self, connection: Connection, seconds: float) -> None:
        """Bound how long the next statements on ``connection`` wait for locks."""
        ms = max(1, math.ceil(seconds * 1000))
        dialect = connection.dialect.name
        if dialect == "sqlite":
            connection.exec_driver_sql(f"PRAGMA busy_timeout = {ms}")
        elif dialect == "postgresql":
            connection.exec_driver_sql(f"SET LOCAL lock_timeout = {ms}")
            connection.exec_driver_sql(f"SET LOCAL statement_timeout = {ms}")

    def session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def dispose(self) -> None:
        self.engine.dispose()
