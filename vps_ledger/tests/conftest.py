from collections.abc import Callable, Iterator

import pytest
from sqlmodel import select

from ..core.db import Database
from ..models import AccountModel, TransferRecordModel
from ..services import TransferEngine

SEED_BALANCES = {"a": 100, "b": 0, "c": 50}


@pytest.fixture
def database(tmp_path) -> Iterator[Database]:
    db = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.create_all()
    db.seed_accounts(SEED_BALANCES)
    yield db
    db.dispose()


@pytest.fixture
def engine(database: Database) -> TransferEngine:
    return TransferEngine(database)


@pytest.fixture
def snapshot(database: Database) -> Callable[[], tuple[dict[str, int], list[str]]]:
    """Current balances and ledger keys, read in a fresh session."""

    def _snapshot() -> tuple[dict[str, int], list[str]]:
        with database.session() as session:
            balances = {
                account.id: account.balance
                for account in session.exec(select(AccountModel))
            }
            keys = sorted(
                session.exec(select(TransferRecordModel.idempotency_key)).all()
            )
        return balances, keys

    return _snapshot
