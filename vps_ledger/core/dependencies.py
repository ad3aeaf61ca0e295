from fastapi import Depends, Request

from ..services import TransferEngine
from .config import Settings, get_settings
from .db import Database

def get_database(request: Request) -> Database:
    return request.app.state.database

def get_transfer_engine(
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> TransferEngine:
    return TransferEngine.from_settings(database, settings)
