from .db import Account as AccountModel
from .db import TransferRecord as TransferRecordModel
from .schemas import (
    AccountResponse,
    ErrorResponse,
    TransferRecordResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "AccountResponse",
    "ErrorResponse",
    "TransferRecordResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
    "TransferRecordModel",
]
