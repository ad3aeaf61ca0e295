from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

class TransferRequest(BaseModel):
    from_account: str = Field(..., description="Account debited by the transfer")
    to_account: str = Field(..., description="Account credited by the transfer")
    amount: int = Field(..., description="Amount in minor units (validated by the engine)")

class TransferRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    idempotency_key: str
    from_account: str
    to_account: str
    amount: int
    outcome: str
    created_at: datetime

class TransferResponse(BaseModel):
    status: Literal["executed", "replayed"]
    message: str
    record: TransferRecordResponse

class AccountResponse(BaseModel):
    id: str
    balance: int = Field(..., description="Balance in minor units (e.g. cents)")

class ErrorResponse(BaseModel):
    detail: str
    reason: str | None = None
