from typing import Optional, Union

from fastapi import APIRouter, Depends, Header, Response, status
from fastapi.responses import JSONResponse

from ..core.dependencies import get_transfer_engine
from ..core.errors import InvalidRequestError
from ..models import (
    AccountResponse,
    ErrorResponse,
    TransferRecordResponse,
    TransferRequest,
    TransferResponse,
)
from ..services import Executed, Failed, TransferEngine
from .exceptions import failure_response


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    engine: TransferEngine = Depends(get_transfer_engine),
) -> AccountResponse:
    return AccountResponse(id=account_id, balance=engine.get_balance(account_id))

transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])

@transfer_router.post(
    "",
    response_model=TransferResponse,
    responses={
        201: {"model": TransferResponse},
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
def create_transfer(
    payload: TransferRequest,
    response: Response,
    engine: TransferEngine = Depends(get_transfer_engine),
    idempotency_key: Optional[str] = Header(
        default=None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> Union[TransferResponse, JSONResponse]:
    if idempotency_key is None or not idempotency_key.strip():
        raise InvalidRequestError("Missing Idempotency-Key header")

    outcome = engine.execute(
        idempotency_key, payload.from_account, payload.to_account, payload.amount
    )
    if isinstance(outcome, Failed):
        return failure_response(outcome)

    record = TransferRecordResponse.model_validate(outcome.record)
    if isinstance(outcome, Executed):
        response.status_code = status.HTTP_201_CREATED
        return TransferResponse(
            status="executed", message="Payment Successful", record=record
        )

    response.headers["Idempotent-Replayed"] = "true"
    return TransferResponse(
        status="replayed",
        message="Transaction already processed (Cached Response)",
        record=record,
    )

@transfer_router.get("/{idempotency_key}", response_model=TransferRecordResponse)
def get_transfer(
    idempotency_key: str,
    engine: TransferEngine = Depends(get_transfer_engine),
) -> TransferRecordResponse:
    return TransferRecordResponse.model_validate(engine.lookup(idempotency_key))

__all__ = ["router", "transfer_router"]
