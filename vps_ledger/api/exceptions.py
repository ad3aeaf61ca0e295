from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.errors import (
    AccountNotFoundError,
    InvalidRequestError,
    StorageError,
    TransferNotFoundError,
)
from ..services import Failed, FailureReason


FAILURE_STATUS: dict[FailureReason, int] = {
    FailureReason.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    FailureReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureReason.INSUFFICIENT_FUNDS: status.HTTP_409_CONFLICT,
    FailureReason.KEY_CONFLICT: status.HTTP_409_CONFLICT,
    FailureReason.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureReason.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureReason.COMMIT_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureReason.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def failure_response(outcome: Failed) -> JSONResponse:
    return JSONResponse(
        status_code=FAILURE_STATUS[outcome.reason],
        content={"detail": outcome.detail, "reason": outcome.reason.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(
        request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TransferNotFoundError)
    async def transfer_not_found_handler(
        request: Request, exc: TransferNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(
        request: Request, exc: InvalidRequestError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})
