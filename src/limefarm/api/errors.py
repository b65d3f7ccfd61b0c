from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from limefarm.runtime.errors import (
    FarmError,
    InsufficientExternalBalance,
    InvalidAmount,
    InvalidWithdrawal,
    NotHarvestingPeriod,
    TransferRejected,
    Unauthorized,
    UnknownPool,
)


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_FARM_ERROR_STATUS = {
    Unauthorized: 403,
    UnknownPool: 404,
    InvalidAmount: 400,
    InvalidWithdrawal: 400,
    NotHarvestingPeriod: 409,
    InsufficientExternalBalance: 402,
    TransferRejected: 409,
}


def farm_error_status(err: FarmError) -> int:
    for cls, status in _FARM_ERROR_STATUS.items():
        if isinstance(err, cls):
            return status
    return 400


def _error_body(code: str, message: str, details: Any) -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, "details": details}}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message, exc.details))

    @app.exception_handler(FarmError)
    async def _farm_error(_request: Request, exc: FarmError) -> JSONResponse:
        details = exc.details if isinstance(exc.details, dict) else {}
        return JSONResponse(status_code=farm_error_status(exc), content=_error_body(exc.code, exc.reason, details))
