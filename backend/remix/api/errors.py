"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from remix.api.request_id import get_request_id
from remix.domain.common.errors import DomainError, ErrorKind, UnknownError


def domain_error_payload(exc: DomainError, request_id: str) -> dict:
    detail = UnknownError.message if isinstance(exc, UnknownError) else exc.detail
    return {"detail": detail, "kind": exc.kind.value, "request_id": request_id}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
        rid = get_request_id(request)
        return JSONResponse(status_code=exc.status_code, content=domain_error_payload(exc, rid))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": exc.detail, "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {
            "detail": "validation_error",
            "kind": ErrorKind.VALIDATION.value,
            "errors": jsonable_errors(exc),
            "request_id": rid,
        }
        return JSONResponse(status_code=422, content=payload)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        errors.append({"loc": list(error.get("loc", ())), "msg": str(error.get("msg", "")), "type": error.get("type")})
    return errors
