"""
imani_session.api.errors

Mapping of session errors onto HTTP responses.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from imani_session.domain.errors import ErrorKind, PermissionDenied, SessionError

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.invalid_credentials: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.invalid_pin: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.not_authenticated: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.profile_not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.pin_not_set: status.HTTP_409_CONFLICT,
    ErrorKind.duplicate_company_code: status.HTTP_409_CONFLICT,
    ErrorKind.email_already_registered: status.HTTP_409_CONFLICT,
    ErrorKind.registration_failed: status.HTTP_400_BAD_REQUEST,
    ErrorKind.network_error: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.validation_error: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SessionError)
    async def _session_error(_: Request, exc: SessionError) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
            content={"error": exc.kind.value, "detail": exc.message},
        )

    @app.exception_handler(PermissionDenied)
    async def _permission_denied(_: Request, exc: PermissionDenied) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"error": "PermissionDenied", "detail": str(exc)},
        )
