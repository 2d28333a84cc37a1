from fastapi import Request
from fastapi.responses import JSONResponse

from activation_server.schemas import AdminErrorResponse, ErrorResponse


class AdminApiError(Exception):
    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message


def admin_error_handler(request: Request, exc: AdminApiError) -> JSONResponse:
    body = AdminErrorResponse(error=exc.error, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    body = ErrorResponse(error="store_unavailable", message="Activation service temporarily unavailable")
    return JSONResponse(status_code=503, content=body.model_dump(exclude_none=True), headers={"Retry-After": "5"})
