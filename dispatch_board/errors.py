"""
Error taxonomy for the dispatch board.

Every error raised by a service or the session gate derives from DispatchError and
is rendered by a single handler as {"kind": <class name>, "message": <text>}.
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class DispatchError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(DispatchError):
    """A required field is missing or a value is outside its vocabulary."""
    status_code = 422


class NotFoundError(DispatchError):
    status_code = 404


class ConflictError(DispatchError):
    """The record changed since the caller read it (version mismatch)."""
    status_code = 409


class StorageError(DispatchError):
    """The datastore is unreachable or the query failed."""
    status_code = 500


class StorageTimeoutError(StorageError):
    status_code = 504


class AuthError(DispatchError):
    """PIN mismatch or missing/expired session."""
    status_code = 401


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies, path and query values use the same envelope as ValidationError."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    error = ValidationError("; ".join(parts) or "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())
