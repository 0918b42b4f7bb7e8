"""Error taxonomy of the articles API and the handlers that render it.

Every error leaves the API as ``{"errors": {"<field>": ["message", ...]}}``;
errors that are not about a particular field use the ``body`` key.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {"body": [self.message]}
        super().__init__(self.message)

    def to_dict(self):
        return {"errors": self.errors}


class ValidationError(APIError):
    status_code = 400
    default_message = "Invalid input"

    @classmethod
    def for_fields(cls, fields, reason="can't be blank"):
        return cls(
            message="Invalid fields: " + ", ".join(fields),
            errors={field: [reason] for field in fields},
        )


class Unauthenticated(APIError):
    status_code = 401
    default_message = "Invalid credentials"


class Forbidden(APIError):
    status_code = 403
    default_message = "Not allowed"


class NotFound(APIError):
    status_code = 404
    default_message = "Not found"


class Conflict(APIError):
    status_code = 409
    default_message = "Conflict"


class SlugTaken(Conflict):
    def __init__(self, slug):
        self.slug = slug
        super().__init__(f"Slug '{slug}' is already taken", {"slug": ["has already been taken"]})


class StoreError(APIError):
    status_code = 500
    default_message = "Storage failure"


async def api_error_handler(request: Request, exc: APIError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "body"
        errors.setdefault(field, []).append(error.get("msg", "is invalid"))
    logger.debug("Rejected request to %s: %s", request.url.path, errors)
    return JSONResponse(status_code=ValidationError.status_code, content={"errors": errors})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
