"""Problem responses for the REST boundary.

Errors carry a machine-readable ``message`` key (``error.userexists``, ...)
that clients translate, and are rendered as ``application/problem+json``.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from ...domain.models import ErrorKind

PROBLEM_BASE_URL = "https://www.jhipster.tech/problem"
DEFAULT_TYPE = f"{PROBLEM_BASE_URL}/problem-with-message"
CONSTRAINT_VIOLATION_TYPE = f"{PROBLEM_BASE_URL}/constraint-violation"
INVALID_PASSWORD_TYPE = f"{PROBLEM_BASE_URL}/invalid-password"
EMAIL_ALREADY_USED_TYPE = f"{PROBLEM_BASE_URL}/email-already-used"
LOGIN_ALREADY_USED_TYPE = f"{PROBLEM_BASE_URL}/login-already-used"
EMAIL_NOT_FOUND_TYPE = f"{PROBLEM_BASE_URL}/email-not-found"
ABOUT_BLANK = "about:blank"

ERR_VALIDATION = "error.validation"
PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemError(HTTPException):
    """HTTP error rendered as a problem document."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        type_: str = ABOUT_BLANK,
        message: Optional[str] = None,
        params: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=title, headers=headers)
        self.title = title
        self.type = type_
        self.message = message or f"error.http.{status_code}"
        self.params = params

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "message": self.message,
        }
        if self.params is not None:
            body["params"] = self.params
        return body


def bad_request_alert(title: str, entity_name: str, error_key: str, type_: str = DEFAULT_TYPE) -> ProblemError:
    return ProblemError(
        status.HTTP_400_BAD_REQUEST,
        title,
        type_=type_,
        message=f"error.{error_key}",
        params=entity_name,
    )


def login_already_used() -> ProblemError:
    return bad_request_alert("Login name already used!", "userManagement", "userexists", LOGIN_ALREADY_USED_TYPE)


def email_already_used() -> ProblemError:
    return bad_request_alert("Email is already in use!", "userManagement", "emailexists", EMAIL_ALREADY_USED_TYPE)


def invalid_password() -> ProblemError:
    return ProblemError(status.HTTP_400_BAD_REQUEST, "Incorrect password", type_=INVALID_PASSWORD_TYPE)


def email_not_found() -> ProblemError:
    return ProblemError(status.HTTP_400_BAD_REQUEST, "Email address not registered", type_=EMAIL_NOT_FOUND_TYPE)


def internal_server_error(title: str) -> ProblemError:
    return ProblemError(status.HTTP_500_INTERNAL_SERVER_ERROR, title, type_=DEFAULT_TYPE)


def not_found() -> ProblemError:
    return ProblemError(status.HTTP_404_NOT_FOUND, "Not Found")


def unauthorized(title: str = "Unauthorized") -> ProblemError:
    return ProblemError(status.HTTP_401_UNAUTHORIZED, title)


def forbidden() -> ProblemError:
    return ProblemError(status.HTTP_403_FORBIDDEN, "Forbidden")


def problem_for(kind: Optional[ErrorKind]) -> ProblemError:
    """Default translation of a failed outcome. Endpoints override NOT_FOUND where needed."""
    if kind is ErrorKind.LOGIN_IN_USE:
        return login_already_used()
    if kind is ErrorKind.EMAIL_IN_USE:
        return email_already_used()
    if kind in (ErrorKind.INVALID_PASSWORD, ErrorKind.WRONG_PASSWORD):
        return invalid_password()
    if kind is ErrorKind.ID_EXISTS:
        return bad_request_alert("A new user cannot already have an ID", "userManagement", "idexists")
    if kind in (ErrorKind.NOT_ACTIVATED, ErrorKind.NOT_AUTHENTICATED, ErrorKind.TOKEN_INVALID):
        return unauthorized()
    if kind is ErrorKind.NOT_FOUND:
        return not_found()
    return internal_server_error("Internal Server Error")


def _problem_response(problem: ProblemError) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status_code,
        content=problem.to_dict(),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=problem.headers,
    )


async def problem_exception_handler(request: Request, exc: ProblemError) -> JSONResponse:
    return _problem_response(exc)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    title = exc.detail if isinstance(exc.detail, str) else "Error"
    return _problem_response(ProblemError(exc.status_code, title, headers=exc.headers))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors: List[Dict[str, Any]] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field_errors.append(
            {
                "objectName": "request",
                "field": ".".join(location),
                "message": error.get("type", "invalid"),
            }
        )
    body = {
        "type": CONSTRAINT_VIOLATION_TYPE,
        "title": "Method argument not valid",
        "status": status.HTTP_400_BAD_REQUEST,
        "message": ERR_VALIDATION,
        "fieldErrors": field_errors,
    }
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body, media_type=PROBLEM_MEDIA_TYPE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProblemError, problem_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
