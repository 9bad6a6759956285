"""FastAPI application factory and error mapping."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from tubebrief.api import accounts, admin, summaries
from tubebrief.auth import (
    AuthService,
    AuthenticationError,
    InvalidInvitationError,
    UsernameTakenError,
    UserNotFoundError,
)
from tubebrief.config import settings
from tubebrief.ingestion.screenshots import ScreenshotError
from tubebrief.ingestion.youtube import ResolutionError, TranscriptUnavailableError
from tubebrief.service import SummaryAccessDeniedError, SummaryNotFoundError, SummaryService
from tubebrief.summarizer import SummarizationError

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[Exception], int] = {
    ResolutionError: 400,
    TranscriptUnavailableError: 400,
    UsernameTakenError: 400,
    InvalidInvitationError: 400,
    AuthenticationError: 401,
    SummaryAccessDeniedError: 403,
    SummaryNotFoundError: 404,
    UserNotFoundError: 404,
    SummarizationError: 500,
    ScreenshotError: 502,
}


def format_validation_error(exc: RequestValidationError) -> str:
    """One readable line per invalid field, e.g. 'timestamp: Input should be ...'."""
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "Validation error: " + "; ".join(parts)


async def _domain_error(request: Request, exc: Exception) -> JSONResponse:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500
    )
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"message": str(exc)})


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": format_validation_error(exc)})


def create_app(
    service: SummaryService,
    auth: AuthService,
    session_secret: str | None = None,
    https_only: bool = False,
) -> FastAPI:
    """Build the HTTP app around already-constructed services.

    Sessions are signed cookies holding only the user id.
    """
    app = FastAPI(title="tubebrief", version="0.1.0")
    app.state.service = service
    app.state.auth = auth

    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret or settings.session_secret,
        session_cookie="tubebrief_session",
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=https_only,
    )

    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    for error_cls in _STATUS_BY_ERROR:
        app.add_exception_handler(error_cls, _domain_error)

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(accounts.router)
    app.include_router(summaries.router)
    app.include_router(admin.router)
    return app
