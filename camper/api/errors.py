import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from camper.api.templating import redirect, render
from camper.core.errors import AppError
from camper.services.auth import get_context
from camper.services.validation import describe_errors

log = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Something went wrong!"


def render_error(request: Request, status: int, message: str):
    # status + message only; never the exception itself
    return render(
        request,
        "error.html",
        {"status": status, "message": message or DEFAULT_MESSAGE},
        status_code=status,
    )


async def app_error_handler(request: Request, exc: AppError):
    if exc.recoverable:
        get_context(request).flash("error", exc.message)
        return redirect(exc.redirect_to)
    if exc.status >= 500:
        log.warning("request failed %s %s: %r", request.method, request.url.path, exc)
    return render_error(request, exc.status, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return render_error(request, 404, "Page Not Found")
    return render_error(request, exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return render_error(request, 400, describe_errors(exc.errors()))


async def stale_data_handler(request: Request, exc: StaleDataError):
    log.info("concurrent modification on %s %s", request.method, request.url.path)
    err = AppError.conflict("This campground was changed by someone else, please reload and try again")
    return render_error(request, err.status, err.message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    err = AppError.internal()
    return render_error(request, err.status, err.message)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
