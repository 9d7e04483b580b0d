from urllib.parse import parse_qs

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from camper.api.errors import unhandled_exception_handler
from camper.core.config import settings

OVERRIDABLE_METHODS = {"PUT", "PATCH", "DELETE"}


class MethodOverrideMiddleware:
    """HTML forms only POST; `?_method=PUT|PATCH|DELETE` picks the real verb."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "POST":
            qs = parse_qs(scope.get("query_string", b"").decode("latin-1"))
            override = (qs.get("_method") or [""])[0].upper()
            if override in OVERRIDABLE_METHODS:
                scope = {**scope, "method": override}
        await self.app(scope, receive, send)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Loads the caller's session (and user) into request.state.ctx before
    routing and writes it back, plus the rolling cookie, afterwards.
    """

    def __init__(self, app: ASGIApp, *, skip_prefixes: tuple[str, ...] = ("/media",)):
        super().__init__(app)
        self.skip_prefixes = skip_prefixes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.startswith(self.skip_prefixes):
            return await call_next(request)

        store = request.app.state.session_store
        ctx = await store.open(request.cookies.get(settings.session_cookie_name))
        request.state.ctx = ctx

        try:
            response = await call_next(request)
        except Exception as exc:
            # rendered here rather than in ServerErrorMiddleware so the flashes
            # the error page consumed are written back
            response = await unhandled_exception_handler(request, exc)
        await store.commit(ctx, response)
        return response
