from fastapi import Depends, Request

from camper.core.errors import AppError
from camper.models.user import User
from camper.services.sessions import RequestContext, SessionState


def get_context(request: Request) -> RequestContext:
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        # session middleware not mounted (bare router in tests); anonymous
        ctx = RequestContext(session=SessionState.fresh())
        request.state.ctx = ctx
    return ctx


def require_user(ctx: RequestContext = Depends(get_context)) -> User:
    if ctx.user is None:
        raise AppError.unauthenticated()
    return ctx.user
