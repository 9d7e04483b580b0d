from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.responses import Response

from camper.core.config import settings
from camper.core.crypto import decrypt_token, encrypt_token
from camper.core.security import generate_session_token
from camper.models.session import SessionRecord
from camper.models.user import User

log = logging.getLogger(__name__)

FLASH_CATEGORIES = ("success", "error")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


@dataclass
class SessionState:
    token: str
    user_id: str | None
    flash: dict[str, list[str]]
    created_at: datetime
    expires_at: datetime
    touched_at: datetime

    persisted: bool = False
    modified: bool = False
    discarded_tokens: list[str] = field(default_factory=list)
    # request carried a cookie we could not resolve
    stale_cookie: bool = False

    @classmethod
    def fresh(cls, *, flash: dict[str, list[str]] | None = None) -> "SessionState":
        now = utcnow()
        return cls(
            token=generate_session_token(),
            user_id=None,
            flash=flash or {},
            created_at=now,
            expires_at=now + timedelta(seconds=settings.session_absolute_ttl_seconds),
            touched_at=now,
        )


@dataclass
class RequestContext:
    """
    Per-request view of the caller: the authenticated user (if any) and the
    session's single-use notification slot.
    """

    session: SessionState
    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def flash(self, category: str, message: str) -> None:
        if category not in FLASH_CATEGORIES:
            raise ValueError(f"Unknown flash category: {category}")
        bucket = dict(self.session.flash)
        bucket[category] = [*bucket.get(category, []), message]
        self.session.flash = bucket
        self.session.modified = True

    def pop_flashes(self) -> dict[str, list[str]]:
        """Read and clear pending notifications. Called once per rendered page."""
        pending = {c: list(self.session.flash.get(c, [])) for c in FLASH_CATEGORIES}
        if any(pending.values()):
            self.session.flash = {}
            self.session.modified = True
        return pending

    def login(self, user: User) -> None:
        # new token on privilege change; pending flashes survive the rotation
        old = self.session
        new = SessionState.fresh(flash=dict(old.flash))
        new.user_id = user.id
        new.modified = True
        new.discarded_tokens = [*old.discarded_tokens, *([old.token] if old.persisted else [])]
        self.session = new
        self.user = user

    def logout(self) -> None:
        old = self.session
        new = SessionState.fresh()
        new.discarded_tokens = [*old.discarded_tokens, *([old.token] if old.persisted else [])]
        new.stale_cookie = old.persisted or old.stale_cookie
        self.session = new
        self.user = None


class SessionStore:
    """
    Server-side session records kept next to the application data. Cookie
    carries only the encrypted token.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._factory = session_factory

    async def open(self, cookie_value: str | None) -> RequestContext:
        if not cookie_value:
            return RequestContext(session=SessionState.fresh())

        stale = RequestContext(session=SessionState.fresh())
        stale.session.stale_cookie = True

        token = decrypt_token(cookie_value, ttl=settings.session_absolute_ttl_seconds)
        if not token:
            log.debug("discarding undecryptable session cookie")
            return stale

        async with self._factory() as db:
            row = (await db.execute(select(SessionRecord).where(SessionRecord.token == token))).scalar_one_or_none()
            if row is None:
                return stale

            if as_utc(row.expires_at) <= utcnow():
                await db.execute(delete(SessionRecord).where(SessionRecord.id == row.id))
                await db.commit()
                return stale

            user = None
            if row.user_id:
                user = (await db.execute(select(User).where(User.id == row.user_id))).scalar_one_or_none()

            state = SessionState(
                token=row.token,
                user_id=user.id if user else None,
                flash=dict(row.flash or {}),
                created_at=as_utc(row.created_at),
                expires_at=as_utc(row.expires_at),
                touched_at=as_utc(row.touched_at),
                persisted=True,
            )
            return RequestContext(session=state, user=user)

    async def commit(self, ctx: RequestContext, response: Response) -> None:
        state = ctx.session
        now = utcnow()

        touch_due = state.persisted and (now - state.touched_at).total_seconds() >= settings.session_touch_after_seconds
        if state.modified or touch_due or state.discarded_tokens:
            async with self._factory() as db:
                if state.discarded_tokens:
                    await db.execute(delete(SessionRecord).where(SessionRecord.token.in_(state.discarded_tokens)))

                if state.modified or touch_due:
                    if state.persisted:
                        row = (
                            await db.execute(select(SessionRecord).where(SessionRecord.token == state.token))
                        ).scalar_one_or_none()
                    else:
                        row = None
                    if row is None:
                        row = SessionRecord(token=state.token, created_at=state.created_at, expires_at=state.expires_at)
                        db.add(row)
                    row.user_id = state.user_id
                    row.flash = dict(state.flash)
                    row.touched_at = now
                await db.commit()

            if state.modified or touch_due:
                state.persisted = True
                state.touched_at = now
            state.discarded_tokens = []
            state.modified = False

        if state.persisted:
            self._set_cookie(response, state, now)
        elif state.stale_cookie:
            response.delete_cookie(settings.session_cookie_name, path="/")

    def _set_cookie(self, response: Response, state: SessionState, now: datetime) -> None:
        remaining = int((state.expires_at - now).total_seconds())
        max_age = max(0, min(settings.session_rolling_max_age_seconds, remaining))
        response.set_cookie(
            settings.session_cookie_name,
            encrypt_token(state.token),
            max_age=max_age,
            expires=state.expires_at,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.session_cookie_secure,
        )
