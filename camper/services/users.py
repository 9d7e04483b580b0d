from __future__ import annotations

import asyncio
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from camper.core.security import hash_password, verify_password
from camper.models.user import User

log = logging.getLogger(__name__)


class DuplicateIdentity(Exception):
    pass


class InvalidCredential(Exception):
    pass


async def register(db: AsyncSession, *, username: str, email: str, raw_password: str) -> User:
    """Create a user; raises DuplicateIdentity when username or email is taken."""
    username = username.strip()
    email = email.strip().lower()

    taken = (
        await db.execute(
            select(User).where(or_(func.lower(User.username) == username.lower(), User.email == email))
        )
    ).scalars().first()
    if taken is not None:
        if taken.username.lower() == username.lower():
            raise DuplicateIdentity("A user with the given username is already registered")
        raise DuplicateIdentity("A user with the given email is already registered")

    # pbkdf2 is CPU bound; keep it off the event loop
    pw = await asyncio.to_thread(hash_password, raw_password)
    user = User(username=username, email=email, salt=pw.salt, password_hash=pw.hashed)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.info("register race on username=%s", username)
        raise DuplicateIdentity("A user with the given username is already registered")
    return user


async def authenticate(db: AsyncSession, *, username: str, raw_password: str) -> User:
    user = (
        await db.execute(select(User).where(User.username == username.strip()))
    ).scalar_one_or_none()
    if user is None or not await asyncio.to_thread(
        verify_password, raw_password, salt=user.salt, hashed=user.password_hash
    ):
        raise InvalidCredential("Password or username is incorrect")
    return user
