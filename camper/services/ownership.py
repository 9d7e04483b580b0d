from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from camper.core.db import get_db
from camper.core.errors import AppError
from camper.core.ids import looks_like_id
from camper.models.campground import Campground
from camper.models.user import User
from camper.services.auth import require_user


async def get_campground(db: AsyncSession, campground_id: str) -> Campground | None:
    if not looks_like_id(campground_id, "cmp"):
        return None
    return (await db.execute(select(Campground).where(Campground.id == campground_id))).scalar_one_or_none()


async def require_owner(
    campground_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> Campground:
    """
    Must run after require_user. Missing listing is a hard 404; someone else's
    listing sends the caller back to its page.
    """
    campground = await get_campground(db, campground_id)
    if campground is None:
        raise AppError.not_found("Campground not found")
    if not campground.is_owned_by(user.id):
        raise AppError.not_owner(redirect_to=f"/campgrounds/{campground_id}")
    return campground
