from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from camper.core.errors import AppError
from camper.core.ids import looks_like_id
from camper.models.review import Review
from camper.models.user import User
from camper.schemas.review import ReviewFields
from camper.services.ownership import get_campground

log = logging.getLogger(__name__)


async def add_review(db: AsyncSession, *, campground_id: str, author: User, fields: ReviewFields) -> Review:
    campground = await get_campground(db, campground_id)
    if campground is None:
        raise AppError.not_found("Campground not found")

    # the foreign key is the only link, so listing and review can't disagree
    review = Review(campground_id=campground.id, author_id=author.id, body=fields.body, rating=fields.rating)
    db.add(review)
    await db.commit()
    log.info("review added id=%s campground=%s author=%s", review.id, campground.id, author.id)
    return review


async def remove_review(db: AsyncSession, *, campground_id: str, review_id: str, actor: User) -> bool:
    """
    Detach and delete a review. Allowed for the review's author and the
    listing owner. A review that is not (or no longer) attached is a no-op.
    """
    campground = await get_campground(db, campground_id)
    if campground is None:
        raise AppError.not_found("Campground not found")

    review = None
    if looks_like_id(review_id, "rev"):
        review = (
            await db.execute(select(Review).where(Review.id == review_id, Review.campground_id == campground.id))
        ).scalar_one_or_none()
    if review is None:
        return False

    if review.author_id != actor.id and not campground.is_owned_by(actor.id):
        raise AppError.not_owner(redirect_to=f"/campgrounds/{campground.id}")

    await db.execute(delete(Review).where(Review.id == review.id, Review.campground_id == campground.id))
    await db.commit()
    log.info("review removed id=%s campground=%s by=%s", review.id, campground.id, actor.id)
    return True
