from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from camper.api.templating import redirect
from camper.core.db import get_db
from camper.models.user import User
from camper.schemas.review import ReviewForm
from camper.services.auth import get_context, require_user
from camper.services.reviews import add_review, remove_review
from camper.services.sessions import RequestContext
from camper.services.validation import validated_form

router = APIRouter()


@router.post("/campgrounds/{campground_id}/reviews")
async def create_review(
    campground_id: str,
    user: User = Depends(require_user),
    form: ReviewForm = Depends(validated_form(ReviewForm)),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    await add_review(db, campground_id=campground_id, author=user, fields=form.review)
    ctx.flash("success", "Review created")
    return redirect(f"/campgrounds/{campground_id}")


@router.delete("/campgrounds/{campground_id}/reviews/{review_id}")
async def delete_review(
    campground_id: str,
    review_id: str,
    user: User = Depends(require_user),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    await remove_review(db, campground_id=campground_id, review_id=review_id, actor=user)
    ctx.flash("success", "Successfully deleted review")
    return redirect(f"/campgrounds/{campground_id}")
