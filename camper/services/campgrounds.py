from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from camper.core.config import settings
from camper.core.errors import AppError
from camper.models.campground import Campground
from camper.models.image import Image
from camper.models.review import Review
from camper.models.user import User
from camper.schemas.campground import (
    CampgroundDetail,
    CampgroundFields,
    CampgroundListItem,
    ImageOut,
    ReviewOut,
)
from camper.services.geocoding import GeocodingError, Geocoder, GeoPoint, NoMatch
from camper.services.storage import ImageStore, ImageStoreError, StoredImage

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteOutcome:
    reviews_deleted: int
    images_deleted: int
    remote_failures: list[str]


async def resolve_location(geocoder: Geocoder, location: str) -> GeoPoint:
    """Geocode or fail the whole operation; callers must not have side effects yet."""
    try:
        return await geocoder.forward_geocode(location)
    except NoMatch:
        raise AppError.validation(f'Could not find location "{location}"')
    except GeocodingError as e:
        log.warning("geocoding failed for %r: %s", location, e)
        raise AppError.upstream("Could not look up the campground location, please try again later")


async def upload_images(store: ImageStore, files: Sequence[UploadFile]) -> list[StoredImage]:
    """
    Upload every file or none: on the first failure the already-uploaded files
    are removed again and the operation fails.
    """
    stored: list[StoredImage] = []
    for f in files:
        try:
            stored.append(await store.upload(f))
        except ImageStoreError as e:
            log.warning("upload of %r failed after %d ok: %s", f.filename, len(stored), e)
            await delete_remote_images(store, [s.filename for s in stored])
            raise AppError.upstream("Could not store the uploaded images, please try again later")
    return stored


async def delete_remote_images(store: ImageStore, filenames: Iterable[str]) -> list[str]:
    """Best-effort: one delete call per filename, failures logged and returned."""
    failed: list[str] = []
    for filename in filenames:
        try:
            await store.delete(filename)
        except ImageStoreError as e:
            log.warning("remote delete failed filename=%s: %s", filename, e)
            failed.append(filename)
    return failed


async def list_campgrounds(db: AsyncSession) -> list[CampgroundListItem]:
    rows = (await db.execute(select(Campground).order_by(Campground.created_at.desc()))).scalars().all()
    if not rows:
        return []

    first_images: dict[str, Image] = {}
    images = (
        await db.execute(
            select(Image)
            .where(Image.campground_id.in_([r.id for r in rows]))
            .order_by(Image.campground_id, Image.position)
        )
    ).scalars().all()
    for img in images:
        first_images.setdefault(img.campground_id, img)

    return [
        CampgroundListItem(
            id=r.id,
            title=r.title,
            location=r.location,
            price=r.price,
            description=r.description,
            thumbnail=first_images[r.id].url if r.id in first_images else None,
            geometry=r.geometry,
        )
        for r in rows
    ]


async def load_detail(db: AsyncSession, campground: Campground) -> CampgroundDetail:
    owner = (await db.execute(select(User.username).where(User.id == campground.author_id))).scalar_one()

    images = (
        await db.execute(select(Image).where(Image.campground_id == campground.id).order_by(Image.position))
    ).scalars().all()

    reviews = (
        await db.execute(
            select(Review, User.username)
            .join(User, User.id == Review.author_id)
            .where(Review.campground_id == campground.id)
            .order_by(Review.created_at, Review.id)
        )
    ).all()

    return CampgroundDetail(
        id=campground.id,
        title=campground.title,
        location=campground.location,
        price=campground.price,
        description=campground.description,
        geometry=campground.geometry,
        author_id=campground.author_id,
        author_username=owner,
        images=[ImageOut(id=i.id, url=i.url, filename=i.filename, thumbnail=i.thumbnail) for i in images],
        reviews=[
            ReviewOut(id=r.id, body=r.body, rating=r.rating, author_id=r.author_id, author_username=username)
            for r, username in reviews
        ],
    )


async def create_campground(
    db: AsyncSession,
    *,
    owner: User,
    fields: CampgroundFields,
    files: Sequence[UploadFile],
    geocoder: Geocoder,
    store: ImageStore,
) -> Campground:
    # geocode before any upload or write so a bad location leaves nothing behind
    point = await resolve_location(geocoder, fields.location)
    stored = await upload_images(store, files)

    campground = Campground(
        title=fields.title,
        description=fields.description,
        location=fields.location,
        price=fields.price,
        longitude=point.longitude,
        latitude=point.latitude,
        author_id=owner.id,
        created_by=owner.id,
        updated_by=owner.id,
    )
    db.add(campground)
    try:
        await db.flush()
        db.add_all(
            Image(campground_id=campground.id, url=s.url, filename=s.filename, position=pos)
            for pos, s in enumerate(stored)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        log.exception("create campground failed, removing %d uploads", len(stored))
        await delete_remote_images(store, [s.filename for s in stored])
        raise

    log.info("campground created id=%s owner=%s images=%d", campground.id, owner.id, len(stored))
    return campground


async def update_campground(
    db: AsyncSession,
    *,
    campground: Campground,
    editor: User,
    fields: CampgroundFields,
    files: Sequence[UploadFile],
    delete_filenames: Sequence[str],
    geocoder: Geocoder,
    store: ImageStore,
) -> Campground:
    """
    Apply edits, append new images and drop the requested ones. The location
    point is only refreshed when regeocode_on_update is enabled.
    """
    if settings.regeocode_on_update and fields.location != campground.location:
        point = await resolve_location(geocoder, fields.location)
        campground.longitude = point.longitude
        campground.latitude = point.latitude

    stored = await upload_images(store, files)

    owned: Sequence[str] = []
    try:
        campground.title = fields.title
        campground.description = fields.description
        campground.location = fields.location
        campground.price = fields.price
        campground.updated_by = editor.id

        next_pos = (
            await db.execute(select(func.max(Image.position)).where(Image.campground_id == campground.id))
        ).scalar_one_or_none()
        next_pos = -1 if next_pos is None else next_pos
        db.add_all(
            Image(campground_id=campground.id, url=s.url, filename=s.filename, position=next_pos + 1 + i)
            for i, s in enumerate(stored)
        )

        if delete_filenames:
            # only this listing's images may be removed through its edit form
            owned = (
                await db.execute(
                    select(Image.filename).where(
                        Image.campground_id == campground.id,
                        Image.filename.in_(list(delete_filenames)),
                    )
                )
            ).scalars().all()
            ignored = set(delete_filenames) - set(owned)
            if ignored:
                log.info("ignoring foreign image filenames for campground=%s: %s", campground.id, sorted(ignored))
            if owned:
                await db.execute(
                    delete(Image).where(Image.campground_id == campground.id, Image.filename.in_(owned))
                )

        await db.commit()
    except Exception:
        await db.rollback()
        await delete_remote_images(store, [s.filename for s in stored])
        raise

    # rows are gone for good now; a failed remote delete only leaves an orphan file
    failed = await delete_remote_images(store, owned)
    if failed:
        log.warning("campground=%s kept %d orphaned remote images", campground.id, len(failed))

    log.info("campground updated id=%s added=%d removed=%d", campground.id, len(stored), len(owned))
    return campground


async def delete_campground(db: AsyncSession, *, campground: Campground, store: ImageStore) -> DeleteOutcome:
    """Delete listing, its reviews and image rows in one transaction, then the remote files."""
    filenames = (
        await db.execute(select(Image.filename).where(Image.campground_id == campground.id))
    ).scalars().all()

    reviews_deleted = (
        await db.execute(delete(Review).where(Review.campground_id == campground.id))
    ).rowcount
    await db.execute(delete(Image).where(Image.campground_id == campground.id))
    await db.delete(campground)
    await db.commit()

    failed = await delete_remote_images(store, filenames)
    log.info(
        "campground deleted id=%s reviews=%s images=%d remote_failures=%d",
        campground.id, reviews_deleted, len(filenames), len(failed),
    )
    return DeleteOutcome(reviews_deleted=reviews_deleted or 0, images_deleted=len(filenames), remote_failures=failed)
