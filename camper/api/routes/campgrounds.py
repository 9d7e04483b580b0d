from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from camper.api.templating import redirect, render
from camper.core.db import get_db
from camper.core.errors import AppError
from camper.models.campground import Campground
from camper.models.user import User
from camper.schemas.campground import CampgroundForm
from camper.services.auth import get_context, require_user
from camper.services.campgrounds import (
    create_campground,
    delete_campground,
    list_campgrounds,
    load_detail,
    update_campground,
)
from camper.services.geocoding import Geocoder, get_geocoder
from camper.services.ownership import get_campground, require_owner
from camper.services.sessions import RequestContext
from camper.services.storage import ImageStore, get_image_store
from camper.services.validation import uploaded_images, validated_form

router = APIRouter()


@router.get("/campgrounds")
async def index(request: Request, db: AsyncSession = Depends(get_db)):
    campgrounds = await list_campgrounds(db)
    return render(request, "campgrounds/index.html", {"campgrounds": campgrounds})


@router.get("/campgrounds/new")
async def new_campground_form(request: Request, user: User = Depends(require_user)):
    return render(request, "campgrounds/new.html")


@router.post("/campgrounds")
async def create(
    user: User = Depends(require_user),
    form: CampgroundForm = Depends(validated_form(CampgroundForm)),
    files: list[UploadFile] = Depends(uploaded_images),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
    store: ImageStore = Depends(get_image_store),
):
    campground = await create_campground(
        db,
        owner=user,
        fields=form.campground,
        files=files,
        geocoder=geocoder,
        store=store,
    )
    ctx.flash("success", "Successfully made a new Campground")
    return redirect(f"/campgrounds/{campground.id}")


@router.get("/campgrounds/{campground_id}")
async def show(request: Request, campground_id: str, db: AsyncSession = Depends(get_db)):
    campground = await get_campground(db, campground_id)
    if campground is None:
        raise AppError.not_found("Campground does not exist", redirect_to="/campgrounds")
    detail = await load_detail(db, campground)
    return render(request, "campgrounds/show.html", {"campground": detail})


@router.get("/campgrounds/{campground_id}/edit")
async def edit_form(
    request: Request,
    campground: Campground = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    detail = await load_detail(db, campground)
    return render(request, "campgrounds/edit.html", {"campground": detail})


@router.put("/campgrounds/{campground_id}")
async def update(
    user: User = Depends(require_user),
    campground: Campground = Depends(require_owner),
    form: CampgroundForm = Depends(validated_form(CampgroundForm)),
    files: list[UploadFile] = Depends(uploaded_images),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
    store: ImageStore = Depends(get_image_store),
):
    await update_campground(
        db,
        campground=campground,
        editor=user,
        fields=form.campground,
        files=files,
        delete_filenames=form.deleteImages,
        geocoder=geocoder,
        store=store,
    )
    ctx.flash("success", "Successfully updated Campground")
    return redirect(f"/campgrounds/{campground.id}")


@router.delete("/campgrounds/{campground_id}")
async def destroy(
    user: User = Depends(require_user),
    campground: Campground = Depends(require_owner),
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    await delete_campground(db, campground=campground, store=store)
    ctx.flash("success", "Successfully deleted Campground")
    return redirect("/campgrounds")
