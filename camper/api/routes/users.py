import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from camper.api.templating import redirect, render
from camper.core.db import get_db
from camper.core.text import capitalize_words
from camper.schemas.user import LoginForm, RegisterForm
from camper.services.auth import get_context
from camper.services.sessions import RequestContext
from camper.services.users import DuplicateIdentity, InvalidCredential, authenticate, register
from camper.services.validation import parse_nested_form, validate_payload

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/register")
async def register_form(request: Request):
    return render(request, "users/register.html")


@router.post("/register")
async def register_submit(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    res = validate_payload(RegisterForm, parse_nested_form(await request.form()))
    if not res.ok:
        ctx.flash("error", res.message)
        return redirect("/register")

    form: RegisterForm = res.model  # type: ignore[assignment]
    try:
        user = await register(db, username=form.username, email=form.email, raw_password=form.password)
    except DuplicateIdentity as e:
        ctx.flash("error", str(e))
        return redirect("/register")

    ctx.login(user)
    ctx.flash("success", f"Welcome to Camper, {capitalize_words(user.username)}")
    return redirect("/campgrounds")


@router.get("/login")
async def login_form(request: Request):
    return render(request, "users/login.html")


@router.post("/login")
async def login_submit(
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
):
    res = validate_payload(LoginForm, parse_nested_form(await request.form()))
    try:
        if not res.ok:
            raise InvalidCredential("Password or username is incorrect")
        form: LoginForm = res.model  # type: ignore[assignment]
        user = await authenticate(db, username=form.username, raw_password=form.password)
    except InvalidCredential as e:
        ctx.flash("error", str(e))
        return redirect("/login")

    ctx.login(user)
    log.info("login user=%s", user.id)
    ctx.flash("success", f"Welcome Back!, {capitalize_words(user.username)}")
    return redirect("/campgrounds")


@router.get("/logout")
async def logout(ctx: RequestContext = Depends(get_context)):
    ctx.logout()
    ctx.flash("success", "Goodbye!")
    return redirect("/campgrounds")
