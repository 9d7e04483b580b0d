import pytest
from fastapi import APIRouter

from camper.main import app

from helpers import page_text, register


@pytest.mark.asyncio
async def test_home(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert "View Campgrounds" in page_text(r)


@pytest.mark.asyncio
async def test_unknown_route_renders_not_found(client):
    r = await client.get("/definitely/not/here")
    assert r.status_code == 404
    assert "Page Not Found" in page_text(r)


@pytest.mark.asyncio
async def test_post_without_override_is_not_allowed(client):
    await register(client, "alice")
    r = await client.post(f"/campgrounds/cmp_{'0' * 32}")
    assert r.status_code == 405


@pytest.mark.asyncio
async def test_unknown_override_is_ignored(client):
    r = await client.post("/campgrounds?_method=TRACE", data={})
    # still a POST: unauthenticated create
    assert r.status_code == 302
    assert r.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_lowercase_override_is_honoured(client):
    r = await client.post(f"/campgrounds/cmp_{'0' * 32}?_method=delete")
    assert r.status_code == 302
    assert r.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_flash_is_shown_once(client):
    r = await client.get("/campgrounds/new")
    assert r.headers["location"] == "/login"

    first = await client.get("/login")
    assert "You must be signed in first!" in page_text(first)
    second = await client.get("/login")
    assert "You must be signed in first!" not in page_text(second)


boom = APIRouter()


@boom.get("/__boom")
async def _boom():
    raise RuntimeError("secret internals")


@pytest.fixture
def crashing_routes():
    app.include_router(boom)
    try:
        yield
    finally:
        app.router.routes[:] = [route for route in app.router.routes if getattr(route, "path", None) != "/__boom"]


@pytest.mark.asyncio
async def test_error_page_consumes_pending_flash(client, crashing_routes):
    r = await client.get("/campgrounds/new")
    assert r.headers["location"] == "/login"

    r = await client.get("/__boom")
    assert r.status_code == 500
    assert "You must be signed in first!" in page_text(r)

    r = await client.get("/login")
    assert "You must be signed in first!" not in page_text(r)


@pytest.mark.asyncio
async def test_unhandled_error_hides_details(make_client, crashing_routes):
    ac = make_client(raise_app_exceptions=False)
    r = await ac.get("/__boom")
    assert r.status_code == 500
    text = page_text(r)
    assert "Something went wrong!" in text
    assert "secret internals" not in text
