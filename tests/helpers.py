import httpx
import html


def page_text(r: httpx.Response) -> str:
    return html.unescape(r.text)


def campground_form(**overrides) -> dict:
    data = {
        "campground[title]": "Misty Hollow",
        "campground[location]": "Yosemite, CA",
        "campground[price]": "12.50",
        "campground[description]": "Quiet pines next to the river",
    }
    data.update(overrides)
    return data


def image_files(*names: str) -> list:
    return [("image", (name, b"\xff\xd8\xff fake jpeg " + name.encode(), "image/jpeg")) for name in names]


async def register(ac: httpx.AsyncClient, username: str, password: str = "s3cret", email: str | None = None):
    return await ac.post(
        "/register",
        data={"username": username, "email": email or f"{username}@example.com", "password": password},
    )


async def login(ac: httpx.AsyncClient, username: str, password: str = "s3cret"):
    return await ac.post("/login", data={"username": username, "password": password})


async def create_campground(ac: httpx.AsyncClient, *, files: list | None = None, **overrides) -> str:
    kwargs = {"data": campground_form(**overrides)}
    if files:
        kwargs["files"] = files
    r = await ac.post("/campgrounds", **kwargs)
    assert r.status_code == 302, r.text
    return r.headers["location"].rsplit("/", 1)[-1]


async def follow(ac: httpx.AsyncClient, r: httpx.Response) -> str:
    """GET the redirect target and return its page text (consumes pending flashes)."""
    assert r.status_code == 302, r.text
    nxt = await ac.get(r.headers["location"])
    return page_text(nxt)
