from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from camper.services.auth import get_context

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


def render(request: Request, name: str, context: dict[str, Any] | None = None, *, status_code: int = 200):
    """Render a page; pending flash messages are consumed here and nowhere else."""
    ctx = get_context(request)
    page = {
        "current_user": ctx.user,
        "flashes": ctx.pop_flashes(),
        **(context or {}),
    }
    return templates.TemplateResponse(request, name, page, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)
