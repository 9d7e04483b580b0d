from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from camper.api.errors import install_error_handlers
from camper.api.middleware import MethodOverrideMiddleware, SessionMiddleware
from camper.api.router import router
from camper.core.config import settings
from camper.core.db import SessionLocal
from camper.core.telemetry import setup_logging, setup_telemetry
from camper.services.sessions import SessionStore


def create_app() -> FastAPI:
    app = FastAPI(title="Camper", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)

    app.state.session_store = SessionStore(SessionLocal)
    install_error_handlers(app)

    # last added runs first: method override, then session
    app.add_middleware(SessionMiddleware)
    app.add_middleware(MethodOverrideMiddleware)

    if not settings.cloudinary_enabled:
        app.mount("/media", StaticFiles(directory=settings.media_dir, check_dir=False), name="media")

    if settings.otel_enabled:
        setup_telemetry(app)
    app.include_router(router)
    return app


setup_logging()
app = create_app()
