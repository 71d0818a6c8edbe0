# drive_auth/app.py
import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from drive_auth.auth.csrf import CsrfGuard
from drive_auth.auth.resolvers import CodeFlowResolver, build_resolver
from drive_auth.auth.router import code_flow_router, router as auth_router
from drive_auth.auth.service import AuthService
from drive_auth.auth.session import SessionManager, install_session_middleware
from drive_auth.core.config import Settings, get_settings
from drive_auth.core.database import create_db_engine, create_session_factory, create_tables
from drive_auth.core.exceptions import register_exception_handlers
from drive_auth.drive.router import router as drive_router

logger = logging.getLogger(__name__)

# Front-end pages that need a signed-in user; anonymous visitors go back to "/"
LOGIN_REQUIRED_PAGES = ("/authorize.html",)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    # Google echoes previously granted scopes in the token response
    os.environ.setdefault("OAUTHLIB_RELAXED_TOKEN_SCOPE", "1")

    app = FastAPI(
        title="Drive Auth Demo",
        description=f"Google OAuth demo backend ({settings.AUTH_VARIANT} variant).",
        version="1.0.0",
    )

    engine = create_db_engine(settings.DATABASE_URL)
    create_tables(engine)

    resolver = build_resolver(settings)
    auth_service = resolver.auth_service if isinstance(resolver, CodeFlowResolver) else AuthService(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.session_manager = SessionManager()
    app.state.csrf_guard = CsrfGuard(settings)
    app.state.auth_service = auth_service
    app.state.resolver = resolver

    register_exception_handlers(app)

    # Added before the session middleware so that they run inside it
    @app.middleware("http")
    async def require_login(request: Request, call_next):
        if request.url.path in LOGIN_REQUIRED_PAGES and app.state.session_manager.current(request) is None:
            return RedirectResponse("/", status_code=302)
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        response = await call_next(request)
        if settings.AUTH_VARIANT == "codeflow":
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    install_session_middleware(app, settings)

    app.include_router(auth_router)
    if settings.AUTH_VARIANT == "codeflow":
        app.include_router(code_flow_router)
    app.include_router(drive_router)

    if settings.is_production:
        _mount_static(app, settings)

    logger.info(f"Application created for the {settings.AUTH_VARIANT} variant")
    return app


def _mount_static(app: FastAPI, settings: Settings) -> None:
    # Starlette mounts do not fall through, so only the first existing directory is served
    for directory in settings.STATIC_DIRS:
        if os.path.isdir(directory):
            logger.info(f"Serving static files from {os.path.abspath(directory)}")
            app.mount("/", StaticFiles(directory=directory, html=True), name="static")
            return
    logger.warning(f"None of the static directories exist: {settings.STATIC_DIRS}")
