from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

import auth
import routes
from errors import register_exception_handlers
from observability import init_observability
from request_id_middleware import RequestIdMiddleware
from settings import Settings, get_settings
from storage import Storage, build_store

logger = structlog.get_logger(__name__)


def create_app(store: Optional[Storage] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API.

    ``store`` is injected by tests; when omitted the backend named in settings
    is constructed at startup. Either way the store is opened when the app
    starts and closed when it shuts down.
    """
    settings = settings or get_settings()
    init_observability(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            app.state.store = build_store(settings)
        app.state.store.open()
        logger.info("Storage ready", backend=type(app.state.store).__name__)
        try:
            yield
        finally:
            app.state.store.close()
            logger.info("Storage shut down", backend=type(app.state.store).__name__)

    app = FastAPI(
        title="Job Tracker",
        description="Backend API for tracking job applications, documents and interviews",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store

    # --- Middleware (last added runs first) ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        https_only=settings.session_https_only,
        same_site="lax",
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(routes.router)
    return app


# --- Main execution --- (uvicorn main:create_app --factory)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000)
