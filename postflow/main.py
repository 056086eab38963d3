# postflow/main.py
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import structlog

from .config import Settings
from .infrastructure.automation_gateway import AutomationGateway
from .infrastructure.database import Database
from .infrastructure.email import Mailer
from .infrastructure.n8n_client import N8nClient
from .infrastructure.redis_cache import create_redis
from .middleware.logging import RequestIdMiddleware
from .routers.admin_router import router as admin_router
from .routers.auth_router import router as auth_router
from .routers.billing_router import router as billing_router
from .routers.contact_router import router as contact_router
from .routers.n8n_router import router as n8n_router
from .routers.post_router import router as post_router
from .routers.templates_router import router as templates_router
from .routers.user_router import router as user_router
from .services.errors import PostflowError


def configure_structlog():
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
    )


configure_structlog()
logger = structlog.get_logger()


def _validation_detail(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the app and its long-lived collaborators. Nothing here opens a
    connection; the database engine and Redis connect lazily on first use.
    """
    settings = settings or Settings()
    app = FastAPI(title="Postflow")

    app.state.settings = settings
    app.state.database = Database(settings.database_url)
    app.state.redis = create_redis(settings.redis_url)
    app.state.gateway = AutomationGateway(
        settings.n8n_webhook_url, settings.backend_url, timeout=settings.automation_timeout_seconds
    )
    app.state.n8n_client = N8nClient(
        settings.n8n_base_url, settings.n8n_email, settings.n8n_password, timeout=settings.automation_timeout_seconds
    )
    app.state.mailer = Mailer(settings)

    origins = settings.frontend_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(PostflowError)
    async def domain_error_handler(request: Request, exc: PostflowError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": _validation_detail(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", error=str(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(post_router)
    app.include_router(admin_router)
    app.include_router(billing_router)
    app.include_router(templates_router)
    app.include_router(n8n_router)
    app.include_router(contact_router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    os.makedirs(os.path.join(settings.uploads_dir, "media"), exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

    @app.on_event("startup")
    async def on_startup():
        if settings.db_auto_create:
            await app.state.database.create_all()
        logger.info("app_startup", environment=settings.environment)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.database.dispose()
        await app.state.redis.aclose()
        logger.info("app_shutdown")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("postflow.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)), reload=True)
