"""
FastAPI main application
Construct Hackathon - registration and final-submission API

Routers in construct_api/api/:
- health.py: Health check and system status
- registrations.py: Team registration (public) and listing (admin)
- submissions.py: Final-submission unlock, write (access-code gated) and listing (admin)
- admin.py: Admin session login/logout

All routers reach shared services through app.state.services (see state.py).
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Optional
import logging

from construct_api.config import load_settings
from construct_api.errors import PortalError, StorageError
from construct_api.models import Settings
from construct_api.state import Services, build_services

# Import all API routers
from construct_api.api import health, registrations, submissions, admin


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Every error response is {"error": "<message>"}"""

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        message = exc.message
        if isinstance(exc, StorageError) and exc.status_code >= 500:
            logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
            message = GENERIC_ERROR if settings.is_production else f"{GENERIC_ERROR}: {exc.message}"
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": f"Invalid request body: {detail}"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and request.url.path.startswith("/api"):
            message = "API route not found"
        else:
            message = str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            f"❌ ERROR in {request.method} {request.url.path}\n"
            f"Error: {str(exc)}\n"
            f"Error Type: {type(exc).__name__}",
            exc_info=exc
        )
        message = GENERIC_ERROR if settings.is_production else f"{GENERIC_ERROR}: {str(exc)}"
        return JSONResponse(status_code=500, content={"error": message})


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application

    Args:
        settings: Configuration (default: load_settings())
        services: Pre-wired services; built from settings at startup when omitted
    """
    if services is not None:
        settings = services.settings
    elif settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        if getattr(app.state, "services", None) is None:
            try:
                app.state.services = build_services(settings)
            except Exception as e:
                logger.error(f"❌ Failed to initialise services: {e}")
                raise
        wired = app.state.services
        logger.info(
            f"✅ Server started | storage={wired.store.name} | "
            f"registration_open={settings.registration.open} | submissions_open={settings.submissions.open}"
        )

        yield

        # Shutdown
        wired.store.close()
        logger.info("🛑 Server shutting down")

    app = FastAPI(
        title="Construct Hackathon API",
        description="Team registration, admin listing and access-code gated final submissions",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, settings)

    # ==================== INCLUDE ROUTERS ====================

    # Health check (GET /)
    app.include_router(health.router)

    # Registration endpoints (POST /api/registrations, /api/submit, GET /api/registrations)
    app.include_router(registrations.router)

    # Final submission endpoints (POST /api/final-submissions/access, /api/final-submissions)
    app.include_router(submissions.router)

    # Admin session endpoints (POST /api/auth/login, /api/auth/logout, GET /api/auth/session)
    app.include_router(admin.router)

    return app


app = create_app()


# ==================== RUN SERVER ====================

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
