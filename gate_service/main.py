# =======================================================================================
# gate_service/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import config
from .api.dependencies import get_repository
from .api.routes.auth import router as auth_router
from .api.routes.eid import router as eid_router
from .api.routes.gate import router as gate_router
from .database import db_manager
from .models.schemas import HealthResponse
from .repositories.base import GateRepository
from .utils.exceptions import (
    AuthenticationError, AuthorizationError, ConfigurationError, EntityIdGenerationError,
    GateServiceError, InvalidRequestError, OnboardingIncompleteError, PersistenceError,
)

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Infrastructure failures become transport errors; verdicts never reach here."""

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid request: {field} {first.get('msg', '')}".strip() if field else "Invalid request body"
        return _error(400, message)

    @app.exception_handler(AuthenticationError)
    async def unauthenticated(request: Request, exc: AuthenticationError):
        return _error(401, str(exc) or "Not authenticated")

    @app.exception_handler(AuthorizationError)
    async def forbidden(request: Request, exc: AuthorizationError):
        logger.warning("Forbidden %s %s: %s", request.method, request.url.path, exc)
        return _error(403, str(exc) or "Unauthorized")

    @app.exception_handler(InvalidRequestError)
    async def bad_request(request: Request, exc: InvalidRequestError):
        return _error(400, str(exc))

    @app.exception_handler(OnboardingIncompleteError)
    async def onboarding_incomplete(request: Request, exc: OnboardingIncompleteError):
        return _error(400, str(exc))

    @app.exception_handler(ConfigurationError)
    async def misconfigured(request: Request, exc: ConfigurationError):
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return _error(500, "Server configuration error")

    @app.exception_handler(EntityIdGenerationError)
    async def entity_id_exhausted(request: Request, exc: EntityIdGenerationError):
        logger.error("Entity ID generation failed: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(PersistenceError)
    async def storage_failure(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "Internal server error")

    @app.exception_handler(GateServiceError)
    async def service_error(request: Request, exc: GateServiceError):
        logger.error("Unhandled service error on %s: %s", request.url.path, exc)
        return _error(500, "Internal server error")


def create_app() -> FastAPI:
    app = FastAPI(
        title="OnlyFounders Gate API",
        version="1.0.0",
        description="QR entry/exit verification and attendance sessions for OnlyFounders",
        debug=config.API_DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(gate_router, prefix="/api", tags=["gate"])
    app.include_router(auth_router, prefix="/api", tags=["auth"])
    app.include_router(eid_router, prefix="/api", tags=["eid"])

    register_error_handlers(app)

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health(repository: GateRepository = Depends(get_repository)):
        qr_configured = bool(config.QR_SECRET)
        try:
            repository.ping()
            return HealthResponse(status="ok", dataAvailable=True, qrConfigured=qr_configured, message=None)
        except PersistenceError as e:
            logger.warning("Health check failed: %s", e)
            return HealthResponse(status="error", dataAvailable=False, qrConfigured=qr_configured, message=str(e))

    @app.on_event("startup")
    def startup_event():
        if not config.QR_SECRET:
            logger.critical("QR_SECRET is not set; gate verification and QR issuance will be refused")
        if not config.JWT_SECRET:
            logger.critical("JWT_SECRET is not set; logins and authenticated requests will be refused")
        if config.STORAGE_BACKEND == "sql" and config.DB_INIT_SCHEMA:
            db_manager.init_schema()
        logger.info("OnlyFounders Gate API started (storage=%s)", config.STORAGE_BACKEND)

    return app


app = create_app()
