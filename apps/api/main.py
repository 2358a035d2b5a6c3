"""
Pipedrive CRM Proxy: FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from core.config import settings
from core.logging_setup import configure_logging
from core.responses import action_err
from routers import actions, intents

configure_logging(settings)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "api.startup",
        env=settings.APP_ENV,
        log_level=settings.LOG_LEVEL,
        pipedrive_configured=settings.pipedrive.is_configured,
    )
    if not settings.pipedrive.is_configured:
        logger.warning("api.pipedrive_not_configured")
    yield
    logger.info("api.shutdown")


app = FastAPI(
    title="Pipedrive CRM Proxy",
    description="Acciones e intents simplificados sobre la API de Pipedrive para el asistente.",
    version="1.0.0",
    docs_url="/docs" if settings.APP_ENV != "production" else None,
    redoc_url="/redoc" if settings.APP_ENV != "production" else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middlewares
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["POST"],
    allow_headers=["Content-Type"],
)

# ---------------------------------------------------------------------------
# Exception handlers globales: los routers ya devuelven su propio envelope;
# esto cubre lo que escapa (rutas inexistentes, fallos de FastAPI).
# ---------------------------------------------------------------------------


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    headers = getattr(exc, "headers", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=action_err(str(exc.detail)),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=action_err(f"Error de validación: {exc.errors()}", codigo="ERR_CRM_PARAMETRO_FALTANTE"),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=str(request.url), error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=action_err(f"Error interno del servidor: {type(exc).__name__}", codigo="ERROR_BACKEND_CRM"),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(actions.router, prefix="/api/v1/pipedrive", tags=["pipedrive"])
app.include_router(intents.router, prefix="/api/v1/crm-backend", tags=["crm-backend"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    return {
        "status": "ok",
        "env": settings.APP_ENV,
        "pipedrive_configured": settings.pipedrive.is_configured,
    }
