"""Berry Inspector API - Aplicación principal FastAPI."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy import text

from .config import settings
from .database import Base, engine
from app.routers import (
    auth,
    chains,
    evaluation_fields,
    evaluations,
    products,
    stats,
    stores,
    visits,
)
from .schemas import HealthResponse

# === Logging ===

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# === Rate Limiter ===

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


# === Lifespan ===


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gestiona el ciclo de vida de la aplicación."""
    logger.info("Iniciando Berry Inspector API...")

    # En producción las tablas se crean con Alembic
    if settings.is_development:
        logger.info("Entorno de desarrollo: creando tablas...")
        Base.metadata.create_all(bind=engine)

    logger.info("API iniciada")
    yield

    logger.info("Deteniendo Berry Inspector API...")


# === App ===

app = FastAPI(
    title="Berry Inspector API",
    description="API para visitas de campo y evaluación de calidad de berries en tienda",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# === Middleware ===

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# === Exception Handlers ===


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler global para excepciones no controladas."""
    logger.exception(f"Error no controlado: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Error interno del servidor"
            if settings.is_production
            else str(exc)
        },
    )


# === Routers ===

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(chains.router, tags=["catalog"])
app.include_router(stores.router, prefix="/stores", tags=["stores"])
app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(evaluations.router, prefix="/evaluations", tags=["evaluations"])
app.include_router(evaluation_fields.router, prefix="/evaluation-fields", tags=["evaluation-fields"])
app.include_router(visits.router, prefix="/visits", tags=["visits"])
app.include_router(stats.router, prefix="/stats", tags=["stats"])


# === Health Check ===


@app.get("/health", response_model=HealthResponse, tags=["health"])
def health_check() -> HealthResponse:
    """Verifica la conexión con la base de datos."""
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except Exception as e:
        logger.warning(f"Health check DB falló: {e}")

    return HealthResponse(status="ok" if db_ok else "down", db=db_ok)


@app.get("/", tags=["root"])
def root() -> dict:
    """Endpoint raíz con información básica de la API."""
    return {
        "app": "Berry Inspector API",
        "version": "1.0.0",
        "docs": "/docs" if settings.is_development else None,
        "health": "/health",
    }
