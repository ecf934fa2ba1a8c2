"""
Main Entry Point - FastAPI Application
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Configura l'applicazione FastAPI con middleware, router e lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fruttagest.api.v1 import api_v1_router
from fruttagest.core.config import settings
from fruttagest.core.database import close_db, get_db, init_db
from fruttagest.core.exceptions import AppException

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Gestisce il ciclo di vita dell'applicazione.

    - Startup: inizializza la connessione al database
    - Shutdown: chiude le connessioni database
    """
    logger.info("Avvio %s v%s (%s)", settings.app_name, settings.app_version, settings.app_env)
    await init_db()
    logger.info("Applicazione avviata con successo")

    yield

    logger.info("Arresto applicazione in corso...")
    await close_db()
    logger.info("Applicazione arrestata")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Gestionale per ingrosso ortofrutta - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestore per tutte le eccezioni applicative.

    Lo status HTTP e il codice errore sono quelli della classe dell'eccezione
    (404 non trovato, 409 conflitto di stato, 422 regola di business violata).
    """
    if exc.status_code >= 500:
        logger.error("Errore applicativo su %s: %s", request.url.path, exc.detail)
    else:
        logger.info("%s su %s: %s", exc.error_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestore generico per tutte le eccezioni non catturate.

    Converte l'eccezione in risposta HTTP 500 e logga l'errore.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Errore interno del server", "error_code": "INTERNAL_SERVER_ERROR"},
    )


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Controlla lo stato dell'applicazione e del database",
    tags=["System"],
)
async def health_check(db: AsyncSession = Depends(get_db)) -> dict[str, str]:
    """
    Endpoint per il controllo dello stato di salute.

    Un database non raggiungibile non genera errore: lo stato diventa "degraded".
    """
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Health check: database non raggiungibile: %s", exc)
        database = "unreachable"
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


@app.get(
    "/company",
    name="Dati aziendali",
    summary="Intestazione per la stampa di DDT e fatture",
    tags=["System"],
)
async def company_info() -> dict[str, str]:
    return {
        "name": settings.company_name,
        "vat_number": settings.company_vat_number,
        "sdi_code": settings.company_sdi_code,
        "pec": settings.company_pec,
        "iban": settings.company_iban,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
app.include_router(api_v1_router)
