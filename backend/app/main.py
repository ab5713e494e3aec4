"""
Applicazione FastAPI del centro assistenza
Progetto: Repair Desk (Gestionale Centro Assistenza)

Monta il router /api/v1, espone i PDF generati come file statici e
traduce le eccezioni applicative nel formato {"detail", "error_code"}.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1 import api_v1_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import AppException

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Verifica il database e prepara la cartella dei PDF; all'arresto chiude il pool."""
    logger.info(f"{settings.app_name} {settings.app_version} in avvio ({settings.app_env})")
    os.makedirs(settings.pdf_output_dir, exist_ok=True)
    await init_db()

    yield

    await close_db()
    logger.info(f"{settings.app_name} arrestato")


app = FastAPI(
    title=settings.app_name,
    description="Centro assistenza: fatture da intervento, vendite al banco e incassi",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Lo status HTTP e il codice errore viaggiano con l'eccezione."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Errore non gestito su {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Errore interno del server", "error_code": "INTERNAL_SERVER_ERROR"},
    )


@app.get("/health", tags=["System"], summary="Stato del servizio")
async def health_check() -> dict[str, str]:
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


app.include_router(api_v1_router)

# I PDF restano raggiungibili all'URL salvato in Invoice.pdf_url
app.mount(
    settings.pdf_base_url.rstrip("/"),
    StaticFiles(directory=settings.pdf_output_dir, check_dir=False),
    name="invoice_pdfs",
)
