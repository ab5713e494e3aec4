"""
Accesso al database - SQLAlchemy 2.0 Async
Progetto: Repair Desk (Gestionale Centro Assistenza)

Un solo engine per processo. Le richieste HTTP ricevono la sessione da
get_db; i lavori avviati dopo la risposta (record di garanzia) aprono la
propria con session_scope.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = logging.getLogger(__name__)


def _build_engine(url: str) -> AsyncEngine:
    """Crea l'engine; SQLite (usato nei test) non accetta i parametri del pool."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)
    return create_async_engine(
        url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


engine: AsyncEngine = _build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Sessione per richiesta: rollback se l'endpoint solleva."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Sessione indipendente dal ciclo richiesta/risposta."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verifica che il database risponda prima di accettare richieste."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database non raggiungibile: {e}")
        raise
    logger.info("Database raggiungibile")


async def close_db() -> None:
    await engine.dispose()
    logger.info("Pool di connessioni rilasciato")
