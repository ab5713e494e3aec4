import asyncio
import logging
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.config import settings
from app.core.database import engine
from app.models import Base

logger = logging.getLogger("reset_db")


async def reset():
    """Ricrea tutte le tabelle (fatture, interventi, numerazione, garanzie)."""
    if settings.is_production:
        raise SystemExit("Reset del database non consentito in produzione")

    logger.info("Eliminazione tabelle in corso...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info(f"Creazione di {len(Base.metadata.tables)} tabelle...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database resettato con successo")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(levelname)s - %(message)s")
    asyncio.run(reset())
