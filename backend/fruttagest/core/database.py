"""
Configurazione Database - SQLAlchemy 2.0 Async
Progetto: FruttaGest (Gestionale Ingrosso Ortofrutta)

Definisce engine, session factory e dependency injection per FastAPI.
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fruttagest.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """
    Crea un engine async.

    Le opzioni del pool valgono solo per i driver server (asyncpg):
    SQLite usa un pool dedicato che non le accetta.
    """
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    options.update(kwargs)
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory con le stesse opzioni usate dall'applicazione."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# ------------------------------------------------------------
# Engine e Session Factory
# ------------------------------------------------------------
engine: AsyncEngine = build_engine(settings.database_url)

AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection per FastAPI.

    Crea una sessione database per ogni richiesta e la chiude
    automaticamente al termine. Il commit è responsabilità dell'endpoint.

    Yields:
        AsyncSession: Sessione database async
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Inizializza la connessione al database.

    Esegue un test di connessione e, se abilitato da configurazione,
    crea le tabelle mancanti.
    """
    from fruttagest.models import Base

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if settings.db_create_schema:
                await conn.run_sync(Base.metadata.create_all)
                logger.info("Schema database verificato/creato")
        logger.info("Connessione al database stabilita con successo")
    except Exception as e:
        logger.error("Errore connessione database: %s", e)
        raise


async def close_db() -> None:
    """
    Chiude le connessioni al database.

    Da chiamare durante lo shutdown dell'applicazione.
    """
    await engine.dispose()
    logger.info("Connessioni database chiuse")
