"""
Database engine and session management for the SIM order lifecycle service.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations
inside FastAPI. Tables are auto-created and seeded on server startup via
init_db().
"""
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings
from domain.errors import DomainError, InternalError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

# Convert sqlite:///... → sqlite+aiosqlite:///... for async driver
_raw_url = settings.database_url
if _raw_url.startswith("sqlite:///"):
    _async_url = _raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
else:
    _async_url = _raw_url

engine = create_async_engine(
    _async_url,
    echo=False,
    future=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables and seed defaults. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")

    async with async_session() as db:
        await seed_defaults(db)


async def seed_defaults(db: AsyncSession) -> None:
    """
    Guarantee the minimum workflow wiring:
      - a status mapped to ORDER_CREATION (a 'Draft' status if nothing is mapped)
      - a stored reclamation schedule
    """
    from services import status_service, schedule_service

    async with transaction(db, "seed defaults"):
        status = await status_service.ensure_creation_status(db)
        schedule = await schedule_service.ensure_schedule(db)

    logger.info(f"Seed: creation status '{status.name}', schedule '{schedule}'")


@asynccontextmanager
async def transaction(db: AsyncSession, operation: str):
    """
    Run one logical operation as a single commit.

    Domain errors roll back and propagate unchanged. Storage errors roll back,
    are logged with context and surface as InternalError; they are not retried.
    """
    try:
        yield db
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Transaction failed during {operation}: {e}", exc_info=True)
        raise InternalError(details={"operation": operation}) from e
    except Exception:
        await db.rollback()
        raise


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
