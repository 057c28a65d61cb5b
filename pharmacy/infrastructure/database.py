from typing import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import declarative_base
from pharmacy.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False, poolclass=None) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases"""
    if poolclass is not None:
        return create_async_engine(database_url, poolclass=poolclass, echo=echo)
    if "sqlite" in database_url.lower():
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = build_session_factory(engine)

# Base model
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db(bind: AsyncEngine = engine):
    """Initialize database tables"""
    # Register every mapped table on Base.metadata
    from pharmacy.domain.inventory import models as _inventory  # noqa: F401
    from pharmacy.domain.sales import models as _sales  # noqa: F401
    from pharmacy.domain.prescriptions import models as _prescriptions  # noqa: F401
    from pharmacy.domain.notifications import models as _notifications  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db(bind: AsyncEngine = engine):
    """Close database connections"""
    await bind.dispose()
