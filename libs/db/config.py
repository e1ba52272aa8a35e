from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.common.config import Settings, get_settings

settings = get_settings()


def engine_options(settings: Settings) -> dict[str, Any]:
    """Engine keyword arguments for the configured backend.

    SQLite (tests, local scratch) uses a static pool that rejects sizing options.
    """
    options: dict[str, Any] = {
        "echo": False,
        "future": True,
    }
    if settings.is_sqlite:
        return options
    options.update(
        pool_pre_ping=True,  # Test connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )
    return options


# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
