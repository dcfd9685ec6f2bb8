from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from procurement_api.config import Settings, settings
import structlog

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


def _get_db_url(cfg: Settings) -> str:
    """Strip sslmode from URL since asyncpg uses connect_args for SSL."""
    url = cfg.DATABASE_URL
    url = url.replace("?sslmode=require", "").replace("&sslmode=require", "")
    return url


def create_engine_from_settings(cfg: Settings = settings) -> AsyncEngine:
    url = _get_db_url(cfg)
    kwargs = {"echo": cfg.DEBUG, "pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs.update(
            pool_size=cfg.DB_POOL_SIZE,
            max_overflow=cfg.DB_MAX_OVERFLOW,
            pool_timeout=30,
            pool_recycle=cfg.DB_POOL_RECYCLE,
        )
        if cfg.DB_SSL_REQUIRED:
            kwargs["connect_args"] = {"ssl": "require"}
    return create_async_engine(url, **kwargs)


engine: AsyncEngine = create_engine_from_settings()

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        logger.info("db_connected")


async def close_db():
    await engine.dispose()
    logger.info("db_disconnected")
