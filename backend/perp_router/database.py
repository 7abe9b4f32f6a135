from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from perp_router.config import settings


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    url = database_url or settings.database_url
    return create_async_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
        pool_pre_ping=True,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False  # Disable autoflush to avoid greenlet issues
    )


async def init_db(engine: AsyncEngine):
    # Callers import perp_router.storage.models first so the tables are registered
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
