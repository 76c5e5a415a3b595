from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def build_engine(url: str) -> AsyncEngine:
    if "sqlite" in url:
        return create_async_engine(url, echo=False)

    connect_args = {}
    if "postgresql" in url:
        connect_args = {"server_settings": {"jit": "off"}}

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=10,
        pool_recycle=3600,
        connect_args=connect_args
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    # Registers the mapped tables on Base.metadata
    from app.models import goal, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
