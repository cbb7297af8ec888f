"""Local state database: async engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from shared.config import settings

engine = create_async_engine(settings.state_db_url, echo=False)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create the local state tables if they do not exist yet."""
    from healthsync.domain.orm import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
