from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

# Registers the tables on SQLModel.metadata
from country_sync import models  # noqa: F401


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the configured database URL"""
    return create_async_engine(database_url, echo=echo, future=True)


def create_session_maker(engine: AsyncEngine) -> sessionmaker:
    """Session factory bound to the given engine"""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database - create all tables"""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
