from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from servicehub.core.config import DATABASE_URL as _RAW_DATABASE_URL, DB_ECHO


def _to_async_url(url: str) -> str:
    # Plain postgres URLs (as handed out by most hosts) need the asyncpg driver
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


DATABASE_URL = _to_async_url(_RAW_DATABASE_URL)

# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    future=True,
    # SQLite connections must not outlive the event loop that opened them
    poolclass=NullPool if DATABASE_URL.startswith("sqlite") else None,
)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_all() -> None:
    """Create every table known to ``Base``; used for local runs and tests."""
    import servicehub.models  # noqa: F401  (register mappers)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all() -> None:
    import servicehub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
