from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

STATEMENT_TIMEOUT_SECONDS = 5


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str) -> AsyncEngine:
    """Build an async engine for Postgres (asyncpg) or SQLite (aiosqlite)."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite only lives as long as its single connection
        if ":memory:" in database_url or database_url.rstrip("/").endswith("aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(database_url, echo=False, **kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args={"command_timeout": STATEMENT_TIMEOUT_SECONDS},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    # Import models so every table is registered on the metadata
    import portfolio.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
