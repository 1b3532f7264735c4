from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from questlearn.core.config import settings


ASYNC_DRIVERS = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def to_async_url(url: str) -> str:
    """Swap a plain postgres or sqlite URL for its async driver (asyncpg, aiosqlite)."""
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT / ROLLBACK TO work.

    The sqlite3 driver otherwise opens transactions lazily on its own, which
    breaks begin_nested() - and the guarded unlock/claim writes rely on it.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(
    to_async_url(settings.database_url),
    echo=settings.debug,
    pool_pre_ping=True,
)

if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db():
    """Dependency that provides a database session."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
