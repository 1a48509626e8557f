from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker

from pos_edge.core.config import settings

Base = declarative_base()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    engine = create_async_engine(url, future=True, echo=False, **kwargs)
    if engine.dialect.name == "sqlite":
        _use_immediate_transactions(engine)
    return engine


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    # SQLite only takes the write lock on the first write of a deferred
    # transaction, so two checkouts could both read stock and then deadlock
    # upgrading their locks. BEGIN IMMEDIATE makes them queue instead.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_sessionmaker(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


DB_URL = settings.DB_URL

engine = build_engine(DB_URL)
AsyncSessionLocal = build_sessionmaker(engine)


async def init_models(target: AsyncEngine = engine) -> None:
    # models must be imported so they are registered on Base.metadata
    from pos_edge.db.models import products, sales  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
