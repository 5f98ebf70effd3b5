from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Database:
    """Async engine plus session factory.

    Built once by the process entry point (or a test) and handed to the
    app; nothing in the package holds a module-level connection pool.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int = 5):
        engine_args = {"echo": echo}
        if not url.startswith("sqlite"):
            engine_args.update(pool_size=pool_size, pool_pre_ping=True)
        self.url = url
        self.engine = create_async_engine(url, **engine_args)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    def session(self) -> AsyncSession:
        return self.sessionmaker()

    async def create_all(self):
        # models must be imported so their tables are registered on Base
        from . import models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


async def get_db(request: Request):
    async with request.app.state.database.session() as session:
        yield session
