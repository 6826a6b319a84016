import typing

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # type: ignore
from sqlalchemy.pool import StaticPool  # type: ignore

from ....tests.testing import make_records, make_registry
from ..store import SQLAStore


def make_engine() -> AsyncEngine:
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


async def make_store(
    engine: AsyncEngine,
    records: typing.Optional[typing.Dict[str, typing.List[typing.Dict[str, typing.Any]]]] = None,
) -> SQLAStore:
    """
    Creates the tables and inserts the rows as they are, without touching inverse links.
    """
    store = SQLAStore(make_registry(), engine)
    await store.create_all()
    records = make_records() if records is None else records
    async with engine.begin() as conn:
        for type, rows in records.items():
            if rows:
                descr = store.descrs[type]
                await conn.execute(descr.table.insert(), [descr.to_row(r) for r in rows])
    return store
