"""
Per-company sequential codes (#APT001, #TXN0001, CL001).

Each (company, kind) pair owns one row in id_trackers. The increment is a
single UPDATE ... RETURNING executed inside the caller's transaction: the
row lock serializes concurrent schedulers, and a rolled-back caller never
burns a number.
"""

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import CounterKind, IdTracker


CODE_FORMATS = {
    CounterKind.APPOINTMENT: ("#APT", 3),
    CounterKind.TRANSACTION: ("#TXN", 4),
    CounterKind.CLIENT: ("CL", 3),
}


def format_code(kind: CounterKind, value: int) -> str:
    prefix, width = CODE_FORMATS[kind]
    return f"{prefix}{value:0{width}d}"


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Sequential ids are not supported on dialect {dialect!r}")


async def next_counter_value(session: AsyncSession, company_id: int, kind: CounterKind) -> int:
    """Atomically increment the (company, kind) counter and return the new value."""
    insert = _insert_for(session)
    await session.execute(
        insert(IdTracker)
        .values(company_id=company_id, kind=kind.value, last_value=0)
        .on_conflict_do_nothing(index_elements=["company_id", "kind"])
    )
    result = await session.execute(
        update(IdTracker)
        .where(IdTracker.company_id == company_id, IdTracker.kind == kind.value)
        .values(last_value=IdTracker.last_value + 1)
        .returning(IdTracker.last_value)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one()


async def next_sequential_id(session: AsyncSession, company_id: int, kind: CounterKind) -> str:
    value = await next_counter_value(session, company_id, kind)
    return format_code(kind, value)
