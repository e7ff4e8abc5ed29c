"""
Soft-delete aware accessors shared by the entity repositories.

Junction tables carry no tombstone of their own: membership is binary,
so replacing a mapping set is a physical delete followed by an insert.
"""
from collections.abc import Iterable
from typing import TypeVar
from sqlalchemy import Column, Table, delete, insert, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from admin_iam.core.database.base import SoftDeleteMixin


ModelT = TypeVar("ModelT", bound=SoftDeleteMixin)


async def get_active(session: AsyncSession, model: type[ModelT], entity_id: str) -> ModelT | None:
    """Load a row by primary key unless it has been soft-deleted."""
    stmt = select(model).where(model.id == entity_id, model.active())
    result = await session.execute(stmt)
    return result.scalars().first()


async def find_active_ids(session: AsyncSession, model: type[SoftDeleteMixin], ids: Iterable[str]) -> set[str]:
    """Return the subset of ``ids`` that resolve to live rows."""
    ids = list(ids)
    if not ids:
        return set()
    stmt = select(model.id).where(model.id.in_(ids), model.active())
    result = await session.execute(stmt)
    return set(result.scalars().all())


async def linked_ids(session: AsyncSession, owner_column: Column, owner_id: str, target_column: Column) -> list[str]:
    """Return every target id physically linked to ``owner_id`` in a junction table."""
    stmt = select(target_column).where(owner_column == owner_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


def insert_ignoring_duplicates(session: AsyncSession, table: Table):
    """Build an INSERT that skips rows whose key already exists."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    if dialect in ("mysql", "mariadb"):
        return mysql.insert(table).prefix_with("IGNORE")
    return insert(table)


async def replace_links(
    session: AsyncSession,
    table: Table,
    owner_column: str,
    owner_id: str,
    target_column: str,
    target_ids: list[str],
) -> None:
    """
    Replace every junction row for ``owner_id`` with ``target_ids``.

    Must run inside the caller's transaction so readers never observe the
    window between the delete and the insert.
    """
    await session.execute(delete(table).where(table.c[owner_column] == owner_id))
    if target_ids:
        rows = [{owner_column: owner_id, target_column: target_id} for target_id in target_ids]
        await session.execute(insert_ignoring_duplicates(session, table), rows)


async def add_link(
    session: AsyncSession,
    table: Table,
    owner_column: str,
    owner_id: str,
    target_column: str,
    target_id: str,
) -> bool:
    """Insert one junction row. Returns False when the link already existed."""
    stmt = insert_ignoring_duplicates(session, table).values({owner_column: owner_id, target_column: target_id})
    result = await session.execute(stmt)
    return result.rowcount > 0


async def remove_link(
    session: AsyncSession,
    table: Table,
    owner_column: str,
    owner_id: str,
    target_column: str,
    target_id: str,
) -> bool:
    """Delete one junction row. Returns False when there was nothing to delete."""
    stmt = delete(table).where(table.c[owner_column] == owner_id, table.c[target_column] == target_id)
    result = await session.execute(stmt)
    return result.rowcount > 0
