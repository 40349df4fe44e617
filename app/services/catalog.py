"""Skill and interest catalog upserts."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.skill import Interest, Skill

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    try:
        return _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise RuntimeError(f"Catalog upsert is not supported on {dialect}")


async def upsert_skill(session: AsyncSession, name: str, category: str) -> uuid.UUID:
    """
    Id of the catalog skill (name, category), creating it if absent.

    One INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so two
    writers adding the same skill both get the one surviving row.
    """
    insert = _insert_for(session)
    now = datetime.utcnow()
    stmt = insert(Skill).values(
        id=uuid.uuid4(), name=name, category=category, created_at=now, updated_at=now
    )
    # A no-op update so RETURNING also yields the existing row's id
    stmt = stmt.on_conflict_do_update(
        index_elements=[Skill.name, Skill.category],
        set_={"name": stmt.excluded.name},
    ).returning(Skill.id)
    result = await session.execute(stmt)
    return result.scalar_one()


async def upsert_interest(
    session: AsyncSession, name: str, category: Optional[str] = None
) -> uuid.UUID:
    """Id of the catalog interest ``name``, creating it if absent."""
    insert = _insert_for(session)
    now = datetime.utcnow()
    stmt = insert(Interest).values(
        id=uuid.uuid4(), name=name, category=category, created_at=now, updated_at=now
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Interest.name],
        set_={"name": stmt.excluded.name},
    ).returning(Interest.id)
    result = await session.execute(stmt)
    return result.scalar_one()
