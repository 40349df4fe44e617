"""Shared skill and interest catalogs (read-only)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, require_auth
from app.db.session import get_db
from app.models.skill import Interest, Skill
from app.schemas.skill import CatalogInterest, CatalogInterestList, CatalogSkill, CatalogSkillList

router = APIRouter()


@router.get("/skills", response_model=CatalogSkillList)
async def list_skills(
    category: Optional[str] = Query(None, description="technical or soft"),
    search: Optional[str] = None,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    query = select(Skill)
    if category:
        query = query.where(Skill.category == category)
    if search:
        query = query.where(Skill.name.ilike(f"%{search.strip()}%"))

    result = await db.execute(query.order_by(Skill.category, Skill.name))
    return CatalogSkillList(skills=[CatalogSkill.model_validate(s) for s in result.scalars().all()])


@router.get("/interests", response_model=CatalogInterestList)
async def list_interests(
    category: Optional[str] = None,
    search: Optional[str] = None,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    query = select(Interest)
    if category:
        query = query.where(Interest.category == category)
    if search:
        query = query.where(Interest.name.ilike(f"%{search.strip()}%"))

    result = await db.execute(query.order_by(Interest.category, Interest.name))
    return CatalogInterestList(
        interests=[CatalogInterest.model_validate(i) for i in result.scalars().all()]
    )
