"""
Skill routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from portfolio.dependencies import get_content_store, require_user
from portfolio.schemas import SkillCreate, SkillUpdate, ok
from portfolio.stores import ContentStore

router = APIRouter(prefix="/skills", tags=["skills"])


@router.get("")
def list_skills(
    category: Optional[str] = Query(None),
    store: ContentStore = Depends(get_content_store),
):
    skills = store.list_skills(category=category)
    return ok([skill.as_dict() for skill in skills], count=len(skills))


@router.get("/{skill_id}")
def get_skill(skill_id: str, store: ContentStore = Depends(get_content_store)):
    return ok(store.get_skill(skill_id).as_dict())


@router.post("", status_code=201, dependencies=[Depends(require_user)])
def create_skill(payload: SkillCreate, store: ContentStore = Depends(get_content_store)):
    return ok(store.create_skill(payload.model_dump()).as_dict())


@router.put("/{skill_id}", dependencies=[Depends(require_user)])
def update_skill(
    skill_id: str,
    payload: SkillUpdate,
    store: ContentStore = Depends(get_content_store),
):
    return ok(store.update_skill(skill_id, payload.fields_set()).as_dict())


@router.delete("/{skill_id}", dependencies=[Depends(require_user)])
def delete_skill(skill_id: str, store: ContentStore = Depends(get_content_store)):
    store.delete_skill(skill_id)
    return ok({}, message="Skill deleted successfully")
