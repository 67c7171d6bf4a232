"""
geotera.api.routes.profile — Settings page & personal impact
==============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from geotera.api.deps import get_current_user_id, get_engine
from geotera.services import impact_service, user_service

router = APIRouter(tags=["profile"])


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    notifications: bool | None = None
    profile_image: str | None = None


@router.get("/me/profile")
def get_profile(user_id: int = Depends(get_current_user_id), engine=Depends(get_engine)):
    user = user_service.get_user(engine, user_id)
    return {"name": user.name, "email": user.email, **user_service.get_profile(engine, user_id)}


@router.put("/me/profile")
def update_profile(
    body: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    changes = body.model_dump(exclude_unset=True)
    name = changes.pop("name", None)
    user = (
        user_service.update_user_name(engine, user_id, name)
        if name is not None
        else user_service.get_user(engine, user_id)
    )
    profile = user_service.update_profile(engine, user_id, changes)
    return {"name": user.name, "email": user.email, **profile}


@router.get("/me/impact")
def my_impact(user_id: int = Depends(get_current_user_id), engine=Depends(get_engine)):
    return impact_service.user_impact(engine, user_id)


@router.get("/impact")
def community_impact(engine=Depends(get_engine)):
    return impact_service.community_impact(engine).as_dict()
