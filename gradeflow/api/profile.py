"""GET /api/auth/profile: the caller as seen through their token."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from gradeflow.api.dependencies import CurrentUser

router = APIRouter(prefix="/api/auth", tags=["profile"])


class ProfileOut(BaseModel):
    id: str
    email: str
    name: str
    roles: list[str]


@router.get("/profile", response_model=ProfileOut)
def get_profile(principal: CurrentUser) -> ProfileOut:
    return ProfileOut(
        id=principal.user_id,
        email=principal.email,
        name=principal.display_name,
        roles=sorted(principal.roles),
    )
