"""Caller identity endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from keygate.api.rbac import current_identity
from keygate.auth.gate import Identity

router = APIRouter(prefix="/v1", tags=["identity"])


class IdentityResponse(BaseModel):
    key_id: str
    label: str
    owner: str
    is_admin: bool


@router.get("/me", response_model=IdentityResponse)
async def whoami(
    identity: Identity = Depends(current_identity),  # noqa: B008
) -> IdentityResponse:
    """Return the key the request was authenticated with."""
    return IdentityResponse(
        key_id=identity.key_id,
        label=identity.label,
        owner=identity.owner,
        is_admin=identity.is_admin,
    )
