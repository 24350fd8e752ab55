"""Admin endpoints for process-wide settings."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from keygate.api.rbac import require_admin
from keygate.auth.gate import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/settings", tags=["admin"])


class SettingRequest(BaseModel):
    value: str


class SettingResponse(BaseModel):
    key: str
    value: str
    updated_at: str


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    request: Request,
    _admin: Identity = Depends(require_admin),  # noqa: B008
) -> SettingResponse:
    """Read one setting. 404 if it has never been set."""
    setting = await request.app.state.settings_store.get(key)
    return SettingResponse(
        key=setting.key, value=setting.value, updated_at=setting.updated_at
    )


@router.put("/{key}", response_model=SettingResponse)
async def put_setting(
    key: str,
    body: SettingRequest,
    request: Request,
    admin: Identity = Depends(require_admin),  # noqa: B008
) -> SettingResponse:
    """Create or overwrite one setting."""
    if not body.value:
        raise HTTPException(status_code=400, detail="value must not be empty")

    setting = await request.app.state.settings_store.set(key, body.value)
    logger.info(
        "Setting changed via API",
        extra={"setting": key, "key_id": admin.key_id},
    )
    return SettingResponse(
        key=setting.key, value=setting.value, updated_at=setting.updated_at
    )
