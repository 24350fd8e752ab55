"""Authorization dependencies for routes behind ``BasicAuthMiddleware``.

Two roles exist: admin keys (``is_admin``) and standard keys. Use
``require_admin`` on routes that change process-wide state.

Example::

    @router.put("/admin/settings/{key}")
    async def put_setting(identity: Identity = Depends(require_admin)):
        ...
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from keygate.auth.gate import Identity


async def current_identity(request: Request) -> Identity:
    """FastAPI dependency: the identity the auth middleware attached.

    Raises:
        HTTPException 401: No identity on the request (middleware bypassed).
    """
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, Identity):
        raise HTTPException(status_code=401, detail="Invalid or missing credentials")
    return identity


async def require_admin(
    identity: Identity = Depends(current_identity),  # noqa: B008
) -> Identity:
    """FastAPI dependency: the caller must hold an admin key.

    Raises:
        HTTPException 403: Authenticated with a standard key.
    """
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Requires an admin key")
    return identity
