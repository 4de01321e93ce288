"""FastAPI dependency providers for auth, role and capability enforcement."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db.engine import get_db
from cleaning_portal.errors import AuthorizationGap
from cleaning_portal.services.auth import AuthContext, get_current_user
from cleaning_portal.services.permissions import Capability


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Require a valid authenticated session. Returns AuthContext."""
    return await get_current_user(request, db)


def require_role(*allowed_roles: str):
    """Factory: returns a dependency that enforces role membership."""
    async def _check(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.role not in allowed_roles:
            raise HTTPException(403, "Insufficient permissions")
        return auth
    return _check


def require_capability(capability: Capability):
    """Factory: admin role plus one capability. The single gate for admin routes."""
    async def _check(auth: AuthContext = Depends(require_role("admin"))) -> AuthContext:
        if capability not in auth.capabilities:
            raise AuthorizationGap(f"Missing permission: {capability.value}")
        return auth
    return _check
