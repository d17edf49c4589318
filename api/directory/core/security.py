import hashlib
import hmac
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from directory.core.config import Settings, get_settings

ACTOR_ID_LENGTH = 12


@dataclass(slots=True)
class AdminActor:
    actor_id: str


def admin_actor_id(admin_key: str) -> str:
    """Stable, non-reversible label for an admin key, safe for logs and audit columns."""
    return hashlib.sha256(admin_key.encode("utf-8")).hexdigest()[:ACTOR_ID_LENGTH]


async def get_admin_actor(
    settings: Settings = Depends(get_settings),
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> AdminActor:
    if not settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="admin auth is not configured",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"admin auth requires a valid {settings.admin_key_header}",
        )
    return AdminActor(actor_id=admin_actor_id(x_admin_key))
