from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from accreditation.config import settings
from accreditation.core.authorization import Actor
from accreditation.schemas.common import Role

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """Verify API key from request header. Skip if no key configured."""
    if not settings.api_key or settings.api_key == "changeme":
        return "anonymous"
    if not api_key or api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return api_key


async def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
    _: str = Depends(verify_api_key),
) -> Actor:
    """Build the acting user from identity headers set by the upstream gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing actor identity headers")
    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role '{x_user_role}'") from None
    return Actor(user_id=x_user_id, role=role, tenant_id=x_tenant_id or None)

