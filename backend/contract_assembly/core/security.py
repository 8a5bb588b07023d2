"""Request context helpers.

Authentication is handled upstream; the engine only needs the tenant the
request acts for.
"""

from uuid import UUID

from fastapi import Header, HTTPException, status


async def get_tenant_id(x_tenant_id: str | None = Header(default=None)) -> UUID:
    """Resolve the acting tenant from the ``X-Tenant-Id`` header."""
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing tenant context")
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed tenant id")
