from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, errors, models
from .db import get_db

TENANT_HEADER = "X-Tenant-Id"


async def get_tenant(
    x_tenant_id: Optional[str] = Header(default=None, alias=TENANT_HEADER),
    db: AsyncSession = Depends(get_db),
) -> models.Tenant:
    code = (x_tenant_id or "").strip()
    if not code:
        raise errors.ValidationError(f"{TENANT_HEADER} header is required")
    tenant = await crud.get_tenant_by_code(db, code)
    if tenant is None:
        raise errors.TenantNotFoundError(code)
    return tenant
