"""
Shared dependencies for API routers

Author: TM3
Date: 2025-11-15
"""
from fastapi import Depends, HTTPException

from budstack.core.auth import TokenUser, require_tenant_admin, get_admin_tenant_id
from budstack.domain.tenant import Tenant
from budstack.repositories.tenant_repository import TenantRepository
from budstack.services.tenant_service import TenantService


def get_store(slug: str) -> Tenant:
    """Active tenant for a /store/{slug} route, 404 otherwise"""
    tenant = TenantService().get_by_slug(slug)
    if not tenant:
        raise HTTPException(status_code=404, detail="Store not found")
    return tenant


def get_admin_tenant(user: TokenUser = Depends(require_tenant_admin)) -> Tenant:
    """Tenant the signed-in tenant admin manages"""
    tenant = TenantRepository().find_by_id(get_admin_tenant_id(user))
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant
