"""
Super Admin API Endpoints
Platform-wide management: tenants, base templates, analytics, settings

All routes require a SUPER_ADMIN token.

Author: TM3
Date: 2025-11-12
Updated: 2025-11-16 (template uploads, exports)
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from budstack.core.auth import TokenUser, require_super_admin
from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.core.rate_limit import enforce_user_rate_limit
from budstack.domain.platform import PlatformSettingsUpdate
from budstack.domain.template import TemplateUpload, TemplateUpdate
from budstack.domain.tenant import TenantCreate, TenantUpdate, TenantBulkAction
from budstack.domain.user import PasswordReset
from budstack.services.analytics_service import AnalyticsService
from budstack.services.audit_service import AuditService
from budstack.services.export_service import ExportService
from budstack.services.platform_service import PlatformService
from budstack.services.template_service import TemplateService
from budstack.services.tenant_service import TenantService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Tenants
# ============================================================================

@router.get("/tenants")
async def list_tenants(
    user: TokenUser = Depends(require_super_admin),
    search: Optional[str] = Query(None, description="Business name, subdomain or admin e-mail"),
    status: Optional[str] = Query(None, description="active or inactive"),
    country_code: Optional[str] = Query(None, description="Filter by country"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
):
    """
    List tenants with counts and pagination

    Returns:
        {"status": "success", "data": [...], "pagination": {page, limit, total, totalPages}}
    """
    try:
        result = TenantService().list(page=page, limit=limit, search=search, status=status, country_code=country_code)
        return {
            "status": "success",
            "count": len(result['tenants']),
            "data": [tenant.to_dict() for tenant in result['tenants']],
            "pagination": result['pagination']
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching tenants: {str(e)}")


@router.post("/tenants", status_code=201)
async def create_tenant(
    body: TenantCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_super_admin)
):
    """Create an active tenant with its admin account"""
    try:
        tenant = TenantService(background_tasks=background_tasks).create(body, user, headers=request.headers)
        return {"status": "success", "data": tenant.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Tenant creation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating tenant: {str(e)}")


@router.post("/tenants/bulk/activate")
async def bulk_activate_tenants(
    body: TenantBulkAction,
    request: Request,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_super_admin)
):
    enforce_user_rate_limit(user.id, "tenants-bulk")
    try:
        updated_ids = TenantService(background_tasks=background_tasks).bulk_set_active(
            body.tenant_ids, True, user, headers=request.headers
        )
        return {"status": "success", "count": len(updated_ids), "tenant_ids": updated_ids}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error activating tenants: {str(e)}")


@router.post("/tenants/bulk/deactivate")
async def bulk_deactivate_tenants(
    body: TenantBulkAction,
    request: Request,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_super_admin)
):
    enforce_user_rate_limit(user.id, "tenants-bulk")
    try:
        updated_ids = TenantService(background_tasks=background_tasks).bulk_set_active(
            body.tenant_ids, False, user, headers=request.headers
        )
        return {"status": "success", "count": len(updated_ids), "tenant_ids": updated_ids}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deactivating tenants: {str(e)}")


@router.get("/tenants/{tenant_id}")
async def get_tenant(tenant_id: str, user: TokenUser = Depends(require_super_admin)):
    try:
        return {"status": "success", "data": TenantService().get(tenant_id).to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching tenant: {str(e)}")


@router.put("/tenants/{tenant_id}")
async def update_tenant(
    tenant_id: str,
    body: TenantUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_super_admin)
):
    try:
        tenant = TenantService(background_tasks=background_tasks).update(tenant_id, body, user, headers=request.headers)
        return {"status": "success", "data": tenant.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating tenant: {str(e)}")


@router.post("/tenants/{tenant_id}/toggle-active")
async def toggle_tenant(
    tenant_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    user: TokenUser = Depends(require_super_admin)
):
    """Approve a pending tenant or suspend an active one"""
    try:
        tenant = TenantService(background_tasks=background_tasks).toggle_active(tenant_id, user, headers=request.headers)
        return {"status": "success", "data": tenant.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating tenant: {str(e)}")


@router.post("/tenants/{tenant_id}/reset-password")
async def reset_tenant_admin_password(
    tenant_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    body: Optional[PasswordReset] = None,
    user: TokenUser = Depends(require_super_admin)
):
    try:
        result = TenantService(background_tasks=background_tasks).reset_admin_password(
            tenant_id, user, new_password=body.new_password if body else None, headers=request.headers
        )
        return {"status": "success", "message": "Password reset", "data": result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resetting password: {str(e)}")


# ============================================================================
# Base templates
# ============================================================================

@router.get("/templates")
async def list_templates(user: TokenUser = Depends(require_super_admin)):
    try:
        templates = TemplateService().list_all()
        return {"status": "success", "count": len(templates), "data": [t.to_dict() for t in templates]}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching templates: {str(e)}")


@router.post("/templates/upload", status_code=201)
async def upload_template(body: TemplateUpload, request: Request, user: TokenUser = Depends(require_super_admin)):
    """Register a base template from a public GitHub repository"""
    try:
        template = await TemplateService().upload_from_github(body, user, headers=request.headers)
        return {"status": "success", "data": template.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Template upload failed for {body.github_url}: {e}")
        raise HTTPException(status_code=500, detail=f"Error uploading template: {str(e)}")


@router.post("/templates/cleanup-drafts")
async def cleanup_template_drafts(user: TokenUser = Depends(require_super_admin)):
    try:
        return {"status": "success", "deleted": TemplateService().cleanup_expired_drafts()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error cleaning up drafts: {str(e)}")


@router.put("/templates/{template_id}")
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    request: Request,
    user: TokenUser = Depends(require_super_admin)
):
    try:
        template = TemplateService().update(template_id, body, user, headers=request.headers)
        return {"status": "success", "data": template.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating template: {str(e)}")


@router.delete("/templates/{template_id}")
async def delete_template(template_id: str, request: Request, user: TokenUser = Depends(require_super_admin)):
    try:
        TemplateService().delete(template_id, user, headers=request.headers)
        return {"status": "success", "message": "Template deleted"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting template: {str(e)}")


# ============================================================================
# Analytics, audit, settings, exports
# ============================================================================

@router.get("/analytics")
async def get_platform_analytics(
    user: TokenUser = Depends(require_super_admin),
    time_range: str = Query("30d", alias="timeRange", description="7d, 30d or 90d")
):
    try:
        return {"status": "success", "data": AnalyticsService().get_platform_analytics(time_range)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching analytics: {str(e)}")


@router.get("/audit-logs")
async def list_audit_logs(
    user: TokenUser = Depends(require_super_admin),
    tenant_id: Optional[str] = Query(None, description="Filter by tenant"),
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)
):
    try:
        logs, total = AuditService().list(
            tenant_id=tenant_id, action=action, entity_type=entity_type, page=page, limit=limit
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": (page - 1) * limit,
            "count": len(logs),
            "data": [log.to_dict() for log in logs]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching audit logs: {str(e)}")


@router.get("/platform-settings")
async def get_platform_settings(user: TokenUser = Depends(require_super_admin)):
    try:
        return {"status": "success", "data": PlatformService().get_settings().to_dict()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching platform settings: {str(e)}")


@router.put("/platform-settings")
async def update_platform_settings(
    body: PlatformSettingsUpdate,
    request: Request,
    user: TokenUser = Depends(require_super_admin)
):
    try:
        settings = PlatformService().update_settings(body, user, headers=request.headers)
        return {"status": "success", "data": settings.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating platform settings: {str(e)}")


@router.get("/exports/tenants")
async def export_tenants(
    user: TokenUser = Depends(require_super_admin),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="active or inactive")
):
    enforce_user_rate_limit(user.id, "exports")
    try:
        content = ExportService().export_tenants(search=search, status=status)
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="tenants.csv"'}
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting tenants: {str(e)}")
