"""
Tenant Admin API Endpoints
Everything a dispensary admin manages for their own store

All routes require a TENANT_ADMIN (or higher) token bound to a tenant and
operate on that tenant only.

Author: TM3
Date: 2025-11-11
Updated: 2025-11-15 (webhooks, templates, exports)
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from budstack.api.deps import get_admin_tenant
from budstack.core.auth import TokenUser, require_tenant_admin
from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.core.rate_limit import enforce_user_rate_limit
from budstack.domain.audit import AuditActions
from budstack.domain.consent import CookieSettingsUpdate
from budstack.domain.order import OrderStatusUpdate, OrderBulkAction, AdminNotesUpdate
from budstack.domain.platform import DrGreenCredentialsUpdate
from budstack.domain.product import ProductCreate, ProductUpdate, ProductBulkAction, ProductReorder
from budstack.domain.template import SelectTemplateRequest, CloneTemplateRequest, TenantTemplateUpdate
from budstack.domain.tenant import Tenant, BrandingUpdate
from budstack.domain.user import CustomerUpdate
from budstack.domain.webhook import WebhookCreate, WebhookUpdate, WEBHOOK_EVENTS
from budstack.services.analytics_service import AnalyticsService
from budstack.services.audit_service import AuditService
from budstack.services.credentials_service import CredentialsService
from budstack.services.customer_service import CustomerService
from budstack.services.export_service import ExportService
from budstack.services.order_service import OrderService
from budstack.services.product_service import ProductService
from budstack.services.template_service import TemplateService
from budstack.services.tenant_service import TenantService
from budstack.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


# ============================================================================
# Store
# ============================================================================

@router.get("/tenant")
async def get_my_tenant(tenant: Tenant = Depends(get_admin_tenant)):
    return {"status": "success", "data": tenant.to_dict()}


@router.put("/branding")
async def update_branding(
    body: BrandingUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """Business name, colours, fonts, logo and free-form settings"""
    try:
        updated = TenantService().update_branding(tenant.id, body, user, headers=request.headers)
        return {"status": "success", "data": updated.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating branding: {str(e)}")


@router.get("/settings/drgreen")
async def get_drgreen_credentials(tenant: Tenant = Depends(get_admin_tenant)):
    """Masked view; the secret key is never returned"""
    return {"status": "success", "data": CredentialsService().describe(tenant)}


@router.put("/settings/drgreen")
async def update_drgreen_credentials(
    body: DrGreenCredentialsUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    if not body.api_key and not body.secret_key:
        raise HTTPException(status_code=400, detail="api_key or secret_key is required")

    try:
        CredentialsService().save_tenant_credentials(tenant.id, body.api_key, body.secret_key)
        AuditService().log(
            AuditActions.SETTINGS_UPDATED, 'Tenant', tenant.id,
            user=user, tenant_id=tenant.id,
            metadata={'api_key_updated': bool(body.api_key), 'secret_key_updated': bool(body.secret_key)},
            headers=request.headers,
        )
        return {"status": "success", "message": "Dr. Green credentials updated"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error saving credentials: {str(e)}")


@router.get("/cookie-settings")
async def get_cookie_settings(tenant: Tenant = Depends(get_admin_tenant)):
    try:
        cookie_settings = TenantService().get_cookie_settings(tenant.id)
        return {"status": "success", "data": cookie_settings.to_settings()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching cookie settings: {str(e)}")


@router.put("/cookie-settings")
async def update_cookie_settings(
    body: CookieSettingsUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        cookie_settings = TenantService().update_cookie_settings(tenant.id, body, user, headers=request.headers)
        return {"status": "success", "data": cookie_settings.to_settings()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating cookie settings: {str(e)}")


# ============================================================================
# Products
# ============================================================================

@router.get("/products")
async def list_products(
    tenant: Tenant = Depends(get_admin_tenant),
    search: Optional[str] = Query(None, description="Search by name or description"),
    strain_type: Optional[str] = Query(None, description="INDICA, SATIVA or HYBRID"),
    in_stock: Optional[bool] = Query(None, description="Only in stock / out of stock"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    try:
        products, total = ProductService().list(
            tenant.id, search=search, strain_type=strain_type, in_stock=in_stock, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.post("/products", status_code=201)
async def create_product(
    body: ProductCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        product = ProductService(background_tasks=background_tasks).create(tenant, body, user, headers=request.headers)
        return {"status": "success", "data": product.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating product: {str(e)}")


@router.post("/products/bulk")
async def bulk_products(
    body: ProductBulkAction,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """activate / deactivate / delete several products"""
    enforce_user_rate_limit(user.id, "products-bulk")
    try:
        affected = ProductService().bulk_action(tenant.id, body, user, headers=request.headers)
        return {"status": "success", "action": body.action, "count": affected}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating products: {str(e)}")


@router.post("/products/reorder")
async def reorder_products(
    body: ProductReorder,
    tenant: Tenant = Depends(get_admin_tenant)
):
    try:
        updated = ProductService().reorder(tenant.id, body.product_ids)
        return {"status": "success", "count": updated}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error reordering products: {str(e)}")


@router.post("/products/sync")
async def sync_products(
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """Pull the tenant's catalogue from Dr. Green"""
    enforce_user_rate_limit(user.id, "products-sync")
    try:
        result = await ProductService(background_tasks=background_tasks).sync_from_drgreen(
            tenant, user, headers=request.headers
        )
        return {"status": "success", "data": result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Product sync failed for {tenant.subdomain}: {e}")
        raise HTTPException(status_code=500, detail=f"Error syncing products: {str(e)}")


@router.get("/products/{product_id}")
async def get_product(product_id: str, tenant: Tenant = Depends(get_admin_tenant)):
    try:
        return {"status": "success", "data": ProductService().get(product_id, tenant.id).to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching product: {str(e)}")


@router.put("/products/{product_id}")
async def update_product(
    product_id: str,
    body: ProductUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        product = ProductService(background_tasks=background_tasks).update(
            product_id, tenant.id, body, user, headers=request.headers
        )
        return {"status": "success", "data": product.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating product: {str(e)}")


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        ProductService(background_tasks=background_tasks).delete(product_id, tenant.id, user, headers=request.headers)
        return {"status": "success", "message": "Product deleted"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting product: {str(e)}")


# ============================================================================
# Orders
# ============================================================================

@router.get("/orders")
async def list_orders(
    tenant: Tenant = Depends(get_admin_tenant),
    status: Optional[str] = Query(None, description="Filter by order status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, description="Search by order number or customer"),
    from_date: Optional[str] = Query(None, description="Orders from this date (ISO format)"),
    to_date: Optional[str] = Query(None, description="Orders until this date (ISO format)"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    try:
        orders, total = OrderService().list(
            tenant.id,
            status=status,
            payment_status=payment_status,
            search=search,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.post("/orders/bulk")
async def bulk_orders(
    body: OrderBulkAction,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """mark-processing / mark-completed for several orders"""
    enforce_user_rate_limit(user.id, "orders-bulk")
    try:
        updated_ids = OrderService(background_tasks=background_tasks).bulk_action(
            tenant.id, body.action, body.order_ids, user, headers=request.headers
        )
        return {"status": "success", "action": body.action, "count": len(updated_ids), "order_ids": updated_ids}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating orders: {str(e)}")


@router.get("/orders/{order_id}")
async def get_order(order_id: str, tenant: Tenant = Depends(get_admin_tenant)):
    try:
        return {"status": "success", "data": OrderService().get(order_id, tenant.id).to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.put("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        order = OrderService(background_tasks=background_tasks).update_status(
            order_id, tenant.id, body.status, user, headers=request.headers
        )
        return {"status": "success", "data": order.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating order: {str(e)}")


@router.put("/orders/{order_id}/notes")
async def update_order_notes(
    order_id: str,
    body: AdminNotesUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        order = OrderService().update_notes(order_id, tenant.id, body.admin_notes, user, headers=request.headers)
        return {"status": "success", "data": order.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating notes: {str(e)}")


# ============================================================================
# Customers, analytics, audit
# ============================================================================

@router.get("/customers")
async def list_customers(
    tenant: Tenant = Depends(get_admin_tenant),
    search: Optional[str] = Query(None, description="Search by e-mail or name"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    try:
        customers, total = CustomerService().list(tenant.id, search=search, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(customers),
            "data": [customer.to_dict() for customer in customers]
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching customers: {str(e)}")


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, tenant: Tenant = Depends(get_admin_tenant)):
    try:
        return {"status": "success", "data": CustomerService().get(customer_id, tenant.id)}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching customer: {str(e)}")


@router.put("/customers/{customer_id}")
async def update_customer(
    customer_id: str,
    body: CustomerUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        customer = CustomerService().update(customer_id, tenant.id, body, user, headers=request.headers)
        return {"status": "success", "data": customer.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating customer: {str(e)}")


@router.post("/customers/{customer_id}/reset-password")
async def reset_customer_password(
    customer_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """E-mail the customer a password reset link"""
    try:
        result = CustomerService(background_tasks=background_tasks).send_password_reset(
            customer_id, tenant.id, user, headers=request.headers
        )
        return {"status": "success", "message": f"Password reset link sent to {result['email']}", "data": result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resetting customer password: {str(e)}")


@router.get("/analytics")
async def get_analytics(
    tenant: Tenant = Depends(get_admin_tenant),
    time_range: str = Query("30d", alias="timeRange", description="7d, 30d or 90d")
):
    try:
        return {"status": "success", "data": AnalyticsService().get_tenant_analytics(tenant.id, time_range)}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching analytics: {str(e)}")


@router.get("/audit-logs")
async def list_audit_logs(
    tenant: Tenant = Depends(get_admin_tenant),
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)
):
    """Audit entries of this tenant only"""
    try:
        logs, total = AuditService().list(
            tenant_id=tenant.id, action=action, entity_type=entity_type, page=page, limit=limit
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


# ============================================================================
# Webhooks
# ============================================================================

@router.get("/webhooks")
async def list_webhooks(tenant: Tenant = Depends(get_admin_tenant)):
    try:
        webhooks = WebhookService().list(tenant.id)
        return {
            "status": "success",
            "count": len(webhooks),
            "data": [webhook.to_dict() for webhook in webhooks],
            "available_events": WEBHOOK_EVENTS
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching webhooks: {str(e)}")


@router.post("/webhooks", status_code=201)
async def create_webhook(
    body: WebhookCreate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    """The signing secret is only returned here"""
    try:
        webhook = WebhookService().create(tenant.id, body)
        AuditService().log(
            AuditActions.WEBHOOK_CREATED, 'Webhook', webhook.id,
            user=user, tenant_id=tenant.id,
            metadata={'url': webhook.url, 'events': webhook.events},
            headers=request.headers,
        )
        return {"status": "success", "data": webhook.to_dict(include_secret=True)}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating webhook: {str(e)}")


@router.put("/webhooks/{webhook_id}")
async def update_webhook(
    webhook_id: str,
    body: WebhookUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        webhook = WebhookService().update(webhook_id, tenant.id, body)
        AuditService().log(
            AuditActions.WEBHOOK_UPDATED, 'Webhook', webhook_id,
            user=user, tenant_id=tenant.id,
            metadata={'fields': sorted(body.model_dump(exclude_unset=True).keys())},
            headers=request.headers,
        )
        return {"status": "success", "data": webhook.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating webhook: {str(e)}")


@router.delete("/webhooks/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        WebhookService().delete(webhook_id, tenant.id)
        AuditService().log(
            AuditActions.WEBHOOK_DELETED, 'Webhook', webhook_id,
            user=user, tenant_id=tenant.id, headers=request.headers,
        )
        return {"status": "success", "message": "Webhook deleted"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting webhook: {str(e)}")


@router.get("/webhooks/{webhook_id}/deliveries")
async def list_webhook_deliveries(
    webhook_id: str,
    tenant: Tenant = Depends(get_admin_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200)
):
    try:
        deliveries, total = WebhookService().deliveries(webhook_id, tenant.id, page=page, limit=limit)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": (page - 1) * limit,
            "count": len(deliveries),
            "data": [delivery.to_dict() for delivery in deliveries]
        }
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching deliveries: {str(e)}")


# ============================================================================
# Templates
# ============================================================================

@router.get("/templates")
async def list_templates(tenant: Tenant = Depends(get_admin_tenant)):
    """Base templates to choose from and the tenant's own copies"""
    try:
        service = TemplateService()
        return {
            "status": "success",
            "data": {
                "available": [template.to_dict() for template in service.list_available()],
                "tenant_templates": [template.to_dict() for template in service.list_tenant_templates(tenant.id)],
                "current_template_id": tenant.template_id,
                "active_tenant_template_id": tenant.active_tenant_template_id,
            }
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching templates: {str(e)}")


@router.post("/templates/select")
async def select_template(
    body: SelectTemplateRequest,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        result = TemplateService().select_template(tenant, body.template_id, user, headers=request.headers)
        return {
            "status": "success",
            "data": {"template": result['template'].to_dict(), "settings": result['settings']}
        }
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error selecting template: {str(e)}")


@router.post("/templates/clone", status_code=201)
async def clone_template(
    body: CloneTemplateRequest,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        tenant_template = TemplateService().clone_template(
            tenant, body.base_template_slug, user,
            is_draft=body.is_draft, custom_name=body.custom_name, headers=request.headers
        )
        return {"status": "success", "data": tenant_template.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error cloning template: {str(e)}")


@router.post("/templates/{tenant_template_id}/activate")
async def activate_template(
    tenant_template_id: str,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        tenant_template = TemplateService().activate_tenant_template(
            tenant, tenant_template_id, user, headers=request.headers
        )
        return {"status": "success", "data": tenant_template.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error activating template: {str(e)}")


@router.put("/templates/{tenant_template_id}")
async def update_template(
    tenant_template_id: str,
    body: TenantTemplateUpdate,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        tenant_template = TemplateService().update_tenant_template(
            tenant, tenant_template_id, body, user, headers=request.headers
        )
        return {"status": "success", "data": tenant_template.to_dict()}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating template: {str(e)}")


@router.delete("/templates/{tenant_template_id}")
async def delete_template(
    tenant_template_id: str,
    request: Request,
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    try:
        TemplateService().delete_tenant_template(tenant, tenant_template_id, user, headers=request.headers)
        return {"status": "success", "message": "Template deleted"}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting template: {str(e)}")


# ============================================================================
# Exports
# ============================================================================

@router.get("/exports/orders")
async def export_orders(
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin),
    status: Optional[str] = Query(None, description="Filter by order status")
):
    enforce_user_rate_limit(user.id, "exports")
    try:
        content = ExportService().export_orders(tenant.id, status=status)
        return csv_response(content, f"{tenant.subdomain}-orders.csv")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting orders: {str(e)}")


@router.get("/exports/customers")
async def export_customers(
    tenant: Tenant = Depends(get_admin_tenant),
    user: TokenUser = Depends(require_tenant_admin)
):
    enforce_user_rate_limit(user.id, "exports")
    try:
        content = ExportService().export_customers(tenant.id)
        return csv_response(content, f"{tenant.subdomain}-customers.csv")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error exporting customers: {str(e)}")
