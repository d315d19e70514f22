"""
Audit log domain model and action names
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime


class AuditActions:
    # Authentication
    USER_LOGIN = 'user.login'
    USER_SIGNUP = 'user.signup'
    USER_PASSWORD_RESET = 'user.password_reset'
    USER_PASSWORD_CHANGED = 'user.password_changed'
    USER_PASSWORD_RESET_REQUESTED = 'user.password_reset_requested'
    CUSTOMER_UPDATED = 'customer.updated'

    # Tenant management
    TENANT_CREATED = 'tenant.created'
    TENANT_UPDATED = 'tenant.updated'
    TENANT_ACTIVATED = 'tenant.activated'
    TENANT_DEACTIVATED = 'tenant.deactivated'
    TENANT_BULK_ACTIVATED = 'tenant.bulk_activated'
    TENANT_BULK_DEACTIVATED = 'tenant.bulk_deactivated'

    # Products
    PRODUCT_CREATED = 'product.created'
    PRODUCT_UPDATED = 'product.updated'
    PRODUCT_DELETED = 'product.deleted'
    PRODUCT_STOCK_UPDATED = 'product.stock_updated'
    PRODUCT_BULK_UPDATED = 'product.bulk_updated'
    PRODUCTS_SYNCED = 'product.synced'

    # Orders
    ORDER_CREATED = 'order.created'
    ORDER_UPDATED = 'order.updated'
    ORDER_STATUS_CHANGED = 'order.status_changed'
    ORDER_CANCELLED = 'order.cancelled'
    ORDER_PAYMENT_UPDATED = 'order.payment_updated'

    # Branding and templates
    BRANDING_UPDATED = 'branding.updated'
    SETTINGS_UPDATED = 'settings.updated'
    COOKIE_SETTINGS_UPDATED = 'settings.cookies_updated'
    TEMPLATE_CHANGED = 'template.changed'
    TEMPLATE_CREATED = 'template.created'
    TEMPLATE_UPDATED = 'template.updated'
    TEMPLATE_DELETED = 'template.deleted'

    # Webhooks
    WEBHOOK_CREATED = 'webhook.created'
    WEBHOOK_UPDATED = 'webhook.updated'
    WEBHOOK_DELETED = 'webhook.deleted'

    PLATFORM_SETTINGS_UPDATED = 'platform.settings_updated'


class AuditLog(BaseModel):
    id: str = Field(..., description="Audit entry ID")
    action: str = Field(..., description="Action name, see AuditActions")
    entity_type: str = Field(..., description="Tenant, Order, Product...")
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    tenant_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        if isinstance(data.get('created_at'), datetime):
            data['created_at'] = data['created_at'].isoformat()
        return data
