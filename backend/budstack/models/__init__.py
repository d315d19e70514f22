"""
Modelos de base de datos
"""
from .tenant import Tenant, TenantBranding
from .user import User
from .template import Template, TenantTemplate
from .product import Product
from .order import Cart, Order, OrderItem, DrGreenWebhookLog
from .platform import AuditLog, Webhook, WebhookDelivery, PlatformSettings

__all__ = [
    "Tenant",
    "TenantBranding",
    "User",
    "Template",
    "TenantTemplate",
    "Product",
    "Cart",
    "Order",
    "OrderItem",
    "DrGreenWebhookLog",
    "AuditLog",
    "Webhook",
    "WebhookDelivery",
    "PlatformSettings",
]
