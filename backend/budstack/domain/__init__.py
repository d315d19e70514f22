"""
Domain Layer - Business Entities

Pydantic models for BudStack entities plus the request payloads that create
or change them.

Author: TM3
Date: 2025-11-03
"""
from budstack.domain.tenant import Tenant, TenantBranding
from budstack.domain.user import User
from budstack.domain.product import Product
from budstack.domain.cart import Cart, CartItem
from budstack.domain.order import Order, OrderItem, ShippingInfo
from budstack.domain.template import Template, TenantTemplate
from budstack.domain.audit import AuditLog
from budstack.domain.webhook import Webhook, WebhookDelivery
from budstack.domain.platform import PlatformSettings

__all__ = [
    'Tenant', 'TenantBranding', 'User', 'Product', 'Cart', 'CartItem',
    'Order', 'OrderItem', 'ShippingInfo', 'Template', 'TenantTemplate',
    'AuditLog', 'Webhook', 'WebhookDelivery', 'PlatformSettings',
]
