"""
Repository Layer - Data Access

Repositories run the SQL and return domain models; services never see a cursor.

Author: TM3
Date: 2025-11-03
"""
from budstack.repositories.tenant_repository import TenantRepository
from budstack.repositories.user_repository import UserRepository
from budstack.repositories.product_repository import ProductRepository
from budstack.repositories.cart_repository import CartRepository
from budstack.repositories.order_repository import OrderRepository
from budstack.repositories.template_repository import TemplateRepository
from budstack.repositories.audit_repository import AuditRepository
from budstack.repositories.webhook_repository import WebhookRepository
from budstack.repositories.platform_repository import PlatformSettingsRepository
from budstack.repositories.analytics_repository import AnalyticsRepository

__all__ = [
    'TenantRepository',
    'UserRepository',
    'ProductRepository',
    'CartRepository',
    'OrderRepository',
    'TemplateRepository',
    'AuditRepository',
    'WebhookRepository',
    'PlatformSettingsRepository',
    'AnalyticsRepository',
]
