"""
Export Service - CSV downloads for admin screens

Author: TM3
Date: 2025-11-15
"""
import logging
from typing import Optional, List, Dict, Any

import pandas as pd

from budstack.repositories.order_repository import OrderRepository
from budstack.repositories.tenant_repository import TenantRepository
from budstack.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Exports are capped, not paginated
MAX_EXPORT_ROWS = 10000

TENANT_COLUMNS = [
    'id', 'business_name', 'subdomain', 'custom_domain', 'country_code', 'is_active',
    'admin_email', 'user_count', 'product_count', 'order_count', 'created_at',
]

ORDER_COLUMNS = [
    'order_number', 'created_at', 'status', 'payment_status', 'customer_email', 'customer_name',
    'item_count', 'subtotal', 'shipping_cost', 'total', 'currency', 'city', 'country',
]

CUSTOMER_COLUMNS = ['id', 'email', 'name', 'phone', 'order_count', 'is_active', 'created_at']


def to_csv(records: List[Dict[str, Any]], columns: List[str]) -> str:
    """CSV text with a fixed header, also for empty exports"""
    df = pd.DataFrame(records, columns=columns)
    return df.to_csv(index=False)


class ExportService:

    def __init__(
        self,
        tenant_repository: Optional[TenantRepository] = None,
        order_repository: Optional[OrderRepository] = None,
        user_repository: Optional[UserRepository] = None
    ):
        self.tenant_repository = tenant_repository or TenantRepository()
        self.order_repository = order_repository or OrderRepository()
        self.user_repository = user_repository or UserRepository()

    def export_tenants(self, search: Optional[str] = None, status: Optional[str] = None) -> str:
        tenants, total = self.tenant_repository.find_all(
            search=search, status=status, limit=MAX_EXPORT_ROWS, offset=0
        )
        logger.info(f"Exporting {len(tenants)} of {total} tenants")
        return to_csv([tenant.to_dict() for tenant in tenants], TENANT_COLUMNS)

    def export_orders(self, tenant_id: str, status: Optional[str] = None) -> str:
        orders, _ = self.order_repository.find_all(
            tenant_id=tenant_id, status=status, limit=MAX_EXPORT_ROWS, offset=0
        )
        records = []
        for order in orders:
            data = order.to_dict()
            data['city'] = order.shipping_info.get('city')
            data['country'] = order.shipping_info.get('country')
            records.append(data)
        return to_csv(records, ORDER_COLUMNS)

    def export_customers(self, tenant_id: str) -> str:
        customers, _ = self.user_repository.find_customers(tenant_id, limit=MAX_EXPORT_ROWS, offset=0)
        return to_csv([customer.to_dict() for customer in customers], CUSTOMER_COLUMNS)
