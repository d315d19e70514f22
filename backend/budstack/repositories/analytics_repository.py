"""
Analytics Repository - aggregate queries for tenant and platform dashboards

Cancelled orders never count as revenue.

Author: TM3
Date: 2025-11-14
"""
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime

from budstack.repositories.base import BaseRepository


def _tenant_filter(tenant_id: Optional[str], alias: str = "o") -> Tuple[str, List[Any]]:
    if tenant_id:
        return f" AND {alias}.tenant_id = %s", [tenant_id]
    return "", []


class AnalyticsRepository(BaseRepository):

    def get_totals(self, since: datetime, tenant_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Headline numbers, all-time and since `since`

        Returns:
            Dict with total_products, total_orders, total_customers, total_revenue,
            recent_orders, recent_customers, recent_revenue
        """
        order_filter, order_params = _tenant_filter(tenant_id, "o")
        product_filter, product_params = _tenant_filter(tenant_id, "p")
        user_filter, user_params = _tenant_filter(tenant_id, "u")

        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT
                    COUNT(*) as total_orders,
                    COALESCE(SUM(o.total) FILTER (WHERE o.status <> 'CANCELLED'), 0) as total_revenue,
                    COUNT(*) FILTER (WHERE o.created_at >= %s) as recent_orders,
                    COALESCE(SUM(o.total) FILTER (
                        WHERE o.status <> 'CANCELLED' AND o.created_at >= %s
                    ), 0) as recent_revenue
                FROM orders o
                WHERE 1=1 {order_filter}
            """, [since, since] + order_params)
            orders = cursor.fetchone()

            cursor.execute(
                f"SELECT COUNT(*) as total FROM products p WHERE 1=1 {product_filter}",
                product_params
            )
            products = cursor.fetchone()

            cursor.execute(f"""
                SELECT
                    COUNT(*) as total_customers,
                    COUNT(*) FILTER (WHERE u.created_at >= %s) as recent_customers
                FROM users u
                WHERE u.role = 'PATIENT' {user_filter}
            """, [since] + user_params)
            customers = cursor.fetchone()

        return {
            'total_products': products['total'],
            'total_orders': orders['total_orders'],
            'total_customers': customers['total_customers'],
            'total_revenue': float(orders['total_revenue']),
            'recent_orders': orders['recent_orders'],
            'recent_customers': customers['recent_customers'],
            'recent_revenue': float(orders['recent_revenue']),
        }

    def get_platform_counts(self) -> Dict[str, int]:
        row = self._fetch_one("""
            SELECT
                (SELECT COUNT(*) FROM tenants) as total_tenants,
                (SELECT COUNT(*) FROM tenants WHERE is_active = TRUE) as active_tenants,
                (SELECT COUNT(*) FROM tenants WHERE is_active = FALSE) as pending_tenants,
                (SELECT COUNT(*) FROM users) as total_users
        """)
        return {key: int(value) for key, value in row.items()}

    def get_daily_orders(self, since: datetime, tenant_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Rows of {day, orders, revenue} for days that had orders"""
        order_filter, params = _tenant_filter(tenant_id)
        rows = self._fetch_all(f"""
            SELECT
                DATE(o.created_at) as day,
                COUNT(*) as orders,
                COALESCE(SUM(o.total) FILTER (WHERE o.status <> 'CANCELLED'), 0) as revenue
            FROM orders o
            WHERE o.created_at >= %s {order_filter}
            GROUP BY DATE(o.created_at)
            ORDER BY day
        """, [since] + params)
        return rows

    def get_daily_customers(self, since: datetime, tenant_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Rows of {day, customers}: new patients per day"""
        user_filter, params = _tenant_filter(tenant_id, "u")
        return self._fetch_all(f"""
            SELECT DATE(u.created_at) as day, COUNT(*) as customers
            FROM users u
            WHERE u.role = 'PATIENT' AND u.created_at >= %s {user_filter}
            GROUP BY DATE(u.created_at)
            ORDER BY day
        """, [since] + params)

    def get_top_products(self, since: datetime, tenant_id: Optional[str] = None, limit: int = 5) -> List[Dict[str, Any]]:
        order_filter, params = _tenant_filter(tenant_id)
        rows = self._fetch_all(f"""
            SELECT
                oi.product_id,
                oi.product_name,
                SUM(oi.quantity) as quantity,
                COALESCE(SUM(oi.price * oi.quantity), 0) as revenue
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            WHERE o.created_at >= %s AND o.status <> 'CANCELLED' {order_filter}
            GROUP BY oi.product_id, oi.product_name
            ORDER BY quantity DESC
            LIMIT %s
        """, [since] + params + [limit])
        return [
            {**row, 'quantity': int(row['quantity']), 'revenue': float(row['revenue'])}
            for row in rows
        ]

    def get_orders_by_status(self, tenant_id: Optional[str] = None) -> List[Dict[str, Any]]:
        order_filter, params = _tenant_filter(tenant_id)
        return self._fetch_all(f"""
            SELECT o.status, COUNT(*) as count
            FROM orders o
            WHERE 1=1 {order_filter}
            GROUP BY o.status
            ORDER BY count DESC
        """, params)

    def get_revenue_by_tenant(self, since: Optional[datetime] = None, limit: int = 6) -> List[Dict[str, Any]]:
        """Tenants with revenue > 0, highest first"""
        date_filter = "AND o.created_at >= %s" if since else ""
        params: List[Any] = [since] if since else []
        rows = self._fetch_all(f"""
            SELECT
                t.id as tenant_id,
                t.business_name,
                t.subdomain,
                COUNT(o.id) as orders,
                COALESCE(SUM(o.total), 0) as revenue
            FROM tenants t
            JOIN orders o ON o.tenant_id = t.id AND o.status <> 'CANCELLED' {date_filter}
            GROUP BY t.id, t.business_name, t.subdomain
            HAVING COALESCE(SUM(o.total), 0) > 0
            ORDER BY revenue DESC
            LIMIT %s
        """, params + [limit])
        return [{**row, 'orders': int(row['orders']), 'revenue': float(row['revenue'])} for row in rows]
