"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.

Author: TM3
Date: 2025-11-06
"""
from typing import List, Optional, Tuple, Dict, Any

from psycopg2.extras import Json

from budstack.domain.order import Order, OrderItem
from budstack.repositories.base import BaseRepository, new_id


ORDER_SELECT = """
    SELECT
        o.id, o.order_number, o.tenant_id, o.user_id,
        o.subtotal, o.shipping_cost, o.total, o.currency,
        o.status, o.payment_status, o.shipping_info, o.admin_notes,
        o.external_id, o.payment_nonce, o.invoice_number,
        o.created_at, o.updated_at,
        u.email as customer_email,
        u.name as customer_name
    FROM orders o
    LEFT JOIN users u ON o.user_id = u.id
"""


class OrderRepository(BaseRepository):
    """
    Repository for Order data access

    Returns Order domain models with customer info and items.
    """

    def _attach_items(self, cursor, order_rows: List[dict]) -> List[Order]:
        if not order_rows:
            return []

        # All items for these orders in one query
        order_ids = [row['id'] for row in order_rows]
        cursor.execute("""
            SELECT id, order_id, product_id, product_name, quantity, size, price
            FROM order_items
            WHERE order_id = ANY(%s)
            ORDER BY order_id, id
        """, (order_ids,))

        items_by_order: Dict[str, List[OrderItem]] = {}
        for item in cursor.fetchall():
            items_by_order.setdefault(item['order_id'], []).append(OrderItem(**item))

        orders = []
        for row in order_rows:
            data = dict(row)
            data['shipping_info'] = data.get('shipping_info') or {}
            data['items'] = items_by_order.get(row['id'], [])
            orders.append(Order(**data))
        return orders

    def find_by_id(
        self,
        order_id: str,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Optional[Order]:
        """
        Find order by ID, optionally scoped to a tenant and/or customer
        """
        conditions = ["o.id = %s"]
        params: List[Any] = [order_id]

        if tenant_id:
            conditions.append("o.tenant_id = %s")
            params.append(tenant_id)
        if user_id:
            conditions.append("o.user_id = %s")
            params.append(user_id)

        with self._cursor() as cursor:
            cursor.execute(ORDER_SELECT + " WHERE " + " AND ".join(conditions), params)
            row = cursor.fetchone()
            if not row:
                return None
            return self._attach_items(cursor, [row])[0]

    def _find_one_where(self, condition: str, value: Any) -> Optional[Order]:
        with self._cursor() as cursor:
            cursor.execute(ORDER_SELECT + f" WHERE {condition} = %s", (value,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._attach_items(cursor, [row])[0]

    def find_by_payment_nonce(self, nonce: str) -> Optional[Order]:
        return self._find_one_where("o.payment_nonce", nonce)

    def find_by_external_id(self, external_id: str) -> Optional[Order]:
        return self._find_one_where("o.external_id", external_id)

    def find_all(
        self,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            tenant_id: Restrict to one store
            user_id: Restrict to one customer
            status / payment_status: Exact filters
            search: Order number, customer e-mail or name
            from_date / to_date: created_at range (ISO dates)
            limit / offset: Pagination

        Returns:
            Tuple of (orders newest first, total count)
        """
        conditions = []
        params: List[Any] = []

        if tenant_id:
            conditions.append("o.tenant_id = %s")
            params.append(tenant_id)

        if user_id:
            conditions.append("o.user_id = %s")
            params.append(user_id)

        if status:
            conditions.append("o.status = %s")
            params.append(status)

        if payment_status:
            conditions.append("o.payment_status = %s")
            params.append(payment_status)

        if search:
            conditions.append("(o.order_number ILIKE %s OR u.email ILIKE %s OR u.name ILIKE %s)")
            search_param = f"%{search}%"
            params.extend([search_param, search_param, search_param])

        if from_date:
            conditions.append("o.created_at >= %s")
            params.append(from_date)

        if to_date:
            conditions.append("o.created_at < (%s::date + INTERVAL '1 day')")
            params.append(to_date)

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                LEFT JOIN users u ON o.user_id = u.id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                {ORDER_SELECT}
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

            orders = self._attach_items(cursor, rows)

        return orders, total

    def order_number_exists(self, order_number: str, conn=None) -> bool:
        return self._fetch_one(
            "SELECT 1 as found FROM orders WHERE order_number = %s",
            (order_number,),
            conn=conn
        ) is not None

    def create(
        self,
        order_number: str,
        tenant_id: str,
        user_id: str,
        subtotal,
        shipping_cost,
        total,
        currency: str,
        shipping_info: Dict[str, Any],
        items: List[OrderItem],
        payment_nonce: Optional[str] = None,
        conn=None
    ) -> Order:
        """Insert order and its items; pass conn to run inside a transaction"""
        order_id = new_id()

        with self._cursor(conn, commit=True) as cursor:
            cursor.execute("""
                INSERT INTO orders (
                    id, order_number, tenant_id, user_id, subtotal, shipping_cost, total, currency,
                    status, payment_status, shipping_info, payment_nonce, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'PENDING', 'PENDING', %s, %s, NOW(), NOW())
                RETURNING id, order_number, tenant_id, user_id, subtotal, shipping_cost, total, currency,
                          status, payment_status, shipping_info, admin_notes, external_id,
                          payment_nonce, invoice_number, created_at, updated_at
            """, (
                order_id, order_number, tenant_id, user_id, subtotal, shipping_cost, total,
                currency, Json(shipping_info), payment_nonce
            ))
            order_row = dict(cursor.fetchone())

            stored_items = []
            for item in items:
                item_id = new_id()
                cursor.execute("""
                    INSERT INTO order_items (id, order_id, product_id, product_name, quantity, size, price)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                """, (item_id, order_id, item.product_id, item.product_name, item.quantity, item.size, item.price))
                stored_items.append(item.model_copy(update={'id': item_id, 'order_id': order_id}))

        order_row['items'] = stored_items
        return Order(**order_row)

    def update_status(self, order_id: str, tenant_id: str, status: str) -> bool:
        return self._write(
            "UPDATE orders SET status = %s, updated_at = NOW() WHERE id = %s AND tenant_id = %s",
            (status, order_id, tenant_id)
        ) > 0

    def bulk_update_status(self, tenant_id: str, order_ids: List[str], status: str) -> List[str]:
        """Returns ids of the tenant's orders that were updated"""
        with self._cursor(commit=True) as cursor:
            cursor.execute("""
                UPDATE orders SET status = %s, updated_at = NOW()
                WHERE tenant_id = %s AND id = ANY(%s)
                RETURNING id
            """, (status, tenant_id, list(order_ids)))
            return [row['id'] for row in cursor.fetchall()]

    def update_admin_notes(self, order_id: str, tenant_id: str, admin_notes: str) -> bool:
        return self._write(
            "UPDATE orders SET admin_notes = %s, updated_at = NOW() WHERE id = %s AND tenant_id = %s",
            (admin_notes, order_id, tenant_id)
        ) > 0

    def set_external_reference(self, order_id: str, external_id: str, invoice_number: Optional[str] = None) -> bool:
        return self._write("""
            UPDATE orders
            SET external_id = %s, invoice_number = COALESCE(%s, invoice_number), updated_at = NOW()
            WHERE id = %s
        """, (external_id, invoice_number, order_id)) > 0

    def update_payment(
        self,
        order_id: str,
        payment_status: str,
        status: Optional[str] = None,
        invoice_number: Optional[str] = None,
        clear_nonce: bool = False
    ) -> bool:
        return self._write("""
            UPDATE orders
            SET payment_status = %s,
                status = COALESCE(%s, status),
                invoice_number = COALESCE(%s, invoice_number),
                payment_nonce = CASE WHEN %s THEN NULL ELSE payment_nonce END,
                updated_at = NOW()
            WHERE id = %s
        """, (payment_status, status, invoice_number, clear_nonce, order_id)) > 0

    def log_payment_callback(
        self,
        webhook_type: str,
        payload: Dict[str, Any],
        tenant_id: Optional[str] = None,
        order_id: Optional[str] = None,
        drgreen_order_id: Optional[str] = None,
        processed: bool = False,
        error: Optional[str] = None
    ) -> None:
        self._write("""
            INSERT INTO drgreen_webhook_logs (
                id, tenant_id, webhook_type, order_id, drgreen_order_id, payload,
                processed, processed_at, error, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, CASE WHEN %s THEN NOW() END, %s, NOW())
        """, (
            new_id(), tenant_id, webhook_type, order_id, drgreen_order_id, Json(payload),
            processed, processed, error
        ))
