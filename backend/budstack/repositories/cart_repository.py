"""
Cart Repository - one row per (user, tenant), items in JSONB

Author: TM3
Date: 2025-11-06
"""
from typing import Optional

from psycopg2.extras import Json

from budstack.domain.cart import Cart, CartItem
from budstack.repositories.base import BaseRepository, new_id


def row_to_cart(row: dict) -> Cart:
    return Cart(
        id=row['id'],
        user_id=row['user_id'],
        tenant_id=row['tenant_id'],
        items=[CartItem(**item) for item in (row.get('items') or [])],
        updated_at=row.get('updated_at'),
    )


class CartRepository(BaseRepository):

    def find(self, user_id: str, tenant_id: str, conn=None) -> Optional[Cart]:
        row = self._fetch_one("""
            SELECT id, user_id, tenant_id, items, updated_at
            FROM carts
            WHERE user_id = %s AND tenant_id = %s
        """, (user_id, tenant_id), conn=conn)
        return row_to_cart(row) if row else None

    def save(self, cart: Cart) -> Cart:
        """
        Upsert the cart's items. Concurrent writers: last write wins.
        """
        row = self._write_returning("""
            INSERT INTO carts (id, user_id, tenant_id, items, created_at, updated_at)
            VALUES (%s, %s, %s, %s, NOW(), NOW())
            ON CONFLICT (user_id, tenant_id)
            DO UPDATE SET items = EXCLUDED.items, updated_at = NOW()
            RETURNING id, user_id, tenant_id, items, updated_at
        """, (
            cart.id or new_id(), cart.user_id, cart.tenant_id,
            Json([item.to_storage() for item in cart.items])
        ))
        return row_to_cart(row)

    def delete(self, user_id: str, tenant_id: str, conn=None) -> int:
        return self._write(
            "DELETE FROM carts WHERE user_id = %s AND tenant_id = %s",
            (user_id, tenant_id),
            conn=conn
        )
