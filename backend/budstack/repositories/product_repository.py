"""
Product Repository - Data Access Layer for Products

All catalogue queries are scoped by tenant.

Author: TM3
Date: 2025-11-05
"""
from typing import List, Optional, Tuple, Dict, Any

from budstack.domain.product import Product
from budstack.repositories.base import BaseRepository, new_id, build_set_clause


PRODUCT_COLUMNS = """
    id, tenant_id, external_id, name, slug, description, category, strain_type,
    thc_content, cbd_content, price, currency, stock_quantity, image_url,
    is_active, sort_order, created_at, updated_at
"""

UPDATABLE_COLUMNS = (
    'name', 'description', 'category', 'strain_type', 'thc_content', 'cbd_content',
    'price', 'currency', 'stock_quantity', 'image_url', 'is_active',
)


class ProductRepository(BaseRepository):
    """
    Repository for Product data access
    """

    def find_by_id(self, product_id: str, tenant_id: Optional[str] = None) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Product ID
            tenant_id: When given, the product must belong to this tenant
        """
        query = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = %s"
        params: List[Any] = [product_id]
        if tenant_id:
            query += " AND tenant_id = %s"
            params.append(tenant_id)

        row = self._fetch_one(query, params)
        return Product(**row) if row else None

    def find_by_slug(self, tenant_id: str, slug: str) -> Optional[Product]:
        row = self._fetch_one(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE tenant_id = %s AND slug = %s",
            (tenant_id, slug)
        )
        return Product(**row) if row else None

    def find_all(
        self,
        tenant_id: str,
        active_only: bool = False,
        search: Optional[str] = None,
        strain_type: Optional[str] = None,
        category: Optional[str] = None,
        in_stock: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products of one tenant with filters

        Returns:
            Tuple of (products ordered by sort_order then name, total count)
        """
        conditions = ["tenant_id = %s"]
        params: List[Any] = [tenant_id]

        if active_only:
            conditions.append("is_active = TRUE")

        if search:
            conditions.append("(name ILIKE %s OR description ILIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        if strain_type:
            conditions.append("strain_type = %s")
            params.append(strain_type.upper())

        if category:
            conditions.append("category = %s")
            params.append(category)

        if in_stock is True:
            conditions.append("stock_quantity > 0")
        elif in_stock is False:
            conditions.append("stock_quantity = 0")

        where_clause = " AND ".join(conditions)

        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) as total FROM products WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE {where_clause}
                ORDER BY sort_order, name
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

        return [Product(**row) for row in rows], total

    def find_similar(self, product: Product, limit: int = 4) -> List[Product]:
        """Same strain type, available, excluding the product itself"""
        rows = self._fetch_all(f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE tenant_id = %s
              AND strain_type = %s
              AND id <> %s
              AND is_active = TRUE
              AND stock_quantity > 0
            ORDER BY sort_order, name
            LIMIT %s
        """, (product.tenant_id, product.strain_type, product.id, limit))
        return [Product(**row) for row in rows]

    def find_by_external_ids(self, tenant_id: str, external_ids: List[str]) -> Dict[str, Product]:
        if not external_ids:
            return {}
        rows = self._fetch_all(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE tenant_id = %s AND external_id = ANY(%s)",
            (tenant_id, list(external_ids))
        )
        return {row['external_id']: Product(**row) for row in rows}

    def slug_exists(self, tenant_id: str, slug: str) -> bool:
        return self._fetch_one(
            "SELECT 1 as found FROM products WHERE tenant_id = %s AND slug = %s",
            (tenant_id, slug)
        ) is not None

    def create(self, tenant_id: str, data: Dict[str, Any]) -> Product:
        row = self._write_returning(f"""
            INSERT INTO products (
                id, tenant_id, external_id, name, slug, description, category, strain_type,
                thc_content, cbd_content, price, currency, stock_quantity, image_url,
                is_active, sort_order, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                COALESCE((SELECT MAX(sort_order) + 1 FROM products WHERE tenant_id = %s), 0),
                NOW(), NOW()
            )
            RETURNING {PRODUCT_COLUMNS}
        """, (
            new_id(), tenant_id, data.get('external_id'), data['name'], data['slug'],
            data.get('description'), data.get('category'), data.get('strain_type', 'HYBRID'),
            data.get('thc_content'), data.get('cbd_content'), data['price'],
            data.get('currency', 'EUR'), data.get('stock_quantity', 0), data.get('image_url'),
            data.get('is_active', True), tenant_id
        ))
        return Product(**row)

    def update(self, product_id: str, tenant_id: str, fields: Dict[str, Any]) -> Optional[Product]:
        set_clause, params = build_set_clause(fields, UPDATABLE_COLUMNS)
        if not set_clause:
            return self.find_by_id(product_id, tenant_id)

        row = self._write_returning(f"""
            UPDATE products SET {set_clause}, updated_at = NOW()
            WHERE id = %s AND tenant_id = %s
            RETURNING {PRODUCT_COLUMNS}
        """, params + [product_id, tenant_id])
        return Product(**row) if row else None

    def delete(self, product_id: str, tenant_id: str) -> bool:
        return self._write(
            "DELETE FROM products WHERE id = %s AND tenant_id = %s",
            (product_id, tenant_id)
        ) > 0

    def bulk_set_active(self, tenant_id: str, product_ids: List[str], is_active: bool) -> int:
        return self._write("""
            UPDATE products SET is_active = %s, updated_at = NOW()
            WHERE tenant_id = %s AND id = ANY(%s)
        """, (is_active, tenant_id, list(product_ids)))

    def bulk_delete(self, tenant_id: str, product_ids: List[str]) -> int:
        return self._write(
            "DELETE FROM products WHERE tenant_id = %s AND id = ANY(%s)",
            (tenant_id, list(product_ids))
        )

    def reorder(self, tenant_id: str, product_ids: List[str]) -> int:
        """sort_order follows the position in product_ids"""
        updated = 0
        with self._cursor(commit=True) as cursor:
            for position, product_id in enumerate(product_ids):
                cursor.execute("""
                    UPDATE products SET sort_order = %s, updated_at = NOW()
                    WHERE id = %s AND tenant_id = %s
                """, (position, product_id, tenant_id))
                updated += cursor.rowcount
        return updated
