"""
Tenant Repository - Data Access Layer for Tenants

Tenants, their branding row and the lookups used for storefront resolution.

Author: TM3
Date: 2025-11-03
"""
from typing import List, Optional, Tuple, Dict, Any

from psycopg2.extras import Json

from budstack.domain.tenant import Tenant, TenantBranding
from budstack.repositories.base import BaseRepository, new_id, build_set_clause


TENANT_SELECT = """
    SELECT
        t.id, t.business_name, t.subdomain, t.custom_domain, t.nft_token_id,
        t.country_code, t.is_active, t.template_id, t.active_tenant_template_id,
        t.settings, t.drgreen_api_key, t.drgreen_secret_key,
        t.created_at, t.updated_at,
        tpl.slug as template_slug,
        tpl.name as template_name,
        b.id as branding_id,
        b.primary_color, b.secondary_color, b.accent_color, b.font_family,
        b.logo_url
    FROM tenants t
    LEFT JOIN templates tpl ON t.template_id = tpl.id
    LEFT JOIN tenant_branding b ON b.tenant_id = t.id
"""

UPDATABLE_COLUMNS = (
    'business_name', 'custom_domain', 'country_code', 'nft_token_id', 'is_active',
)

BRANDING_COLUMNS = (
    'primary_color', 'secondary_color', 'accent_color', 'font_family', 'logo_url',
)


def row_to_tenant(row: Dict[str, Any]) -> Tenant:
    data = dict(row)
    branding_id = data.pop('branding_id', None)
    branding_fields = {key: data.pop(key, None) for key in BRANDING_COLUMNS}

    if branding_id:
        data['branding'] = TenantBranding(id=branding_id, tenant_id=data['id'], **branding_fields)

    data['settings'] = data.get('settings') or {}
    return Tenant(**data)


class TenantRepository(BaseRepository):
    """
    Repository for tenant data access

    Returns Tenant domain models with branding and base template info.
    """

    def find_by_id(self, tenant_id: str, conn=None) -> Optional[Tenant]:
        row = self._fetch_one(TENANT_SELECT + " WHERE t.id = %s", (tenant_id,), conn=conn)
        return row_to_tenant(row) if row else None

    def find_by_subdomain(self, subdomain: str, active_only: bool = False) -> Optional[Tenant]:
        query = TENANT_SELECT + " WHERE t.subdomain = %s"
        if active_only:
            query += " AND t.is_active = TRUE"
        row = self._fetch_one(query, (subdomain,))
        return row_to_tenant(row) if row else None

    def find_by_custom_domain(self, domain: str, active_only: bool = True) -> Optional[Tenant]:
        query = TENANT_SELECT + " WHERE LOWER(t.custom_domain) = LOWER(%s)"
        if active_only:
            query += " AND t.is_active = TRUE"
        row = self._fetch_one(query, (domain,))
        return row_to_tenant(row) if row else None

    def find_all(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        country_code: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Tenant], int]:
        """
        Find tenants with filters (super admin list)

        Args:
            search: Case-insensitive match on business name or subdomain
            status: 'active' or 'inactive'
            country_code: Exact country filter
            limit / offset: Pagination

        Returns:
            Tuple of (tenants with user/product/order counts, total count)
        """
        conditions = []
        params: List[Any] = []

        if search:
            conditions.append("(t.business_name ILIKE %s OR t.subdomain ILIKE %s)")
            search_param = f"%{search}%"
            params.extend([search_param, search_param])

        if status == 'active':
            conditions.append("t.is_active = TRUE")
        elif status == 'inactive':
            conditions.append("t.is_active = FALSE")

        if country_code:
            conditions.append("t.country_code = %s")
            params.append(country_code.upper())

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) as total FROM tenants t WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT
                    q.*,
                    (SELECT COUNT(*) FROM users u WHERE u.tenant_id = q.id) as user_count,
                    (SELECT COUNT(*) FROM products p WHERE p.tenant_id = q.id) as product_count,
                    (SELECT COUNT(*) FROM orders o WHERE o.tenant_id = q.id) as order_count,
                    (SELECT u.email FROM users u
                        WHERE u.tenant_id = q.id AND u.role = 'TENANT_ADMIN'
                        ORDER BY u.created_at LIMIT 1) as admin_email
                FROM ({TENANT_SELECT} WHERE {where_clause}) q
                ORDER BY q.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()

        return [row_to_tenant(row) for row in rows], total

    def find_by_ids(self, tenant_ids: List[str]) -> List[Tenant]:
        if not tenant_ids:
            return []
        rows = self._fetch_all(TENANT_SELECT + " WHERE t.id = ANY(%s)", (list(tenant_ids),))
        return [row_to_tenant(row) for row in rows]

    def subdomain_exists(self, subdomain: str, conn=None) -> bool:
        row = self._fetch_one("SELECT 1 as found FROM tenants WHERE subdomain = %s", (subdomain,), conn=conn)
        return row is not None

    def create(
        self,
        business_name: str,
        subdomain: str,
        country_code: str,
        nft_token_id: Optional[str] = None,
        custom_domain: Optional[str] = None,
        template_id: Optional[str] = None,
        is_active: bool = False,
        settings: Optional[Dict[str, Any]] = None,
        conn=None
    ) -> Tenant:
        row = self._write_returning("""
            INSERT INTO tenants (
                id, business_name, subdomain, custom_domain, nft_token_id,
                country_code, is_active, template_id, settings, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
            RETURNING id, business_name, subdomain, custom_domain, nft_token_id,
                      country_code, is_active, template_id, active_tenant_template_id,
                      settings, created_at, updated_at
        """, (
            new_id(), business_name, subdomain, custom_domain, nft_token_id,
            country_code, is_active, template_id, Json(settings or {})
        ), conn=conn)
        return Tenant(**row)

    def create_branding(self, tenant_id: str, branding: Dict[str, str], conn=None) -> TenantBranding:
        row = self._write_returning("""
            INSERT INTO tenant_branding (
                id, tenant_id, primary_color, secondary_color, accent_color, font_family,
                created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
            RETURNING id, tenant_id, primary_color, secondary_color, accent_color, font_family, logo_url
        """, (
            new_id(), tenant_id,
            branding['primary_color'], branding['secondary_color'],
            branding['accent_color'], branding['font_family']
        ), conn=conn)
        return TenantBranding(**row)

    def update(self, tenant_id: str, fields: Dict[str, Any], conn=None) -> Optional[Tenant]:
        set_clause, params = build_set_clause(fields, UPDATABLE_COLUMNS)
        if 'settings' in fields:
            set_clause = ", ".join(filter(None, [set_clause, "settings = %s"]))
            params.append(Json(fields['settings']))
        if set_clause:
            self._write(
                f"UPDATE tenants SET {set_clause}, updated_at = NOW() WHERE id = %s",
                params + [tenant_id],
                conn=conn
            )
        return self.find_by_id(tenant_id, conn=conn)

    def set_active(self, tenant_id: str, is_active: bool) -> bool:
        return self._write(
            "UPDATE tenants SET is_active = %s, updated_at = NOW() WHERE id = %s",
            (is_active, tenant_id)
        ) > 0

    def bulk_set_active(self, tenant_ids: List[str], is_active: bool) -> List[str]:
        """Ids whose status actually changed; tenants already in that state are untouched"""
        with self._cursor(commit=True) as cursor:
            cursor.execute("""
                UPDATE tenants SET is_active = %s, updated_at = NOW()
                WHERE id = ANY(%s) AND is_active <> %s
                RETURNING id
            """, (is_active, list(tenant_ids), is_active))
            return [row['id'] for row in cursor.fetchall()]

    def update_branding(self, tenant_id: str, fields: Dict[str, Any]) -> Optional[TenantBranding]:
        set_clause, params = build_set_clause(fields, BRANDING_COLUMNS)
        if not set_clause:
            return None
        row = self._write_returning(f"""
            UPDATE tenant_branding SET {set_clause}, updated_at = NOW()
            WHERE tenant_id = %s
            RETURNING id, tenant_id, primary_color, secondary_color, accent_color, font_family, logo_url
        """, params + [tenant_id])
        return TenantBranding(**row) if row else None

    def set_template(self, tenant_id: str, template_id: str, settings: Dict[str, Any], conn=None) -> int:
        return self._write("""
            UPDATE tenants SET template_id = %s, settings = %s, updated_at = NOW()
            WHERE id = %s
        """, (template_id, Json(settings), tenant_id), conn=conn)

    def set_active_tenant_template(self, tenant_id: str, tenant_template_id: Optional[str], conn=None) -> int:
        return self._write("""
            UPDATE tenants SET active_tenant_template_id = %s, updated_at = NOW()
            WHERE id = %s
        """, (tenant_template_id, tenant_id), conn=conn)

    def set_drgreen_credentials(self, tenant_id: str, api_key: Optional[str], encrypted_secret: Optional[str]) -> int:
        return self._write("""
            UPDATE tenants
            SET drgreen_api_key = COALESCE(%s, drgreen_api_key),
                drgreen_secret_key = COALESCE(%s, drgreen_secret_key),
                updated_at = NOW()
            WHERE id = %s
        """, (api_key, encrypted_secret, tenant_id))

    def count_using_template(self, template_id: str) -> int:
        row = self._fetch_one("SELECT COUNT(*) as total FROM tenants WHERE template_id = %s", (template_id,))
        return row['total'] if row else 0
