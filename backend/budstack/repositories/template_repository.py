"""
Template Repository - base templates and tenant template copies

Author: TM3
Date: 2025-11-10
"""
from typing import List, Optional, Dict, Any
from datetime import datetime

from psycopg2.extras import Json

from budstack.domain.template import Template, TenantTemplate
from budstack.repositories.base import BaseRepository, new_id, build_set_clause


TEMPLATE_COLUMNS = """
    id, name, slug, description, category, version, author, tags, preview_url,
    thumbnail_url, github_url, config, defaults, is_active, usage_count,
    created_at, updated_at
"""

TENANT_TEMPLATE_COLUMNS = """
    tt.id, tt.tenant_id, tt.base_template_id, tt.template_name, tt.design_system,
    tt.page_content, tt.navigation, tt.footer, tt.custom_css, tt.logo_url,
    tt.hero_image_url, tt.favicon_url, tt.is_draft, tt.expires_at, tt.is_active,
    tt.created_at, tt.updated_at, t.slug as base_template_slug
"""

TENANT_TEMPLATE_JSON_COLUMNS = ('design_system', 'page_content', 'navigation', 'footer')
TENANT_TEMPLATE_TEXT_COLUMNS = ('template_name', 'custom_css', 'logo_url', 'hero_image_url', 'favicon_url')


def _template(row: Optional[dict]) -> Optional[Template]:
    if not row:
        return None
    data = dict(row)
    for key in ('config', 'defaults'):
        data[key] = data.get(key) or {}
    data['tags'] = data.get('tags') or []
    return Template(**data)


def _tenant_template(row: Optional[dict]) -> Optional[TenantTemplate]:
    if not row:
        return None
    data = dict(row)
    for key in TENANT_TEMPLATE_JSON_COLUMNS:
        data[key] = data.get(key) or {}
    return TenantTemplate(**data)


class TemplateRepository(BaseRepository):

    # ------------------------------------------------------------------
    # Base templates
    # ------------------------------------------------------------------

    def find_by_id(self, template_id: str, conn=None) -> Optional[Template]:
        return _template(self._fetch_one(
            f"SELECT {TEMPLATE_COLUMNS} FROM templates WHERE id = %s", (template_id,), conn=conn
        ))

    def find_by_slug(self, slug: str, conn=None) -> Optional[Template]:
        return _template(self._fetch_one(
            f"SELECT {TEMPLATE_COLUMNS} FROM templates WHERE slug = %s", (slug,), conn=conn
        ))

    def find_all(self, active_only: bool = False) -> List[Template]:
        query = f"SELECT {TEMPLATE_COLUMNS} FROM templates"
        if active_only:
            query += " WHERE is_active = TRUE"
        query += " ORDER BY usage_count DESC, name"
        return [_template(row) for row in self._fetch_all(query)]

    def create(self, data: Dict[str, Any], conn=None) -> Template:
        row = self._write_returning(f"""
            INSERT INTO templates (
                id, name, slug, description, category, version, author, tags, preview_url,
                thumbnail_url, github_url, config, defaults, is_active, usage_count,
                created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 0, NOW(), NOW())
            RETURNING {TEMPLATE_COLUMNS}
        """, (
            new_id(), data['name'], data['slug'], data.get('description'), data.get('category'),
            data.get('version', '1.0.0'), data.get('author'), Json(data.get('tags') or []),
            data.get('preview_url'), data.get('thumbnail_url'), data.get('github_url'),
            Json(data.get('config') or {}), Json(data.get('defaults') or {}),
            data.get('is_active', True)
        ), conn=conn)
        return _template(row)

    def update(self, template_id: str, fields: Dict[str, Any]) -> Optional[Template]:
        set_clause, params = build_set_clause(fields, ('name', 'description', 'is_active', 'preview_url'))
        if not set_clause:
            return self.find_by_id(template_id)
        return _template(self._write_returning(f"""
            UPDATE templates SET {set_clause}, updated_at = NOW()
            WHERE id = %s
            RETURNING {TEMPLATE_COLUMNS}
        """, params + [template_id]))

    def delete(self, template_id: str) -> bool:
        return self._write("DELETE FROM templates WHERE id = %s", (template_id,)) > 0

    def increment_usage(self, template_id: str, conn=None) -> int:
        return self._write(
            "UPDATE templates SET usage_count = usage_count + 1 WHERE id = %s",
            (template_id,),
            conn=conn
        )

    # ------------------------------------------------------------------
    # Tenant templates
    # ------------------------------------------------------------------

    def find_tenant_template(self, tenant_template_id: str, conn=None) -> Optional[TenantTemplate]:
        return _tenant_template(self._fetch_one(f"""
            SELECT {TENANT_TEMPLATE_COLUMNS}
            FROM tenant_templates tt
            JOIN templates t ON t.id = tt.base_template_id
            WHERE tt.id = %s
        """, (tenant_template_id,), conn=conn))

    def find_tenant_templates(self, tenant_id: str) -> List[TenantTemplate]:
        rows = self._fetch_all(f"""
            SELECT {TENANT_TEMPLATE_COLUMNS}
            FROM tenant_templates tt
            JOIN templates t ON t.id = tt.base_template_id
            WHERE tt.tenant_id = %s
            ORDER BY tt.is_active DESC, tt.updated_at DESC
        """, (tenant_id,))
        return [_tenant_template(row) for row in rows]

    def create_tenant_template(
        self,
        tenant_id: str,
        base_template_id: str,
        template_name: str,
        content: Dict[str, Any],
        is_draft: bool,
        expires_at: Optional[datetime],
        is_active: bool,
        conn=None
    ) -> TenantTemplate:
        new_tenant_template_id = new_id()
        self._write("""
            INSERT INTO tenant_templates (
                id, tenant_id, base_template_id, template_name, design_system, page_content,
                navigation, footer, custom_css, logo_url, hero_image_url, favicon_url,
                is_draft, expires_at, is_active, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
        """, (
            new_tenant_template_id, tenant_id, base_template_id, template_name,
            Json(content.get('design_system') or {}), Json(content.get('page_content') or {}),
            Json(content.get('navigation') or {}), Json(content.get('footer') or {}),
            content.get('custom_css'), content.get('logo_url'), content.get('hero_image_url'),
            content.get('favicon_url'), is_draft, expires_at, is_active
        ), conn=conn)
        return self.find_tenant_template(new_tenant_template_id, conn=conn)

    def deactivate_tenant_templates(self, tenant_id: str, conn=None) -> int:
        return self._write(
            "UPDATE tenant_templates SET is_active = FALSE WHERE tenant_id = %s AND is_active = TRUE",
            (tenant_id,),
            conn=conn
        )

    def activate_tenant_template(self, tenant_template_id: str, conn=None) -> int:
        """Publishing also clears draft state and expiry"""
        return self._write("""
            UPDATE tenant_templates
            SET is_active = TRUE, is_draft = FALSE, expires_at = NULL, updated_at = NOW()
            WHERE id = %s
        """, (tenant_template_id,), conn=conn)

    def update_tenant_template(self, tenant_template_id: str, fields: Dict[str, Any]) -> Optional[TenantTemplate]:
        set_clause, params = build_set_clause(fields, TENANT_TEMPLATE_TEXT_COLUMNS)
        json_assignments = []
        for column in TENANT_TEMPLATE_JSON_COLUMNS:
            if column in fields:
                json_assignments.append(f"{column} = %s")
                params.append(Json(fields[column]))

        set_clause = ", ".join(filter(None, [set_clause] + json_assignments))
        if set_clause:
            self._write(
                f"UPDATE tenant_templates SET {set_clause}, updated_at = NOW() WHERE id = %s",
                params + [tenant_template_id]
            )
        return self.find_tenant_template(tenant_template_id)

    def delete_tenant_template(self, tenant_template_id: str) -> bool:
        return self._write("DELETE FROM tenant_templates WHERE id = %s", (tenant_template_id,)) > 0

    def delete_expired_drafts(self, now: datetime) -> int:
        return self._write("""
            DELETE FROM tenant_templates
            WHERE is_draft = TRUE AND is_active = FALSE AND expires_at IS NOT NULL AND expires_at < %s
        """, (now,))
