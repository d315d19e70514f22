"""
Audit Log Repository

Author: TM3
Date: 2025-11-08
"""
from typing import List, Optional, Tuple, Dict, Any

from psycopg2.extras import Json

from budstack.domain.audit import AuditLog
from budstack.repositories.base import BaseRepository, new_id


AUDIT_COLUMNS = """
    id, action, entity_type, entity_id, user_id, user_email, tenant_id,
    metadata, ip_address, user_agent, created_at
"""


class AuditRepository(BaseRepository):

    def create(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        tenant_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> AuditLog:
        row = self._write_returning(f"""
            INSERT INTO audit_logs (
                id, action, entity_type, entity_id, user_id, user_email, tenant_id,
                metadata, ip_address, user_agent, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
            RETURNING {AUDIT_COLUMNS}
        """, (
            new_id(), action, entity_type, entity_id, user_id, user_email, tenant_id,
            Json(metadata) if metadata is not None else None, ip_address, user_agent
        ))
        return AuditLog(**row)

    def find_all(
        self,
        tenant_id: Optional[str] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[AuditLog], int]:
        """
        Audit entries newest first

        Args:
            tenant_id: Restrict to one tenant (tenant admin view)
            action: Exact action filter (e.g. 'tenant.activated')
            entity_type: Exact entity filter (e.g. 'Tenant')
        """
        conditions = []
        params: List[Any] = []

        if tenant_id:
            conditions.append("tenant_id = %s")
            params.append(tenant_id)
        if action:
            conditions.append("action = %s")
            params.append(action)
        if entity_type:
            conditions.append("entity_type = %s")
            params.append(entity_type)

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) as total FROM audit_logs WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {AUDIT_COLUMNS}
                FROM audit_logs
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

        return [AuditLog(**row) for row in rows], total
