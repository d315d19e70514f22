"""
Webhook Repository - tenant webhooks and their delivery log

Author: TM3
Date: 2025-11-12
"""
from typing import List, Optional, Tuple, Dict, Any

from psycopg2.extras import Json

from budstack.domain.webhook import Webhook, WebhookDelivery
from budstack.repositories.base import BaseRepository, new_id, build_set_clause


WEBHOOK_COLUMNS = "id, tenant_id, url, events, secret, description, is_active, created_at, updated_at"
DELIVERY_COLUMNS = "id, webhook_id, event, payload, status_code, response, success, attempts, created_at"


class WebhookRepository(BaseRepository):

    def find_by_id(self, webhook_id: str, tenant_id: Optional[str] = None) -> Optional[Webhook]:
        query = f"SELECT {WEBHOOK_COLUMNS} FROM webhooks WHERE id = %s"
        params: List[Any] = [webhook_id]
        if tenant_id:
            query += " AND tenant_id = %s"
            params.append(tenant_id)
        row = self._fetch_one(query, params)
        return Webhook(**row) if row else None

    def find_by_tenant(self, tenant_id: str) -> List[Webhook]:
        rows = self._fetch_all(f"""
            SELECT {WEBHOOK_COLUMNS},
                (SELECT COUNT(*) FROM webhook_deliveries d WHERE d.webhook_id = w.id) as delivery_count
            FROM webhooks w
            WHERE tenant_id = %s
            ORDER BY created_at DESC
        """, (tenant_id,))
        return [Webhook(**row) for row in rows]

    def find_subscribed(self, tenant_id: str, event: str) -> List[Webhook]:
        """Active webhooks of the tenant whose events list contains event"""
        rows = self._fetch_all(f"""
            SELECT {WEBHOOK_COLUMNS}
            FROM webhooks
            WHERE tenant_id = %s AND is_active = TRUE AND events ? %s
        """, (tenant_id, event))
        return [Webhook(**row) for row in rows]

    def create(self, tenant_id: str, url: str, events: List[str], secret: str, description: Optional[str] = None) -> Webhook:
        row = self._write_returning(f"""
            INSERT INTO webhooks (id, tenant_id, url, events, secret, description, is_active, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, TRUE, NOW(), NOW())
            RETURNING {WEBHOOK_COLUMNS}
        """, (new_id(), tenant_id, url, Json(events), secret, description))
        return Webhook(**row)

    def update(self, webhook_id: str, tenant_id: str, fields: Dict[str, Any]) -> Optional[Webhook]:
        set_clause, params = build_set_clause(fields, ('url', 'description', 'is_active'))
        if 'events' in fields:
            set_clause = ", ".join(filter(None, [set_clause, "events = %s"]))
            params.append(Json(fields['events']))
        if not set_clause:
            return self.find_by_id(webhook_id, tenant_id)

        row = self._write_returning(f"""
            UPDATE webhooks SET {set_clause}, updated_at = NOW()
            WHERE id = %s AND tenant_id = %s
            RETURNING {WEBHOOK_COLUMNS}
        """, params + [webhook_id, tenant_id])
        return Webhook(**row) if row else None

    def delete(self, webhook_id: str, tenant_id: str) -> bool:
        return self._write(
            "DELETE FROM webhooks WHERE id = %s AND tenant_id = %s",
            (webhook_id, tenant_id)
        ) > 0

    def record_delivery(
        self,
        webhook_id: str,
        event: str,
        payload: Dict[str, Any],
        status_code: Optional[int],
        response: Optional[str],
        success: bool,
        attempts: int
    ) -> None:
        self._write("""
            INSERT INTO webhook_deliveries (
                id, webhook_id, event, payload, status_code, response, success, attempts, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, NOW())
        """, (new_id(), webhook_id, event, Json(payload), status_code, response, success, attempts))

    def find_deliveries(self, webhook_id: str, limit: int = 50, offset: int = 0) -> Tuple[List[WebhookDelivery], int]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) as total FROM webhook_deliveries WHERE webhook_id = %s",
                (webhook_id,)
            )
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {DELIVERY_COLUMNS}
                FROM webhook_deliveries
                WHERE webhook_id = %s
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, (webhook_id, limit, offset))
            rows = cursor.fetchall()

        return [WebhookDelivery(**row) for row in rows], total
