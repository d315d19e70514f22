"""
Webhook Service - signed event delivery to tenant endpoints

Payload: {"event", "tenant_id", "data", "timestamp"}, POSTed as JSON with
X-Webhook-Signature = hex HMAC-SHA256 of the exact body, keyed by the
webhook's secret. Failed deliveries are retried with exponential backoff and
every attempt lands in webhook_deliveries.

Author: TM3
Date: 2025-11-12
"""
import hmac
import json
import asyncio
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

import httpx
from fastapi import BackgroundTasks
from fastapi.concurrency import run_in_threadpool

from budstack.core.config import settings
from budstack.core.exceptions import NotFoundError
from budstack.domain.webhook import Webhook, WebhookCreate, WebhookUpdate
from budstack.repositories.webhook_repository import WebhookRepository

logger = logging.getLogger(__name__)

USER_AGENT = "BudStack-Webhooks/1.0"
MAX_RESPONSE_LENGTH = 1000


def generate_secret() -> str:
    """32 random bytes, hex encoded"""
    return secrets.token_hex(32)


def sign_payload(body: str, secret: str) -> str:
    return hmac.new(secret.encode('utf-8'), body.encode('utf-8'), hashlib.sha256).hexdigest()


def verify_signature(body: str, signature: str, secret: str) -> bool:
    """Constant-time check of a received X-Webhook-Signature"""
    if not signature:
        return False
    return hmac.compare_digest(sign_payload(body, secret), signature)


def build_payload(event: str, tenant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'event': event,
        'tenant_id': tenant_id,
        'data': data,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


class WebhookService:
    """
    Manages tenant webhooks and delivers events to them
    """

    def __init__(
        self,
        repository: Optional[WebhookRepository] = None,
        max_attempts: int = settings.WEBHOOK_MAX_ATTEMPTS,
        timeout: float = settings.WEBHOOK_TIMEOUT_SECONDS
    ):
        self.repository = repository or WebhookRepository()
        self.max_attempts = max_attempts
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def deliver(self, webhook: Webhook, payload: Dict[str, Any]) -> bool:
        """
        POST payload to one webhook, retrying up to max_attempts.

        Backoff between attempts is 2^attempt seconds (2s, 4s, ...).
        Returns True once a 2xx is received.
        """
        body = json.dumps(payload, default=str)
        headers = {
            'Content-Type': 'application/json',
            'X-Webhook-Signature': sign_payload(body, webhook.secret),
            'X-Webhook-Event': payload['event'],
            'User-Agent': USER_AGENT,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_attempts + 1):
                status_code = None
                try:
                    response = await client.post(webhook.url, content=body, headers=headers)
                    status_code = response.status_code
                    response_text = response.text[:MAX_RESPONSE_LENGTH]
                    success = 200 <= status_code < 300
                except httpx.HTTPError as e:
                    response_text = str(e)[:MAX_RESPONSE_LENGTH]
                    success = False

                await self._record(webhook, payload, status_code, response_text, success, attempt)

                if success:
                    return True

                logger.warning(
                    f"Webhook {webhook.id} delivery of {payload['event']} failed "
                    f"(attempt {attempt}/{self.max_attempts}, status {status_code})"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(2 ** attempt)

        logger.error(f"Webhook {webhook.id} gave up on {payload['event']} after {self.max_attempts} attempts")
        return False

    async def _record(self, webhook: Webhook, payload, status_code, response_text, success, attempt):
        # psycopg2 blocks; keep it off the event loop
        try:
            await run_in_threadpool(
                self.repository.record_delivery,
                webhook_id=webhook.id,
                event=payload['event'],
                payload=payload,
                status_code=status_code,
                response=response_text,
                success=success,
                attempts=attempt,
            )
        except Exception as e:
            logger.error(f"Could not record delivery for webhook {webhook.id}: {e}")

    async def trigger(self, event: str, tenant_id: str, data: Dict[str, Any]) -> Dict[str, int]:
        """
        Deliver event to every active webhook of the tenant subscribed to it.

        Never raises; returns {"delivered": n, "failed": m}.
        """
        try:
            webhooks = await run_in_threadpool(self.repository.find_subscribed, tenant_id, event)
        except Exception as e:
            logger.error(f"Could not load webhooks for tenant {tenant_id}: {e}")
            return {'delivered': 0, 'failed': 0}

        if not webhooks:
            return {'delivered': 0, 'failed': 0}

        payload = build_payload(event, tenant_id, data)
        results = await asyncio.gather(
            *(self.deliver(webhook, payload) for webhook in webhooks),
            return_exceptions=True
        )

        delivered = sum(1 for result in results if result is True)
        return {'delivered': delivered, 'failed': len(results) - delivered}

    def dispatch(
        self,
        background_tasks: Optional[BackgroundTasks],
        event: str,
        tenant_id: Optional[str],
        data: Dict[str, Any]
    ) -> None:
        """Queue trigger() to run after the response is sent"""
        if not tenant_id:
            return
        if background_tasks is None:
            logger.debug(f"No background task queue, skipping webhook event {event}")
            return
        background_tasks.add_task(self.trigger, event, tenant_id, data)

    # ------------------------------------------------------------------
    # Management (tenant admin)
    # ------------------------------------------------------------------

    def list(self, tenant_id: str) -> List[Webhook]:
        return self.repository.find_by_tenant(tenant_id)

    def get(self, webhook_id: str, tenant_id: str) -> Webhook:
        webhook = self.repository.find_by_id(webhook_id, tenant_id)
        if not webhook:
            raise NotFoundError("Webhook not found")
        return webhook

    def create(self, tenant_id: str, data: WebhookCreate) -> Webhook:
        return self.repository.create(
            tenant_id=tenant_id,
            url=data.url,
            events=data.events,
            secret=generate_secret(),
            description=data.description,
        )

    def update(self, webhook_id: str, tenant_id: str, data: WebhookUpdate) -> Webhook:
        webhook = self.repository.update(webhook_id, tenant_id, data.model_dump(exclude_unset=True))
        if not webhook:
            raise NotFoundError("Webhook not found")
        return webhook

    def delete(self, webhook_id: str, tenant_id: str) -> None:
        if not self.repository.delete(webhook_id, tenant_id):
            raise NotFoundError("Webhook not found")

    def deliveries(self, webhook_id: str, tenant_id: str, page: int = 1, limit: int = 50):
        self.get(webhook_id, tenant_id)
        return self.repository.find_deliveries(webhook_id, limit=limit, offset=(page - 1) * limit)
