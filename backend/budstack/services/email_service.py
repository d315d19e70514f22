"""
Email Service - transactional e-mail through the Resend HTTP API

Disabled (logs and returns False) when RESEND_API_KEY is not configured, so
local development and tests never need a mail provider.

Author: TM3
Date: 2025-11-09
"""
import logging
from html import escape
from typing import Optional, Dict, Any

import httpx

from budstack.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.RESEND_FROM
        self.api_url = (api_url or settings.RESEND_API_URL).rstrip('/')
        self.timeout = timeout or settings.EMAIL_TIMEOUT_SECONDS

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """
        Send one message. Returns False instead of raising: e-mail is a
        side effect and callers run it after the response.
        """
        if not self.is_enabled:
            logger.info(f"E-mail not configured, skipping '{subject}' to {to}")
            return False

        payload: Dict[str, Any] = {
            'from': self.sender,
            'to': [to],
            'subject': subject,
            'html': html,
        }
        if text:
            payload['text'] = text

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    f"{self.api_url}/emails",
                    json=payload,
                    headers={'Authorization': f"Bearer {self.api_key}"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send e-mail '{subject}' to {to}: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"E-mail '{subject}' to {to} rejected: {response.status_code} {response.text[:200]}")
            return False

        logger.info(f"Sent e-mail '{subject}' to {to}")
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def send_tenant_welcome(self, to: str, business_name: str, subdomain: str, store_url: str) -> bool:
        name, sub, url = escape(business_name), escape(subdomain), escape(store_url)
        subject = f"Welcome to BudStack, {business_name}"
        html = f"""
            <h1>Welcome to BudStack</h1>
            <p>Thanks for applying, <strong>{name}</strong>.</p>
            <p>Your store <strong>{sub}</strong> is pending review. We'll let you know
            as soon as it's approved; it will then be available at
            <a href="{url}">{url}</a>.</p>
        """
        text = (
            f"Thanks for applying, {business_name}. Your store {subdomain} is pending review "
            f"and will be available at {store_url} once approved."
        )
        return self.send(to, subject, html, text)

    def send_order_confirmation(self, to: str, business_name: str, order_number: str, total: float, currency: str) -> bool:
        subject = f"{business_name}: order {order_number} received"
        html = f"""
            <h1>Thank you for your order</h1>
            <p>{escape(business_name)} received order <strong>{escape(order_number)}</strong>.</p>
            <p>Total: <strong>{total:.2f} {escape(currency)}</strong></p>
        """
        text = f"We received order {order_number}. Total: {total:.2f} {currency}"
        return self.send(to, subject, html, text)

    def send_password_reset(self, to: str, new_password: str, login_url: str) -> bool:
        url = escape(login_url)
        subject = "Your BudStack password was reset"
        html = f"""
            <p>Your password was reset by an administrator.</p>
            <p>Temporary password: <code>{escape(new_password)}</code></p>
            <p>Log in at <a href="{url}">{url}</a> and change it.</p>
        """
        text = f"Your password was reset. Temporary password: {new_password}. Log in at {login_url}"
        return self.send(to, subject, html, text)

    def send_password_reset_link(self, to: str, reset_url: str, expires_minutes: int) -> bool:
        url = escape(reset_url)
        subject = "Reset your BudStack password"
        html = f"""
            <p>Someone asked to reset the password of this account.</p>
            <p><a href="{url}">Choose a new password</a>. The link expires in {expires_minutes} minutes.</p>
            <p>If this wasn't you, ignore this e-mail; your password stays the same.</p>
        """
        text = f"Reset your password at {reset_url} (expires in {expires_minutes} minutes)."
        return self.send(to, subject, html, text)
