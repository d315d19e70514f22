"""
Audit Service - records who did what

Writing an audit entry must never break the request that triggered it:
failures are logged and swallowed here, and only here.

Author: TM3
Date: 2025-11-08
"""
import logging
from typing import Optional, Dict, Any, Mapping, Tuple

from budstack.core.auth import TokenUser
from budstack.domain.audit import AuditLog
from budstack.repositories.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


def get_client_info(headers: Mapping[str, str]) -> Tuple[str, str]:
    """
    (ip_address, user_agent) from request headers

    IP precedence: first X-Forwarded-For hop, then X-Real-IP, else 'unknown'.
    """
    forwarded_for = headers.get('x-forwarded-for')
    if forwarded_for:
        ip_address = forwarded_for.split(',')[0].strip()
    else:
        ip_address = headers.get('x-real-ip') or 'unknown'

    user_agent = headers.get('user-agent') or 'unknown'
    return ip_address, user_agent


class AuditService:
    """
    Service for writing and listing audit log entries
    """

    def __init__(self, repository: Optional[AuditRepository] = None):
        self.repository = repository or AuditRepository()

    def log(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        user: Optional[TokenUser] = None,
        tenant_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Write an audit entry. Returns None instead of raising on failure.

        Args:
            action: AuditActions value
            entity_type: 'Tenant', 'Order', 'Product', ...
            entity_id: Id of the affected entity
            user: Acting user (from the token)
            tenant_id: Tenant the entity belongs to
            metadata: Extra JSON context (previous/new status, counts...)
            headers: Request headers, for IP and user agent
        """
        ip_address, user_agent = get_client_info(headers) if headers is not None else (None, None)

        try:
            return self.repository.create(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user.id if user else user_id,
                user_email=user.email if user else user_email,
                tenant_id=tenant_id if tenant_id is not None else (user.tenant_id if user else None),
                metadata=metadata,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        except Exception as e:
            logger.error(f"Failed to write audit log {action} for {entity_type} {entity_id}: {e}")
            return None

    def list(
        self,
        tenant_id: Optional[str] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        page: int = 1,
        limit: int = 50
    ):
        return self.repository.find_all(
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            limit=limit,
            offset=(page - 1) * limit,
        )
