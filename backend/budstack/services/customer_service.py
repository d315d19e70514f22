"""
Customer Service - a tenant admin's view of their patients

Every lookup is scoped to the admin's tenant and to PATIENT accounts, so
an admin can neither see nor edit staff or other stores' users.

Author: TM3
Date: 2025-11-21
"""
import logging
from typing import Optional, List, Dict, Any, Mapping, Tuple

from fastapi import BackgroundTasks

from budstack.core.auth import TokenUser
from budstack.core.exceptions import NotFoundError
from budstack.domain.audit import AuditActions
from budstack.domain.user import User, CustomerUpdate
from budstack.repositories.order_repository import OrderRepository
from budstack.repositories.user_repository import UserRepository
from budstack.services.audit_service import AuditService
from budstack.services.auth_service import AuthService

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10


class CustomerService:

    def __init__(
        self,
        repository: Optional[UserRepository] = None,
        order_repository: Optional[OrderRepository] = None,
        audit_service: Optional[AuditService] = None,
        auth_service: Optional[AuthService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.repository = repository or UserRepository()
        self.order_repository = order_repository or OrderRepository()
        self.audit_service = audit_service or AuditService()
        self.auth_service = auth_service or AuthService(background_tasks=background_tasks)

    def list(
        self,
        tenant_id: str,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[User], int]:
        return self.repository.find_customers(tenant_id, search=search, limit=limit, offset=offset)

    def _require(self, customer_id: str, tenant_id: str) -> User:
        customer = self.repository.find_customer(customer_id, tenant_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get(self, customer_id: str, tenant_id: str) -> Dict[str, Any]:
        """Customer profile with their latest orders"""
        customer = self._require(customer_id, tenant_id)
        orders, _ = self.order_repository.find_all(
            tenant_id=tenant_id, user_id=customer_id, limit=RECENT_ORDERS_LIMIT, offset=0
        )
        return {
            **customer.to_dict(),
            'recent_orders': [order.to_dict() for order in orders],
        }

    def update(
        self,
        customer_id: str,
        tenant_id: str,
        data: CustomerUpdate,
        user: TokenUser,
        headers: Mapping[str, str] = None
    ) -> User:
        self._require(customer_id, tenant_id)
        fields = data.model_dump(exclude_none=True)

        customer = self.repository.update_customer(customer_id, tenant_id, fields)
        if fields.get('is_active') is False:
            logger.info(f"Customer {customer_id} of tenant {tenant_id} disabled by {user.email}")

        self.audit_service.log(
            AuditActions.CUSTOMER_UPDATED, 'User', customer_id,
            user=user, tenant_id=tenant_id,
            metadata={'fields': sorted(fields.keys())},
            headers=headers,
        )
        return customer

    def send_password_reset(
        self,
        customer_id: str,
        tenant_id: str,
        user: TokenUser,
        headers: Mapping[str, str] = None
    ) -> Dict[str, str]:
        """E-mail the customer a reset link; the admin never sees a password"""
        customer = self._require(customer_id, tenant_id)
        self.auth_service.send_reset_link(customer)

        self.audit_service.log(
            AuditActions.USER_PASSWORD_RESET_REQUESTED, 'User', customer_id,
            user=user, tenant_id=tenant_id,
            metadata={'email': customer.email, 'source': 'tenant_admin'},
            headers=headers,
        )
        return {'email': customer.email}
