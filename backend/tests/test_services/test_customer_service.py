"""
Unit tests for CustomerService: a tenant admin's patient management

Author: TM3
Date: 2025-11-21
"""
from unittest.mock import Mock

import pytest

from budstack.core.exceptions import NotFoundError
from budstack.domain.audit import AuditActions
from budstack.domain.user import User, CustomerUpdate
from budstack.services.customer_service import CustomerService, RECENT_ORDERS_LIMIT


@pytest.fixture
def customer():
    return User(id="patient-1", email="patient@example.com", name="Ana", tenant_id="tenant-1", order_count=1)


def build_service():
    return CustomerService(
        repository=Mock(),
        order_repository=Mock(),
        audit_service=Mock(),
        auth_service=Mock(),
    )


class TestCustomerDetail:

    def test_get_includes_recent_orders(self, customer, sample_order):
        service = build_service()
        service.repository.find_customer.return_value = customer
        service.order_repository.find_all.return_value = ([sample_order], 1)

        detail = service.get("patient-1", "tenant-1")

        assert detail["email"] == "patient@example.com"
        assert [order["order_number"] for order in detail["recent_orders"]] == ["BS-20251115-AB12CD"]
        service.order_repository.find_all.assert_called_once_with(
            tenant_id="tenant-1", user_id="patient-1", limit=RECENT_ORDERS_LIMIT, offset=0
        )

    def test_customer_of_another_store(self):
        service = build_service()
        service.repository.find_customer.return_value = None

        with pytest.raises(NotFoundError):
            service.get("patient-9", "tenant-1")

        service.order_repository.find_all.assert_not_called()


class TestCustomerUpdate:

    def test_update_sends_only_given_fields(self, customer, tenant_admin_user):
        service = build_service()
        service.repository.find_customer.return_value = customer
        service.repository.update_customer.return_value = customer.model_copy(update={"is_active": False})

        updated = service.update("patient-1", "tenant-1", CustomerUpdate(is_active=False), tenant_admin_user)

        assert updated.is_active is False
        service.repository.update_customer.assert_called_once_with("patient-1", "tenant-1", {"is_active": False})
        args, kwargs = service.audit_service.log.call_args
        assert args[0] == AuditActions.CUSTOMER_UPDATED
        assert kwargs["metadata"] == {"fields": ["is_active"]}

    def test_update_unknown_customer(self, tenant_admin_user):
        service = build_service()
        service.repository.find_customer.return_value = None

        with pytest.raises(NotFoundError):
            service.update("patient-9", "tenant-1", CustomerUpdate(name="X"), tenant_admin_user)

        service.repository.update_customer.assert_not_called()
        service.audit_service.log.assert_not_called()


class TestCustomerPasswordReset:

    def test_reset_emails_a_link(self, customer, tenant_admin_user):
        service = build_service()
        service.repository.find_customer.return_value = customer

        result = service.send_password_reset("patient-1", "tenant-1", tenant_admin_user)

        assert result == {"email": "patient@example.com"}
        service.auth_service.send_reset_link.assert_called_once_with(customer)
        args, kwargs = service.audit_service.log.call_args
        assert args[0] == AuditActions.USER_PASSWORD_RESET_REQUESTED
        assert kwargs["metadata"]["source"] == "tenant_admin"

    def test_reset_unknown_customer(self, tenant_admin_user):
        service = build_service()
        service.repository.find_customer.return_value = None

        with pytest.raises(NotFoundError):
            service.send_password_reset("patient-9", "tenant-1", tenant_admin_user)

        service.auth_service.send_reset_link.assert_not_called()
