"""
API tests for tenant admin endpoints

Author: TM3
Date: 2025-11-17
"""
from unittest.mock import patch

import pytest

from budstack.api.deps import get_admin_tenant
from budstack.core.exceptions import NotFoundError
from budstack.domain.consent import CookieSettings
from budstack.domain.user import User
from budstack.domain.webhook import Webhook
from budstack.main import app


@pytest.fixture
def admin_client(client, sample_tenant):
    app.dependency_overrides[get_admin_tenant] = lambda: sample_tenant
    return client


class TestAccess:

    def test_patient_is_forbidden(self, client, patient_headers):
        response = client.get("/api/v1/tenant-admin/products", headers=patient_headers)

        assert response.status_code == 403

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/api/v1/tenant-admin/products").status_code == 401

    @patch('budstack.api.deps.TenantRepository')
    def test_admin_without_tenant(self, mock_repo_class, client, super_admin_headers):
        response = client.get("/api/v1/tenant-admin/tenant", headers=super_admin_headers)

        assert response.status_code == 400
        mock_repo_class.return_value.find_by_id.assert_not_called()


class TestProducts:

    @patch('budstack.api.tenant_admin.ProductService')
    def test_list_products(self, mock_service_class, admin_client, sample_product, tenant_admin_headers):
        mock_service_class.return_value.list.return_value = ([sample_product], 1)

        response = admin_client.get(
            "/api/v1/tenant-admin/products", params={"in_stock": "true"}, headers=tenant_admin_headers
        )

        assert response.status_code == 200
        assert response.json()["count"] == 1
        assert mock_service_class.return_value.list.call_args.kwargs["in_stock"] is True

    @patch('budstack.api.tenant_admin.ProductService')
    def test_create_product(self, mock_service_class, admin_client, sample_product, tenant_admin_headers):
        mock_service_class.return_value.create.return_value = sample_product

        response = admin_client.post(
            "/api/v1/tenant-admin/products",
            json={"name": "Blue Dream", "price": "9.50", "stock_quantity": 120},
            headers=tenant_admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["slug"] == "blue-dream"

    def test_create_product_rejects_negative_price(self, admin_client, tenant_admin_headers):
        response = admin_client.post(
            "/api/v1/tenant-admin/products", json={"name": "Blue Dream", "price": -1}, headers=tenant_admin_headers
        )

        assert response.status_code == 422

    @patch('budstack.api.tenant_admin.ProductService')
    def test_bulk_action(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.bulk_action.return_value = 2

        response = admin_client.post(
            "/api/v1/tenant-admin/products/bulk",
            json={"action": "deactivate", "product_ids": ["product-1", "product-2"]},
            headers=tenant_admin_headers,
        )

        assert response.json() == {"status": "success", "action": "deactivate", "count": 2}

    @patch('budstack.api.tenant_admin.ProductService')
    def test_bulk_action_is_rate_limited(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.bulk_action.return_value = 1
        body = {"action": "activate", "product_ids": ["product-1"]}

        statuses = [
            admin_client.post("/api/v1/tenant-admin/products/bulk", json=body, headers=tenant_admin_headers).status_code
            for _ in range(21)
        ]

        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429

    @patch('budstack.api.tenant_admin.ProductService')
    def test_missing_product(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.get.side_effect = NotFoundError("Product not found")

        response = admin_client.get("/api/v1/tenant-admin/products/product-9", headers=tenant_admin_headers)

        assert response.status_code == 404


class TestOrders:

    @patch('budstack.api.tenant_admin.OrderService')
    def test_update_status(self, mock_service_class, admin_client, sample_order, tenant_admin_headers):
        mock_service_class.return_value.update_status.return_value = sample_order.model_copy(
            update={"status": "PROCESSING"}
        )

        response = admin_client.put(
            "/api/v1/tenant-admin/orders/order-1/status", json={"status": "PROCESSING"}, headers=tenant_admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "PROCESSING"
        args = mock_service_class.return_value.update_status.call_args[0]
        assert args[:3] == ("order-1", "tenant-1", "PROCESSING")


class TestSettings:

    def test_credentials_require_a_value(self, admin_client, tenant_admin_headers):
        response = admin_client.put("/api/v1/tenant-admin/settings/drgreen", json={}, headers=tenant_admin_headers)

        assert response.status_code == 400

    @patch('budstack.api.tenant_admin.AuditService')
    @patch('budstack.api.tenant_admin.CredentialsService')
    def test_save_credentials(self, mock_credentials_class, mock_audit_class, admin_client, tenant_admin_headers):
        response = admin_client.put(
            "/api/v1/tenant-admin/settings/drgreen", json={"api_key": "pk_live_9999"}, headers=tenant_admin_headers
        )

        assert response.status_code == 200
        mock_credentials_class.return_value.save_tenant_credentials.assert_called_once_with(
            "tenant-1", "pk_live_9999", None
        )
        mock_audit_class.return_value.log.assert_called_once()


class TestWebhooks:

    @patch('budstack.api.tenant_admin.AuditService')
    @patch('budstack.api.tenant_admin.WebhookService')
    def test_create_returns_secret_once(self, mock_service_class, mock_audit_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.create.return_value = Webhook(
            id="webhook-1", tenant_id="tenant-1", url="https://hooks.example.com/x",
            events=["order.created"], secret="abcdef0123456789",
        )

        response = admin_client.post(
            "/api/v1/tenant-admin/webhooks",
            json={"url": "https://hooks.example.com/x", "events": ["order.created"]},
            headers=tenant_admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["secret"] == "abcdef0123456789"

    def test_unknown_event_is_rejected(self, admin_client, tenant_admin_headers):
        response = admin_client.post(
            "/api/v1/tenant-admin/webhooks",
            json={"url": "https://hooks.example.com/x", "events": ["order.teleported"]},
            headers=tenant_admin_headers,
        )

        assert response.status_code == 422

    @patch('budstack.api.tenant_admin.WebhookService')
    def test_list_masks_secret(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.list.return_value = [Webhook(
            id="webhook-1", tenant_id="tenant-1", url="https://hooks.example.com/x",
            events=["order.created"], secret="abcdef0123456789",
        )]

        body = admin_client.get("/api/v1/tenant-admin/webhooks", headers=tenant_admin_headers).json()

        assert body["data"][0]["secret"] == "********6789"
        assert "order.created" in body["available_events"]


class TestExports:

    @patch('budstack.api.tenant_admin.ExportService')
    def test_orders_csv(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.export_orders.return_value = "order_number\nBS-1\n"

        response = admin_client.get("/api/v1/tenant-admin/exports/orders", headers=tenant_admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="' in response.headers["content-disposition"]


class TestCustomers:

    @patch('budstack.api.tenant_admin.CustomerService')
    def test_customer_detail(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.get.return_value = {"id": "patient-1", "recent_orders": []}

        response = admin_client.get("/api/v1/tenant-admin/customers/patient-1", headers=tenant_admin_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == "patient-1"
        mock_service_class.return_value.get.assert_called_once_with("patient-1", "tenant-1")

    @patch('budstack.api.tenant_admin.CustomerService')
    def test_unknown_customer_is_404(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.get.side_effect = NotFoundError("Customer patient-9 not found")

        response = admin_client.get("/api/v1/tenant-admin/customers/patient-9", headers=tenant_admin_headers)

        assert response.status_code == 404

    @patch('budstack.api.tenant_admin.CustomerService')
    def test_disable_customer(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.update.return_value = User(
            id="patient-1", email="patient@example.com", tenant_id="tenant-1", is_active=False
        )

        response = admin_client.put(
            "/api/v1/tenant-admin/customers/patient-1", json={"is_active": False}, headers=tenant_admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False
        body = mock_service_class.return_value.update.call_args[0][2]
        assert body.is_active is False

    @patch('budstack.api.tenant_admin.CustomerService')
    def test_customer_password_reset(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.send_password_reset.return_value = {"email": "patient@example.com"}

        response = admin_client.post(
            "/api/v1/tenant-admin/customers/patient-1/reset-password", headers=tenant_admin_headers
        )

        assert response.status_code == 200
        assert "password" not in response.json()["data"]
        assert response.json()["message"] == "Password reset link sent to patient@example.com"


class TestCookieSettings:

    @patch('budstack.api.tenant_admin.TenantService')
    def test_update_cookie_settings(self, mock_service_class, admin_client, tenant_admin_headers):
        mock_service_class.return_value.update_cookie_settings.return_value = CookieSettings(analytics_enabled=True)

        response = admin_client.put(
            "/api/v1/tenant-admin/cookie-settings", json={"analyticsEnabled": True}, headers=tenant_admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["analyticsEnabled"] is True
        body = mock_service_class.return_value.update_cookie_settings.call_args[0][1]
        assert body.analytics_enabled is True
        assert body.marketing_cookies_enabled is None

    def test_patient_cannot_change_cookie_settings(self, client, patient_headers):
        response = client.put("/api/v1/tenant-admin/cookie-settings", json={}, headers=patient_headers)

        assert response.status_code == 403
