"""
API tests for Dr. Green payment callbacks and service endpoints

Author: TM3
Date: 2025-11-17
"""
from unittest.mock import patch, MagicMock

from budstack.core.exceptions import NotFoundError, ValidationError


class TestPaymentCallbacks:

    @patch('budstack.api.webhooks.OrderService')
    def test_fiat_callback(self, mock_service_class, client):
        mock_service_class.return_value.handle_fiat_callback.return_value = {
            "order_id": "order-1", "payment_status": "PAID"
        }
        payload = {"custom": "nonce-123", "status": "success", "code": "00"}

        response = client.post("/api/v1/webhooks/drgreen/fiat", json=payload)

        assert response.status_code == 200
        assert response.json()["data"]["payment_status"] == "PAID"
        mock_service_class.return_value.handle_fiat_callback.assert_called_once_with(payload)

    @patch('budstack.api.webhooks.OrderService')
    def test_fiat_callback_unknown_order(self, mock_service_class, client):
        mock_service_class.return_value.handle_fiat_callback.side_effect = NotFoundError("Order not found")

        response = client.post("/api/v1/webhooks/drgreen/fiat", json={"custom": "nope"})

        assert response.status_code == 404

    @patch('budstack.api.webhooks.OrderService')
    def test_crypto_callback_without_reference(self, mock_service_class, client):
        mock_service_class.return_value.handle_crypto_callback.side_effect = ValidationError("Missing order reference")

        response = client.post("/api/v1/webhooks/drgreen/crypto", json={})

        assert response.status_code == 400


class TestServiceEndpoints:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "online"

    @patch('budstack.main.get_db_connection_with_retry')
    def test_health_connected(self, mock_get_conn, client):
        mock_get_conn.return_value = MagicMock()

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["database"]["status"] == "connected"

    @patch('budstack.main.get_db_connection_with_retry')
    def test_health_degraded(self, mock_get_conn, client):
        mock_get_conn.side_effect = RuntimeError("could not connect")

        body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["database"]["error"] == "could not connect"

    @patch('budstack.api.platform.PlatformService')
    def test_public_platform_settings(self, mock_service_class, client):
        mock_service_class.return_value.get_settings.return_value.to_dict.return_value = {"platform_name": "BudStack"}

        response = client.get("/api/v1/platform-settings")

        assert response.json() == {"status": "success", "data": {"platform_name": "BudStack"}}
