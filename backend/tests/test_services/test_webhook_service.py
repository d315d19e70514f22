"""
Unit tests for outgoing webhook signing and delivery

Author: TM3
Date: 2025-11-17
"""
import asyncio
import json
import threading
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import httpx

from budstack.domain.webhook import Webhook
from budstack.services.webhook_service import (
    USER_AGENT, WebhookService, build_payload, generate_secret, sign_payload, verify_signature,
)


def make_webhook(**overrides):
    data = {"id": "webhook-1", "tenant_id": "tenant-1", "url": "https://hooks.example.com/budstack",
            "events": ["order.created"], "secret": "s3cret"}
    data.update(overrides)
    return Webhook(**data)


def mock_http_client(mock_client_class, responses):
    client = MagicMock()
    client.post = AsyncMock(side_effect=responses)
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=False)
    return client


def response(status_code, text="ok"):
    return Mock(status_code=status_code, text=text)


def backoff_delays(mock_sleep):
    return [call[0][0] for call in mock_sleep.call_args_list if call[0][0]]


class TestSigning:

    def test_secret_is_64_hex_chars(self):
        secret = generate_secret()

        assert len(secret) == 64
        int(secret, 16)

    def test_signature_round_trip(self):
        body = json.dumps({"event": "order.created"})
        signature = sign_payload(body, "s3cret")

        assert verify_signature(body, signature, "s3cret")
        assert not verify_signature(body + " ", signature, "s3cret")
        assert not verify_signature(body, signature, "other")
        assert not verify_signature(body, "", "s3cret")

    def test_payload_shape(self):
        payload = build_payload("order.created", "tenant-1", {"order_id": "order-1"})

        assert set(payload) == {"event", "tenant_id", "data", "timestamp"}


class TestDelivery:

    @patch('budstack.services.webhook_service.httpx.AsyncClient')
    def test_success_on_first_attempt(self, mock_client_class):
        client = mock_http_client(mock_client_class, [response(200)])
        repository = Mock()
        service = WebhookService(repository=repository, max_attempts=3)
        payload = build_payload("order.created", "tenant-1", {"order_id": "order-1"})

        assert asyncio.run(service.deliver(make_webhook(), payload)) is True

        kwargs = client.post.call_args.kwargs
        assert kwargs["headers"]["X-Webhook-Event"] == "order.created"
        assert kwargs["headers"]["User-Agent"] == USER_AGENT
        assert verify_signature(kwargs["content"], kwargs["headers"]["X-Webhook-Signature"], "s3cret")
        record = repository.record_delivery.call_args.kwargs
        assert record["success"] is True and record["attempts"] == 1 and record["status_code"] == 200

    @patch('budstack.services.webhook_service.asyncio.sleep', new_callable=AsyncMock)
    @patch('budstack.services.webhook_service.httpx.AsyncClient')
    def test_retries_with_backoff_then_succeeds(self, mock_client_class, mock_sleep):
        mock_http_client(mock_client_class, [response(500), httpx.ConnectError("refused"), response(204)])
        repository = Mock()
        service = WebhookService(repository=repository, max_attempts=3)

        assert asyncio.run(service.deliver(make_webhook(), build_payload("order.created", "tenant-1", {}))) is True

        assert backoff_delays(mock_sleep) == [2, 4]
        attempts = [call.kwargs["attempts"] for call in repository.record_delivery.call_args_list]
        assert attempts == [1, 2, 3]
        assert repository.record_delivery.call_args_list[1].kwargs["status_code"] is None

    @patch('budstack.services.webhook_service.asyncio.sleep', new_callable=AsyncMock)
    @patch('budstack.services.webhook_service.httpx.AsyncClient')
    def test_gives_up_after_max_attempts(self, mock_client_class, mock_sleep):
        mock_http_client(mock_client_class, [response(500), response(502)])
        service = WebhookService(repository=Mock(), max_attempts=2)

        assert asyncio.run(service.deliver(make_webhook(), build_payload("order.created", "tenant-1", {}))) is False
        assert backoff_delays(mock_sleep) == [2]

    @patch('budstack.services.webhook_service.httpx.AsyncClient')
    def test_database_calls_run_off_the_event_loop(self, mock_client_class):
        mock_http_client(mock_client_class, [response(200)])
        loop_thread = threading.get_ident()
        seen_threads = []
        repository = Mock()
        repository.find_subscribed.side_effect = lambda *args: seen_threads.append(threading.get_ident()) or [make_webhook()]
        repository.record_delivery.side_effect = lambda **kwargs: seen_threads.append(threading.get_ident())

        result = asyncio.run(WebhookService(repository=repository).trigger("order.created", "tenant-1", {}))

        assert result == {"delivered": 1, "failed": 0}
        assert len(seen_threads) == 2
        assert loop_thread not in seen_threads

    def test_trigger_without_subscribers(self):
        repository = Mock()
        repository.find_subscribed.return_value = []

        result = asyncio.run(WebhookService(repository=repository).trigger("order.created", "tenant-1", {}))

        assert result == {"delivered": 0, "failed": 0}

    def test_trigger_counts_results(self):
        repository = Mock()
        repository.find_subscribed.return_value = [make_webhook(), make_webhook(id="webhook-2")]
        service = WebhookService(repository=repository)
        service.deliver = AsyncMock(side_effect=[True, False])

        result = asyncio.run(service.trigger("order.created", "tenant-1", {"order_id": "order-1"}))

        assert result == {"delivered": 1, "failed": 1}

    def test_trigger_never_raises(self):
        repository = Mock()
        repository.find_subscribed.side_effect = RuntimeError("db down")

        result = asyncio.run(WebhookService(repository=repository).trigger("order.created", "tenant-1", {}))

        assert result == {"delivered": 0, "failed": 0}

    def test_dispatch_queues_background_task(self):
        service = WebhookService(repository=Mock())
        background_tasks = Mock()

        service.dispatch(background_tasks, "order.created", "tenant-1", {"order_id": "order-1"})
        service.dispatch(background_tasks, "order.created", None, {})
        service.dispatch(None, "order.created", "tenant-1", {})

        background_tasks.add_task.assert_called_once_with(
            service.trigger, "order.created", "tenant-1", {"order_id": "order-1"}
        )
