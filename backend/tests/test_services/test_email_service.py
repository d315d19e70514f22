"""
Unit tests for EmailService

Author: TM3
Date: 2025-11-17
"""
from unittest.mock import MagicMock, Mock, patch

import httpx

from budstack.services.email_service import EmailService


def mock_http_client(mock_client_class, response=None, error=None):
    client = MagicMock()
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    mock_client_class.return_value.__enter__.return_value = client
    return client


def test_disabled_without_api_key():
    with patch('budstack.services.email_service.httpx.Client') as mock_client_class:
        assert EmailService(api_key="").send("patient@example.com", "Hi", "<p>Hi</p>") is False
        mock_client_class.assert_not_called()


@patch('budstack.services.email_service.httpx.Client')
def test_send_posts_to_resend(mock_client_class):
    client = mock_http_client(mock_client_class, Mock(status_code=200, text="{}"))
    service = EmailService(api_key="re_test", sender="Shop <shop@budstack.to>", api_url="https://mail.test/")

    assert service.send("patient@example.com", "Order received", "<p>Thanks</p>", "Thanks") is True

    url = client.post.call_args[0][0]
    kwargs = client.post.call_args.kwargs
    assert url == "https://mail.test/emails"
    assert kwargs["headers"]["Authorization"] == "Bearer re_test"
    assert kwargs["json"] == {
        "from": "Shop <shop@budstack.to>",
        "to": ["patient@example.com"],
        "subject": "Order received",
        "html": "<p>Thanks</p>",
        "text": "Thanks",
    }


@patch('budstack.services.email_service.httpx.Client')
def test_rejected_message_returns_false(mock_client_class):
    mock_http_client(mock_client_class, Mock(status_code=422, text="invalid from"))

    assert EmailService(api_key="re_test").send("x@example.com", "Hi", "<p>Hi</p>") is False


@patch('budstack.services.email_service.httpx.Client')
def test_network_error_returns_false(mock_client_class):
    mock_http_client(mock_client_class, error=httpx.ConnectError("refused"))

    assert EmailService(api_key="re_test").send("x@example.com", "Hi", "<p>Hi</p>") is False


@patch('budstack.services.email_service.httpx.Client')
def test_order_confirmation_template(mock_client_class):
    client = mock_http_client(mock_client_class, Mock(status_code=200, text="{}"))

    EmailService(api_key="re_test").send_order_confirmation(
        "patient@example.com", "Healing Buds", "BS-20251115-AB12CD", 220.0, "EUR"
    )

    payload = client.post.call_args.kwargs["json"]
    assert payload["subject"] == "Healing Buds: order BS-20251115-AB12CD received"
    assert "220.00 EUR" in payload["text"]


@patch('budstack.services.email_service.httpx.Client')
def test_welcome_escapes_business_name(mock_client_class):
    client = mock_http_client(mock_client_class, Mock(status_code=200, text="{}"))

    EmailService(api_key="re_test").send_tenant_welcome(
        "owner@example.com", "<script>alert(1)</script> Buds", "greenleaf", "https://budstack.to/store/greenleaf"
    )

    html = client.post.call_args.kwargs["json"]["html"]
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt; Buds" in html


@patch('budstack.services.email_service.httpx.Client')
def test_reset_link_template(mock_client_class):
    client = mock_http_client(mock_client_class, Mock(status_code=200, text="{}"))

    EmailService(api_key="re_test").send_password_reset_link(
        "patient@example.com", "https://budstack.to/reset-password?token=abc&x=1", 60
    )

    payload = client.post.call_args.kwargs["json"]
    assert 'href="https://budstack.to/reset-password?token=abc&amp;x=1"' in payload["html"]
    assert "expires in 60 minutes" in payload["text"]
