"""
Unit tests for tenant, template and webhook domain helpers

Author: TM3
Date: 2025-11-17
"""
import pytest
from pydantic import ValidationError

from budstack.domain.product import currency_for_country
from budstack.domain.template import slugify, is_custom_upload, parse_github_url
from budstack.domain.tenant import (
    TenantBulkAction, get_preset, is_valid_subdomain, normalize_subdomain, TEMPLATE_PRESETS,
)
from budstack.domain.webhook import Webhook, WebhookCreate, WEBHOOK_EVENTS


class TestSubdomains:

    @pytest.mark.parametrize("value", ["healingbuds", "green-leaf", "abc", "store42", "admin"])
    def test_valid(self, value):
        assert is_valid_subdomain(value)

    @pytest.mark.parametrize("value", ["ab", "-shop", "shop-", "Shop", "my_shop", "a" * 64, ""])
    def test_invalid(self, value):
        assert not is_valid_subdomain(value)

    def test_normalize(self):
        assert normalize_subdomain("  HealingBuds ") == "healingbuds"


class TestPresets:

    def test_known_preset(self):
        assert get_preset("medical")["primary_color"] == "#3b82f6"

    def test_unknown_preset_falls_back_to_modern(self):
        assert get_preset("neon") == TEMPLATE_PRESETS["modern"]
        assert get_preset(None) == TEMPLATE_PRESETS["modern"]


class TestTemplateHelpers:

    def test_slugify(self):
        assert slugify("Healing Buds v2!") == "healing-buds-v2"
        assert slugify("  Many   spaces -- here ") == "many-spaces-here"

    def test_custom_upload_detection(self):
        assert is_custom_upload("/uploads/tenant-1/logo.png")
        assert is_custom_upload("https://cdn.example.com/logo.png")
        assert not is_custom_upload("/templates/healingbuds/logo.svg")
        assert not is_custom_upload(None)

    def test_parse_github_url(self):
        assert parse_github_url("https://github.com/budstack/wellness-theme") == ("budstack", "wellness-theme")
        assert parse_github_url("https://github.com/budstack/wellness-theme.git") == ("budstack", "wellness-theme")
        assert parse_github_url("https://gitlab.com/budstack/theme") is None


class TestCurrency:

    def test_country_currency(self):
        assert currency_for_country("PT") == "EUR"
        assert currency_for_country("gb") == "GBP"
        assert currency_for_country("XX") == "ZAR"


class TestWebhookModels:

    def test_unknown_event_rejected(self):
        with pytest.raises(ValidationError):
            WebhookCreate(url="https://hooks.example.com", events=["order.exploded"])

    def test_non_http_url_rejected(self):
        with pytest.raises(ValidationError):
            WebhookCreate(url="ftp://hooks.example.com", events=["order.created"])

    def test_events_required(self):
        with pytest.raises(ValidationError):
            WebhookCreate(url="https://hooks.example.com", events=[])

    def test_secret_masked_by_default(self):
        webhook = Webhook(id="w", tenant_id="t", url="https://x.io", events=["order.created"], secret="a" * 60 + "beef")

        assert webhook.to_dict()["secret"] == "********beef"
        assert webhook.to_dict(include_secret=True)["secret"].endswith("beef")

    def test_event_catalogue(self):
        assert "order.created" in WEBHOOK_EVENTS
        assert "product.low_stock" in WEBHOOK_EVENTS
        assert WEBHOOK_EVENTS == sorted(WEBHOOK_EVENTS)


class TestBulkBody:

    def test_accepts_camel_case_ids(self):
        assert TenantBulkAction(**{"tenantIds": ["a", "b"]}).tenant_ids == ["a", "b"]

    def test_defaults_to_empty(self):
        assert TenantBulkAction().tenant_ids == []
