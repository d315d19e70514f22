"""
Unit tests for the sliding window rate limiter

Author: TM3
Date: 2025-11-17
"""
from unittest.mock import Mock

import pytest
from fastapi import HTTPException

from budstack.core.rate_limit import CLIENT_LIMITS, RateLimiter, client_key, enforce_user_rate_limit


class TestRateLimiter:

    def test_allows_until_limit(self):
        limiter = RateLimiter()

        results = [limiter.is_allowed("ip:1.2.3.4", max_requests=3) for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert [remaining for _, remaining, _ in results[:3]] == [2, 1, 0]
        assert results[3][2] >= 1

    def test_identifiers_are_independent(self):
        limiter = RateLimiter()
        limiter.is_allowed("a", max_requests=1)

        allowed, _, _ = limiter.is_allowed("b", max_requests=1)

        assert allowed

    def test_reset_clears_windows(self):
        limiter = RateLimiter()
        limiter.is_allowed("a", max_requests=1)
        limiter.reset()

        allowed, _, _ = limiter.is_allowed("a", max_requests=1)

        assert allowed


class TestUserRateLimit:

    def test_raises_429_after_limit(self):
        for _ in range(2):
            enforce_user_rate_limit("user-1", "products-bulk", max_requests=2)

        with pytest.raises(HTTPException) as exc:
            enforce_user_rate_limit("user-1", "products-bulk", max_requests=2)

        assert exc.value.status_code == 429
        assert "Retry-After" in exc.value.headers

    def test_scopes_do_not_share_budget(self):
        enforce_user_rate_limit("user-1", "orders-bulk", max_requests=1)
        enforce_user_rate_limit("user-1", "exports", max_requests=1)


class TestClientKey:

    def make_request(self, headers=None, client=("10.0.0.5", 1234)):
        request = Mock()
        request.headers = headers or {}
        request.client = Mock(host=client[0]) if client else None
        return request

    def test_bearer_token_is_hashed(self):
        identifier, limit = client_key(self.make_request({"Authorization": "Bearer abc.def.ghi"}))

        assert identifier.startswith("token:")
        assert "abc" not in identifier
        assert limit == CLIENT_LIMITS["token"]

    def test_forwarded_for_first_hop(self):
        identifier, limit = client_key(self.make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}))

        assert identifier == "ip:203.0.113.7"
        assert limit == CLIENT_LIMITS["ip"]

    def test_direct_client_ip(self):
        assert client_key(self.make_request())[0] == "ip:10.0.0.5"
        assert client_key(self.make_request(client=None))[0] == "ip:unknown"
