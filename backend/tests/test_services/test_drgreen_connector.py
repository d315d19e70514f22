"""
Unit tests for the Dr. Green connector

Author: TM3
Date: 2025-11-17
"""
import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from budstack.connectors.drgreen_connector import DrGreenConnector, generate_signature
from budstack.core.exceptions import ExternalServiceError, MissingCredentialsError


@pytest.fixture
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def connector():
    return DrGreenConnector("pk_live_1234", "secret", base_url="https://api.drgreen.test/v1/",
                            image_base_url="https://images.drgreen.test")


def mock_http_client(mock_client_class, response):
    client = MagicMock()
    client.request = AsyncMock(return_value=response)
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=False)
    return client


def test_requires_credentials():
    with pytest.raises(MissingCredentialsError):
        DrGreenConnector("", "secret")


def test_signature_verifies_with_public_key(ec_key):
    pem = ec_key.private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()
    ).decode()

    signature = generate_signature('{"a": 1}', pem)

    ec_key.public_key().verify(base64.b64decode(signature), b'{"a": 1}', ec.ECDSA(hashes.SHA256()))


def test_signature_with_invalid_key():
    with pytest.raises(ExternalServiceError):
        generate_signature("{}", "not a key")


class TestNormalizeStrain:

    def test_sums_locations(self, connector):
        strain = {
            "id": "strain-1", "name": "Blue Dream", "type": "hybrid", "thc": 21.5, "retailPrice": 9.5,
            "imageUrl": "/strains/blue-dream.png",
            "strainLocations": [
                {"stockQuantity": 30, "isAvailable": True},
                {"stockQuantity": 20, "isAvailable": False},
            ],
        }

        product = connector.normalize_strain(strain, "PT")

        assert product["external_id"] == "strain-1"
        assert product["stock_quantity"] == 50
        assert product["in_stock"] is True
        assert product["strain_type"] == "HYBRID"
        assert product["currency"] == "EUR"
        assert product["image_url"] == "https://images.drgreen.test/strains/blue-dream.png"

    def test_defaults_for_sparse_strain(self, connector):
        product = connector.normalize_strain({"id": "s", "name": "X", "type": "ruderalis"}, "ZA")

        assert product["strain_type"] == "HYBRID"
        assert product["stock_quantity"] == 0
        assert product["in_stock"] is False
        assert product["currency"] == "ZAR"


class TestRequests:

    @patch('budstack.connectors.drgreen_connector.httpx.AsyncClient')
    def test_get_strains_is_unsigned(self, mock_client_class, connector):
        response = Mock(status_code=200)
        response.json.return_value = {"data": {"strains": [{"id": "strain-1", "name": "Blue Dream"}]}}
        client = mock_http_client(mock_client_class, response)

        strains = asyncio.run(connector.get_strains("PT"))

        assert [s["external_id"] for s in strains] == ["strain-1"]
        method, url = client.request.call_args[0]
        assert method == "GET"
        assert url == "https://api.drgreen.test/v1/strains?country=PT"
        headers = client.request.call_args.kwargs["headers"]
        assert headers["x-auth-apikey"] == "pk_live_1234"
        assert "x-auth-signature" not in headers

    @patch('budstack.connectors.drgreen_connector.generate_signature', return_value="c2ln")
    @patch('budstack.connectors.drgreen_connector.httpx.AsyncClient')
    def test_create_order_is_signed(self, mock_client_class, mock_sign, connector):
        response = Mock(status_code=201)
        response.json.return_value = {"data": {"id": "dg-1"}}
        client = mock_http_client(mock_client_class, response)

        result = asyncio.run(connector.create_order({"orderNumber": "BS-1"}))

        assert result == {"data": {"id": "dg-1"}}
        assert client.request.call_args.kwargs["headers"]["x-auth-signature"] == "c2ln"
        mock_sign.assert_called_once_with('{"orderNumber": "BS-1"}', "secret")

    @patch('budstack.connectors.drgreen_connector.httpx.AsyncClient')
    def test_error_status_raises(self, mock_client_class, connector):
        mock_http_client(mock_client_class, Mock(status_code=503, reason_phrase="Service Unavailable", text="down"))

        with pytest.raises(ExternalServiceError, match="503"):
            asyncio.run(connector.verify_nft("42"))
