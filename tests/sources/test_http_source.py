"""Tests for the HTTP fee source."""

import asyncio
import io
import json
import socket
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from feewatch.config.defaults import FetchParams
from feewatch.errors import ConfigurationError, FetchError, FetchParseError, FetchTransportError
from feewatch.sources.http_source import HttpFeeSource


def fake_response(body: bytes, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.getcode.return_value = status
    response.read.return_value = body
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


class TestHttpFeeSource:
    """Test HttpFeeSource requests and error mapping."""

    def test_fetch_mempool(self, mempool_payload):
        source = HttpFeeSource(FetchParams())
        body = json.dumps(mempool_payload).encode()

        with patch("feewatch.sources.http_source.urlopen", return_value=fake_response(body)) as mock_urlopen:
            fees = asyncio.run(source("mempool"))

        assert fees.fastest_fee == 21.0
        assert fees.endpoint == "mempool"
        assert fees.fetched_at is not None

        request = mock_urlopen.call_args[0][0]
        assert request.full_url == "https://mempool.space/api/v1/fees/recommended"
        assert request.get_header("User-agent") == "feewatch/0.1"
        assert mock_urlopen.call_args[1]["timeout"] == 10.0

    def test_fetch_esplora(self, esplora_payload):
        source = HttpFeeSource(FetchParams())
        body = json.dumps(esplora_payload).encode()

        with patch("feewatch.sources.http_source.urlopen", return_value=fake_response(body)):
            fees = asyncio.run(source("blockstream"))

        assert fees.half_hour_fee == 18.0
        assert fees.endpoint == "blockstream"

    def test_unknown_endpoint(self):
        source = HttpFeeSource(FetchParams())
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(source("nowhere"))
        assert exc_info.value.endpoint == "nowhere"

    def test_http_error(self):
        source = HttpFeeSource(FetchParams())
        error = HTTPError(
            "https://mempool.space/api/v1/fees/recommended", 503, "Service Unavailable", {}, io.BytesIO(b"")
        )

        with patch("feewatch.sources.http_source.urlopen", side_effect=error):
            with pytest.raises(FetchTransportError) as exc_info:
                asyncio.run(source("mempool"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.cause is error

    @pytest.mark.parametrize("error", [
        URLError("Name or service not known"),
        socket.timeout("timed out"),
        ConnectionResetError("reset by peer"),
    ])
    def test_network_errors(self, error):
        source = HttpFeeSource(FetchParams())

        with patch("feewatch.sources.http_source.urlopen", side_effect=error):
            with pytest.raises(FetchTransportError) as exc_info:
                asyncio.run(source("mempool"))

        assert "Network error" in str(exc_info.value)

    def test_non_success_status(self):
        source = HttpFeeSource(FetchParams())

        with patch("feewatch.sources.http_source.urlopen", return_value=fake_response(b"", status=204)):
            with pytest.raises(FetchTransportError) as exc_info:
                asyncio.run(source("mempool"))

        assert exc_info.value.status_code == 204

    def test_bad_body(self):
        source = HttpFeeSource(FetchParams())

        with patch("feewatch.sources.http_source.urlopen", return_value=fake_response(b"<html></html>")):
            with pytest.raises(FetchParseError):
                asyncio.run(source("mempool"))

    def test_invalid_url_rejected(self):
        params = FetchParams(endpoints={"broken": {"url": "not-a-url", "format": "mempool"}})
        with pytest.raises(ConfigurationError):
            HttpFeeSource(params)
