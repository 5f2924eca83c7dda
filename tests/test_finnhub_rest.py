"""
Tests for the Finnhub REST quote client and the shared HTTP helper.
"""

from unittest.mock import Mock, patch

import pytest
import requests
from pydantic import SecretStr

from chartwallet.adapters.finnhub_rest import FinnhubQuoteClient, parse_quote
from chartwallet.adapters.http import get_json
from chartwallet.core.exceptions import (
    APIError,
    AuthenticationError,
    ConnectionError,
    DataUnavailableError,
    MissingCredentialError,
    RateLimitError,
)
from chartwallet.core.quote_cache import QuoteCache

QUOTE = {"c": 180.1, "d": 1.2, "dp": 0.67, "h": 181.0, "l": 178.5, "o": 179.0, "pc": 178.9, "t": 1718035200}


def response(status=200, body=None, headers=None, text=""):
    resp = Mock(status_code=status, headers=headers or {}, text=text)
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestParseQuote:
    def test_full_payload(self):
        quote = parse_quote("AAPL", QUOTE)

        assert quote.current_price == 180.1
        assert quote.change == 1.2
        assert quote.change_percent == 0.67
        assert quote.previous_close == 178.9
        assert quote.timestamp == 1718035200

    def test_unknown_symbol_all_zero(self):
        with pytest.raises(DataUnavailableError):
            parse_quote("ZZZZ", {"c": 0, "d": None, "dp": None, "h": 0, "l": 0, "o": 0, "pc": 0, "t": 0})

    def test_malformed(self):
        with pytest.raises(DataUnavailableError):
            parse_quote("AAPL", {"error": "nope"})


class TestGetJson:
    def test_success(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(body={"ok": True})

            assert get_json("https://x.test", {"a": 1}, provider="test", timeout=3) == {"ok": True}

        mock_get.assert_called_once_with("https://x.test", params={"a": 1}, timeout=3)

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, status):
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(status=status)

            with pytest.raises(AuthenticationError):
                get_json("https://x.test", {}, provider="test")

        assert mock_get.call_count == 1

    def test_rate_limit(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(status=429, headers={"Retry-After": "30"})

            with pytest.raises(RateLimitError) as exc_info:
                get_json("https://x.test", {}, provider="test")

        assert exc_info.value.retry_after == 30

    def test_server_error(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(status=502, text="bad gateway")

            with pytest.raises(APIError) as exc_info:
                get_json("https://x.test", {}, provider="test")

        assert exc_info.value.status_code == 502

    def test_non_json_body(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(body=ValueError("no json"), text="<html>")

            with pytest.raises(APIError):
                get_json("https://x.test", {}, provider="test")

    def test_transport_failure_retried(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get, patch(
            "chartwallet.core.resilience.time.sleep"
        ) as mock_sleep:
            mock_get.side_effect = [
                requests.exceptions.ConnectionError("down"),
                requests.exceptions.Timeout("slow"),
                response(body={"ok": True}),
            ]

            assert get_json("https://x.test", {}, provider="test") == {"ok": True}

        assert mock_get.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    def test_transport_failure_exhausted(self):
        with patch("chartwallet.adapters.http.requests.get") as mock_get, patch(
            "chartwallet.core.resilience.time.sleep"
        ):
            mock_get.side_effect = requests.exceptions.ConnectionError("down")

            with pytest.raises(ConnectionError):
                get_json("https://x.test", {}, provider="test")

        assert mock_get.call_count == 3


class TestFinnhubQuoteClient:
    def test_missing_key(self):
        client = FinnhubQuoteClient(None)

        assert not client.configured
        with pytest.raises(MissingCredentialError):
            client.get_quote("AAPL")

    def test_get_quote_uses_cache(self):
        client = FinnhubQuoteClient(SecretStr("tok"), cache=QuoteCache(default_ttl=60))
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(body=QUOTE)

            first = client.get_quote("aapl")
            second = client.get_quote("AAPL")

        assert first is second
        assert first.symbol == "AAPL"
        assert mock_get.call_count == 1
        assert mock_get.call_args.kwargs["params"] == {"symbol": "AAPL", "token": "tok"}
        assert client.cache_stats["hits"] == 1

    def test_get_quotes_skips_failures(self):
        client = FinnhubQuoteClient(SecretStr("tok"))
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.side_effect = [response(body=QUOTE), response(status=500)]

            quotes = client.get_quotes(["AAPL", "MSFT"])

        assert list(quotes) == ["AAPL"]

    def test_validate_api_key(self):
        client = FinnhubQuoteClient(SecretStr("tok"))
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            mock_get.return_value = response(body=QUOTE)
            assert client.validate_api_key() is True

            mock_get.return_value = response(status=401)
            assert client.validate_api_key() is False

    def test_validate_placeholder_key(self):
        client = FinnhubQuoteClient(SecretStr("YOUR_FINNHUB_API_KEY"))
        with patch("chartwallet.adapters.http.requests.get") as mock_get:
            assert client.validate_api_key() is False

        mock_get.assert_not_called()
