"""
Command line tests (store and HTTP are local/mocked).
"""

import asyncio
from unittest.mock import Mock, patch

import pytest

from chartwallet.cli import main, parse_args, run_stream
from chartwallet.core.config import load_config
from chartwallet.realtime.network import NetworkMonitor


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("chartwallet.cli.configure_logging"):
        yield


def test_command_required():
    with pytest.raises(SystemExit):
        parse_args([])


def test_watchlist_list_seeded(capsys):
    assert main(["watchlist", "list"]) == 0

    out = capsys.readouterr().out
    assert "AAPL" in out
    assert "META" in out


def test_watchlist_add_and_duplicate(capsys):
    assert main(["watchlist", "add", "pltr", "--name", "Palantir"]) == 0
    assert "Added PLTR" in capsys.readouterr().out

    assert main(["watchlist", "add", "PLTR"]) == 1


def test_watchlist_remove_missing(capsys):
    assert main(["watchlist", "remove", "ZZZZ"]) == 1


def test_portfolio_add_and_list(capsys):
    assert main(["portfolio", "add", "AAPL", "10", "150"]) == 0
    assert main(["portfolio", "list"]) == 0

    out = capsys.readouterr().out
    assert "invested 1500.00" in out


def test_portfolio_invalid_quantity():
    assert main(["portfolio", "add", "AAPL", "0", "150"]) == 1


def test_quote(monkeypatch, capsys):
    monkeypatch.setenv("FINNHUB_API_KEY", "tok")
    body = {"c": 180.1, "d": 1.2, "dp": 0.67, "h": 181.0, "l": 178.5, "o": 179.0, "pc": 178.9, "t": 1718035200}
    with patch("chartwallet.adapters.http.requests.get") as mock_get:
        mock_get.return_value = Mock(status_code=200, headers={}, text="", json=Mock(return_value=body))

        assert main(["quote", "aapl"]) == 0

    assert "180.10" in capsys.readouterr().out


def test_search_without_key():
    assert main(["search", "apple"]) == 1


def test_check_key_without_key(capsys):
    assert main(["check-key"]) == 1
    assert "missing or invalid" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_stream_waits_for_network_watcher():
    finished = []

    async def watch(self, interval=5.0):
        try:
            await asyncio.Event().wait()
        finally:
            await asyncio.sleep(0.05)
            finished.append(True)

    with patch.object(NetworkMonitor, "watch", watch):
        assert await run_stream(load_config(), ["AAPL"], 0.01) == 0
        assert finished == [True]
