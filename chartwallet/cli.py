"""
ChartWallet command line.

Usage:
    python -m chartwallet stream AAPL MSFT --duration 60
    python -m chartwallet quote AAPL
    python -m chartwallet search apple
    python -m chartwallet watchlist add NVDA
    python -m chartwallet portfolio add AAPL 10 182.5
    python -m chartwallet analyst AAPL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from chartwallet.adapters.finnhub_rest import FinnhubQuoteClient
from chartwallet.adapters.fmp import FMPClient
from chartwallet.core.config import Config, load_config
from chartwallet.core.exceptions import ChartWalletError
from chartwallet.core.quote_cache import QuoteCache
from chartwallet.core.structured_logging import configure_logging
from chartwallet.portfolio.manager import PortfolioManager
from chartwallet.realtime.finnhub_stream import FinnhubStreamClient
from chartwallet.realtime.messages import Trade
from chartwallet.realtime.network import NetworkMonitor
from chartwallet.services.analyst_refresh import AnalystRefreshService
from chartwallet.services.quote_feed import QuoteFeedService
from chartwallet.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chartwallet",
        description="US stock quotes, watchlist and portfolio tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON config file")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument("--json-logs", action="store_true", help="Structured JSON log lines")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("stream", help="Stream live trades")
    p.add_argument("symbols", nargs="*", help="Symbols (default: watchlist + portfolio)")
    p.add_argument("--duration", type=float, default=None, help="Stop after N seconds")

    p = sub.add_parser("quote", help="Fetch REST quotes")
    p.add_argument("symbols", nargs="+")

    p = sub.add_parser("search", help="Search US stocks")
    p.add_argument("query")
    p.add_argument("--limit", type=int, default=20)

    sub.add_parser("actives", help="Most active stocks")
    sub.add_parser("check-key", help="Validate the Finnhub API key")

    p = sub.add_parser("watchlist", help="Manage the watchlist")
    wl = p.add_subparsers(dest="action")
    wl.add_parser("list")
    wa = wl.add_parser("add")
    wa.add_argument("symbol")
    wa.add_argument("--name", default="")
    wr = wl.add_parser("remove")
    wr.add_argument("symbol")
    wm = wl.add_parser("move")
    wm.add_argument("source", type=int)
    wm.add_argument("destination", type=int)

    p = sub.add_parser("portfolio", help="Manage positions")
    pf = p.add_subparsers(dest="action")
    pl = pf.add_parser("list")
    pl.add_argument("--live", action="store_true", help="Value positions at current quotes")
    pa = pf.add_parser("add")
    pa.add_argument("symbol")
    pa.add_argument("quantity", type=float)
    pa.add_argument("price", type=float)
    pa.add_argument("--name", default="")
    pr = pf.add_parser("remove")
    pr.add_argument("id")

    p = sub.add_parser("analyst", help="Analyst recommendations")
    p.add_argument("symbols", nargs="+")

    return parser.parse_args(argv)


def _portfolio(config: Config) -> PortfolioManager:
    return PortfolioManager(KeyValueStore(config.storage.path))


def _quote_client(config: Config) -> FinnhubQuoteClient:
    return FinnhubQuoteClient(
        config.finnhub_api_key,
        cache=QuoteCache(default_ttl=config.polling.quote_cache_ttl),
        timeout=config.polling.request_timeout,
    )


def _fmp_client(config: Config) -> FMPClient:
    return FMPClient(config.fmp_api_key, timeout=config.polling.request_timeout)


def _print_trades(trades: List[Trade]) -> None:
    for trade in trades:
        volume = f" x{trade.volume:g}" if trade.volume is not None else ""
        print(f"{trade.timestamp:%H:%M:%S} {trade.symbol:<6} {trade.price:>10.2f}{volume}")


async def run_stream(config: Config, symbols: List[str], duration: Optional[float]) -> int:
    network = NetworkMonitor()
    stream = FinnhubStreamClient(
        config.finnhub_api_key,
        config.stream,
        on_trade=_print_trades,
        network=network,
    )
    feed = QuoteFeedService(stream, _quote_client(config), poll_interval=config.polling.interval_seconds)
    fmp = _fmp_client(config)
    analyst = None
    if fmp.configured:
        analyst = AnalystRefreshService(fmp, KeyValueStore(config.storage.path), lambda: feed.symbols, config.analyst)

    watcher = asyncio.create_task(network.watch())
    try:
        await feed.start(symbols)
        if analyst is not None:
            await analyst.start()
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            pass
        if analyst is not None:
            analyst.stop()
        await feed.stop()

    for symbol in feed.symbols:
        snap = feed.snapshot(symbol)
        if snap:
            print(f"{symbol:<6} {snap.price:>10.2f} {snap.change_percent:+.2f}% ({snap.source})")
    logger.info("[CLI] Stream stats: %s", stream.stats)
    return 0


def cmd_quote(config: Config, symbols: List[str]) -> int:
    client = _quote_client(config)
    quotes = client.get_quotes([s.upper() for s in symbols])
    for symbol, quote in quotes.items():
        print(f"{symbol:<6} {quote.current_price:>10.2f} {quote.change:+.2f} ({quote.change_percent:+.2f}%)")
    return 0 if quotes else 1


def cmd_search(config: Config, query: str, limit: int) -> int:
    for result in _fmp_client(config).search(query, limit=limit):
        print(f"{result.symbol:<8} {result.name} [{result.exchange_short_name or '-'}]")
    return 0


def cmd_actives(config: Config) -> int:
    for stock in _fmp_client(config).most_active():
        print(f"{stock.symbol:<6} {stock.price:>10.2f} {stock.change_percent:+.2f}% {stock.name}")
    return 0


def cmd_check_key(config: Config) -> int:
    if _quote_client(config).validate_api_key():
        print("Finnhub API key is valid")
        return 0
    print("Finnhub API key is missing or invalid")
    return 1


def cmd_watchlist(config: Config, args: argparse.Namespace) -> int:
    manager = _portfolio(config)
    if args.action == "add":
        item = manager.add_to_watchlist(args.symbol, args.name)
        print(f"Added {item.symbol}")
    elif args.action == "remove":
        if not manager.remove_from_watchlist(args.symbol):
            print(f"{args.symbol.upper()} is not in the watchlist")
            return 1
        print(f"Removed {args.symbol.upper()}")
    elif args.action == "move":
        manager.move_watchlist_item(args.source, args.destination)

    for item in manager.watchlist:
        print(f"{item.sort_order:>3} {item.symbol:<6} {item.name}")
    return 0


def cmd_portfolio(config: Config, args: argparse.Namespace) -> int:
    manager = _portfolio(config)
    if args.action == "add":
        position = manager.add_position(args.symbol, args.quantity, args.price, name=args.name)
        print(f"Added position {position.id}")
        return 0
    if args.action == "remove":
        if not manager.remove_position(args.id):
            print(f"No position with id {args.id}")
            return 1
        print(f"Removed position {args.id}")
        return 0

    prices = {}
    if getattr(args, "live", False) and manager.positions:
        quotes = _quote_client(config).get_quotes(sorted({p.symbol for p in manager.positions}))
        prices = {symbol: quote.current_price for symbol, quote in quotes.items()}

    for p in manager.positions:
        price = prices.get(p.symbol, p.average_price)
        print(
            f"{p.id[:8]} {p.symbol:<6} {p.quantity:>10g} @ {p.average_price:>9.2f} "
            f"value {p.current_value(price):>12.2f} P/L {p.profit_loss_percent(price):+.2f}%"
        )
    summary = manager.summary(prices)
    print(
        f"Total: invested {summary.total_investment:.2f}, value {summary.current_value:.2f}, "
        f"P/L {summary.profit_loss:+.2f} ({summary.profit_loss_percent:+.2f}%)"
    )
    return 0


def cmd_analyst(config: Config, symbols: List[str]) -> int:
    client = _fmp_client(config)
    for symbol in symbols:
        rec = client.analyst_recommendation(symbol)
        if rec is None:
            print(f"{symbol.upper():<6} no analyst data")
            continue
        score = f"{rec.average_score:.2f}" if rec.average_score is not None else "-"
        print(
            f"{rec.symbol:<6} {rec.rating.label:<11} score {score} "
            f"({rec.strong_buy}/{rec.buy}/{rec.hold}/{rec.sell}/{rec.strong_sell})"
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = load_config(args.config)
    configure_logging(level=(args.log_level or config.log_level).upper(), json_format=args.json_logs or config.json_logs)
    logger.debug("[CLI] %s", config)

    try:
        if args.command == "stream":
            symbols = args.symbols or _portfolio(config).all_symbols()
            return asyncio.run(run_stream(config, symbols, args.duration))
        if args.command == "quote":
            return cmd_quote(config, args.symbols)
        if args.command == "search":
            return cmd_search(config, args.query, args.limit)
        if args.command == "actives":
            return cmd_actives(config)
        if args.command == "check-key":
            return cmd_check_key(config)
        if args.command == "watchlist":
            return cmd_watchlist(config, args)
        if args.command == "portfolio":
            return cmd_portfolio(config, args)
        if args.command == "analyst":
            return cmd_analyst(config, args.symbols)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        return 0
    except ChartWalletError as exc:
        logger.error("%s", exc)
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
