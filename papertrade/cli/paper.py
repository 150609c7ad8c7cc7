"""Paper trading command line."""

from __future__ import annotations

import argparse
import asyncio
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from papertrade.runner.session import TradingSession, build_session
from papertrade.shared.config import get_settings
from papertrade.shared.errors import PaperTradeError
from papertrade.shared.logging import configure_logging
from papertrade.shared.models import FeedKind, OrderSide, OrderType, PortfolioSnapshot


def parse_order_spec(spec: str) -> tuple[OrderSide, str, int, Optional[Decimal]]:
    """
    Parse ``side:symbol:qty[@limit]``, e.g. ``buy:RELIANCE:10`` or ``sell:TCS:5@3900``.
    """
    try:
        side, symbol, rest = spec.split(":")
        quantity, _, limit = rest.partition("@")
        order_side, qty = OrderSide(side.lower()), int(quantity)
        limit_price = Decimal(limit) if limit else None
    except (ValueError, InvalidOperation) as e:
        raise argparse.ArgumentTypeError(f"Invalid order {spec!r}: expected side:symbol:qty[@limit]") from e

    if qty <= 0:
        raise argparse.ArgumentTypeError(f"Invalid order {spec!r}: quantity must be positive")
    if limit_price is not None and limit_price <= 0:
        raise argparse.ArgumentTypeError(f"Invalid order {spec!r}: limit price must be positive")
    return order_side, symbol, qty, limit_price


def format_portfolio(snapshot: PortfolioSnapshot) -> str:
    lines = [
        f"balance={snapshot.balance:.2f} equity={snapshot.equity:.2f} "
        f"unrealized_pnl={snapshot.unrealized_pnl:.2f}"
    ]
    for p in snapshot.positions:
        lines.append(
            f"  {p.symbol:<16} qty={p.quantity:<6} avg={p.average_price:.2f} "
            f"last={p.current_price:.2f} pnl={p.pnl:.2f} ({p.pnl_percent:.2f}%)"
        )
    for o in snapshot.orders:
        lines.append(
            f"  order {str(o.id)[:8]} {o.side.value:<4} {o.quantity} {o.symbol} "
            f"@ {o.price:.2f} {o.order_type.value} {o.status.value}"
        )
    return "\n".join(lines)


async def _run(args: argparse.Namespace, session: TradingSession) -> int:
    provider = session.provider
    try:
        if args.command == "quote":
            quote = await session.refresh_quote(args.symbol)
            print(f"{quote.symbol} {quote.price:.2f} {quote.change:+.2f} ({quote.change_percent:+.2f}%)")

        elif args.command == "history":
            candles = await provider.get_historical_data(args.symbol, args.interval, args.range)
            for candle in candles:
                print(f"{candle.time} O={candle.open} H={candle.high} L={candle.low} C={candle.close}")

        elif args.command == "search":
            for hit in await provider.search_symbols(args.query):
                print(f"{hit.symbol:<16} {hit.name}")

        elif args.command == "trade":
            for side, symbol, quantity, limit in args.orders:
                order_type = OrderType.LIMIT if limit is not None else OrderType.MARKET
                await session.place_order(symbol, side, quantity, order_type=order_type, limit_price=limit)
                await session.refresh_quote(symbol)
            print(format_portfolio(session.portfolio()))

        elif args.command == "watch":
            poller = session.watch(args.symbol)
            for _ in range(args.ticks):
                await asyncio.sleep(args.every)
                quote = session.latest_quotes.get(poller.symbol)
                error = session.last_error(poller.symbol)
                if error is not None:
                    print(f"[watch] {poller.symbol} error: {error}")
                elif quote is not None:
                    print(f"[watch] {quote.symbol} {quote.price:.2f}")
    except PaperTradeError as e:
        print(f"[paper] error: {e}")
        return 1
    finally:
        await session.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Paper trading against simulated or live quotes")
    parser.add_argument("--provider", choices=[kind.value for kind in FeedKind], default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Show the latest quote")
    quote.add_argument("symbol")

    history = sub.add_parser("history", help="Show candles")
    history.add_argument("symbol")
    history.add_argument("--interval", default="5m")
    history.add_argument("--range", default="1d")

    search = sub.add_parser("search", help="Search symbols")
    search.add_argument("query")

    trade = sub.add_parser("trade", help="Place orders in sequence and print the portfolio")
    trade.add_argument("orders", nargs="+", type=parse_order_spec, metavar="side:symbol:qty[@limit]")

    watch = sub.add_parser("watch", help="Poll a symbol")
    watch.add_argument("symbol")
    watch.add_argument("--ticks", type=int, default=4)
    watch.add_argument("--every", type=float, default=None, help="Seconds between prints")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(settings.logging)
    if args.provider:
        settings = settings.model_copy(
            update={"market_data": settings.market_data.model_copy(update={"provider": FeedKind(args.provider)})}
        )
    if args.command == "watch" and args.every is None:
        args.every = settings.polling.interval_seconds

    session = build_session(settings)
    return asyncio.run(_run(args, session))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
