"""CLI tool for journal maintenance.

Usage:
    python -m tracker.cli stats
    python -m tracker.cli export [file]
    python -m tracker.cli import <file>
"""

import asyncio
import math
import sys

from tracker.services.export_import import TradeImportError
from tracker.services.trade_api import TradeApiClient
from tracker.store import TradeStore
from tracker.utils.logging import setup_logging


def _make_store() -> TradeStore:
    return TradeStore(TradeApiClient())


async def _loaded_store() -> TradeStore:
    store = _make_store()
    if not await store.load():
        await store.api.close()
        print(store.state.error)
        sys.exit(1)
    return store


async def show_stats():
    store = await _loaded_store()
    try:
        stats = store.stats()
    finally:
        await store.api.close()

    factor = "inf" if math.isinf(stats.profit_factor) else f"{stats.profit_factor:.2f}"
    print(f"Trades:          {stats.total_trades}")
    print(f"Wins / losses:   {stats.winning_trades} / {stats.losing_trades}")
    print(f"Win rate:        {stats.win_rate:.2f}%")
    print(f"Total PnL:       {stats.total_pnl:.2f}")
    print(f"Average RR:      {stats.average_rr:.2f}")
    print(f"Avg realized RR: {stats.average_realized_rr:.2f}")
    print(f"Profit factor:   {factor}")


async def export_command(path: str | None):
    store = await _loaded_store()
    try:
        target = store.export_file(path)
    except ValueError as e:
        print(str(e))
        sys.exit(1)
    finally:
        await store.api.close()
    print(f"Exported {len(store.trades)} trades to {target}")


async def import_command(path: str):
    store = _make_store()
    try:
        ok = await store.import_file(path)
    except TradeImportError as e:
        print(str(e))
        sys.exit(1)
    finally:
        await store.api.close()
    if not ok:
        print(store.state.error)
        sys.exit(1)
    print(f"Imported {len(store.trades)} trades from {path}")


def main(argv: list[str] | None = None):
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python -m tracker.cli <command>")
        print("Commands: stats, export [file], import <file>")
        sys.exit(1)

    setup_logging()
    command = args[0]
    if command == "stats":
        asyncio.run(show_stats())
    elif command == "export":
        asyncio.run(export_command(args[1] if len(args) > 1 else None))
    elif command == "import":
        if len(args) < 2:
            print("Usage: python -m tracker.cli import <file>")
            sys.exit(1)
        asyncio.run(import_command(args[1]))
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
