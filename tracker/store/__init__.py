"""Client-side trade store."""

from tracker.store.state import TradeState, reduce
from tracker.store.trade_store import TradeStore, TradeValidationError
from tracker.store.table import Page, paginate, sort_trades

__all__ = [
    "TradeState",
    "reduce",
    "TradeStore",
    "TradeValidationError",
    "Page",
    "paginate",
    "sort_trades",
]
