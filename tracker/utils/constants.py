"""Shared constants and defaults for the trade journal."""

DEFAULT_TIMEFRAME = "M30"

DEFAULT_SIDE = "buy"

# Accepted spellings for each side; "long"/"short" come from other journals.
SIDE_ALIASES: dict[str, str] = {
    "buy": "buy",
    "long": "buy",
    "sell": "sell",
    "short": "sell",
}

PAGE_SIZE_OPTIONS = [10, 20, 30, 50]
DEFAULT_PAGE_SIZE = 10

NUMBER_FIELDS = [
    "entry_price",
    "stop_loss",
    "take_profit",
    "exit_price",
    "quantity",
    "leverage",
    "risk_amount",
    "fee",
    "position_size",
    "rr",
    "realized_rr",
    "pnl",
]

REQUIRED_FIELDS = ["symbol", "entry_price", "stop_loss", "take_profit"]

# Editing any of these recomputes the derived metrics.
RECALC_FIELDS = [
    "entry_price",
    "stop_loss",
    "take_profit",
    "exit_price",
    "quantity",
    "side",
    "fee",
    "risk_amount",
    "leverage",
]

# Inputs of the position size / quantity calculation.
SIZING_FIELDS = ["risk_amount", "entry_price", "stop_loss", "leverage"]

# Derived or server-owned columns the table never edits in place.
NON_EDITABLE_COLUMNS = ["id", "client_id", "rr", "realized_rr", "pnl"]
