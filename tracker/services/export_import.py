"""JSON export and import of the trade collection."""

import json
import logging
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from tracker.schemas.trade import TradeRecord

logger = logging.getLogger(__name__)

REQUIRED_IMPORT_KEYS = ("symbol", "entryPrice")
IDENTIFIER_KEYS = ("_id", "id")


class TradeImportError(ValueError):
    """Import payload rejected; nothing from it was applied."""


def default_export_name(today: date | None = None) -> str:
    return f"trades-export-{(today or date.today()).isoformat()}.json"


def dumps_trades(trades: list[TradeRecord]) -> str:
    return json.dumps([t.to_wire() for t in trades], indent=2)


def export_trades(trades: list[TradeRecord], path: str | Path | None = None) -> Path:
    """Write the collection to ``path`` (or a dated file in the cwd)."""
    if not trades:
        raise ValueError("No trades to export")
    target = Path(path) if path else Path(default_export_name())
    target.write_text(dumps_trades(trades), encoding="utf-8")
    logger.info(f"Exported {len(trades)} trades to {target}")
    return target


def _is_valid_item(item) -> bool:
    return (
        isinstance(item, dict)
        and any(k in item for k in IDENTIFIER_KEYS)
        and all(k in item for k in REQUIRED_IMPORT_KEYS)
    )


def parse_trades(text: str) -> list[TradeRecord]:
    """Parse an exported JSON document, all-or-nothing."""
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise TradeImportError("Failed to parse trades data") from e

    if not isinstance(payload, list):
        raise TradeImportError("Invalid trades data: not an array")
    if not all(_is_valid_item(item) for item in payload):
        raise TradeImportError("Invalid trades data: missing required fields")

    try:
        return [TradeRecord.model_validate(item) for item in payload]
    except ValidationError as e:
        raise TradeImportError(f"Invalid trades data: {e.error_count()} invalid fields") from e


def import_trades(path: str | Path) -> list[TradeRecord]:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as e:
        raise TradeImportError(f"Failed to read file: {source}") from e
    trades = parse_trades(text)
    logger.info(f"Read {len(trades)} trades from {source}")
    return trades
