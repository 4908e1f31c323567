"""Sorting and pagination for the trade table view."""

import math
from dataclasses import dataclass

from tracker.schemas.trade import TradeRecord, resolve_field
from tracker.utils.constants import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS


@dataclass
class Page:
    rows: list[TradeRecord]
    page_index: int
    page_size: int
    page_count: int
    total: int

    @property
    def has_next(self) -> bool:
        return self.page_index + 1 < self.page_count

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0


def sort_trades(
    trades: list[TradeRecord] | tuple[TradeRecord, ...],
    column: str | None = None,
    descending: bool = False,
) -> list[TradeRecord]:
    """Stable sort by one column; empty values always go last."""
    if not column:
        return list(trades)
    name = resolve_field(column)
    if name not in TradeRecord.model_fields:
        raise ValueError(f"Unknown column: {column}")

    def value(trade: TradeRecord):
        v = getattr(trade, name)
        return getattr(v, "value", v)

    present = [t for t in trades if value(t) not in (None, "")]
    empty = [t for t in trades if value(t) in (None, "")]
    present.sort(key=value, reverse=descending)
    return present + empty


def paginate(
    trades: list[TradeRecord] | tuple[TradeRecord, ...],
    page_index: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    if page_size not in PAGE_SIZE_OPTIONS:
        raise ValueError(f"page_size must be one of: {', '.join(map(str, PAGE_SIZE_OPTIONS))}")
    total = len(trades)
    page_count = max(1, math.ceil(total / page_size))
    page_index = min(max(page_index, 0), page_count - 1)
    start = page_index * page_size
    return Page(
        rows=list(trades[start:start + page_size]),
        page_index=page_index,
        page_size=page_size,
        page_count=page_count,
        total=total,
    )
