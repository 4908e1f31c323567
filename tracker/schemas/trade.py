"""Pydantic schemas for trade records, form drafts and summary stats."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tracker.services.metrics import to_number
from tracker.utils.constants import NUMBER_FIELDS, SIDE_ALIASES

FIELD_LABELS = {
    "symbol": "Symbol",
    "side": "Side",
    "timeframe": "Timeframe",
    "risk_amount": "Risk amount",
    "leverage": "Leverage",
    "entry_price": "Entry price",
    "stop_loss": "Stop loss",
    "take_profit": "Take profit",
    "exit_price": "Exit price",
    "quantity": "Quantity",
    "fee": "Fee",
}


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Timeframe(str, Enum):
    M1 = "M1"
    M5 = "M5"
    M15 = "M15"
    M30 = "M30"
    H1 = "H1"
    H4 = "H4"
    D1 = "D1"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce_side(value):
    if isinstance(value, str):
        return SIDE_ALIASES.get(value.strip().lower(), value)
    return value


class TradeRecord(BaseModel):
    """One logged trade, as mirrored from the backend.

    Attributes are snake_case; the wire format is camelCase with the
    backend's ``_id`` as identifier.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    client_id: str | None = None
    symbol: str
    timeframe: Timeframe = Timeframe.M30
    side: Side = Side.BUY
    risk_amount: float | None = Field(default=None, ge=0)
    leverage: float = Field(default=1.0, gt=0)
    entry_price: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    take_profit: float = Field(gt=0)
    quantity: float = Field(default=0.0, ge=0)
    position_size: float = Field(default=0.0, ge=0)
    rr: float = Field(default=0.0, ge=0)
    exit_price: float | None = Field(default=None, ge=0)
    pnl: float = 0.0
    realized_rr: float = Field(default=0.0, ge=0, alias="realizedRR")
    fee: float = Field(default=0.0, ge=0)
    strategy: str = ""
    note: str = ""
    entry_time: str = Field(default_factory=_now_iso)
    exit_time: str = ""

    @field_validator("side", mode="before")
    @classmethod
    def _normalize_side(cls, value):
        return _coerce_side(value)

    @field_validator("quantity", "position_size", "rr", "pnl", "realized_rr", "fee", mode="before")
    @classmethod
    def _missing_metric_is_zero(cls, value):
        return 0.0 if value is None or value == "" else value

    @field_validator("leverage", mode="before")
    @classmethod
    def _default_leverage(cls, value):
        return 1.0 if value is None or value == "" or value == 0 else value

    @field_validator("strategy", "note", "exit_time", mode="before")
    @classmethod
    def _missing_text_is_empty(cls, value):
        return "" if value is None else value

    @property
    def key(self) -> str | None:
        """Identifier once persisted, correlation token while provisional."""
        return self.id or self.client_id

    def to_wire(self, include_id: bool = True) -> dict:
        exclude = None if include_id else {"id"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


def price_order_errors(side, entry_price, stop_loss, take_profit) -> dict[str, str]:
    """Side-aware ordering check: stop and target must bracket the entry."""
    entry = to_number(entry_price)
    stop = to_number(stop_loss)
    target = to_number(take_profit)
    direction = _coerce_side(getattr(side, "value", side))
    errors: dict[str, str] = {}
    if entry is None or stop is None or target is None:
        return errors

    if direction == "buy":
        if not stop < entry:
            errors["stop_loss"] = "For buy orders, stop loss must be below entry price"
        if not target > entry:
            errors["take_profit"] = "For buy orders, take profit must be above entry price"
    elif direction == "sell":
        if not stop > entry:
            errors["stop_loss"] = "For sell orders, stop loss must be above entry price"
        if not target < entry:
            errors["take_profit"] = "For sell orders, take profit must be below entry price"
    return errors


class TradeForm(BaseModel):
    """Validation rules for a draft submitted from the entry form."""

    symbol: str
    side: Side = Side.BUY
    timeframe: Timeframe = Timeframe.M30
    risk_amount: float | None = Field(default=None, ge=0)
    leverage: float | None = Field(default=None, gt=0)
    entry_price: float
    stop_loss: float
    take_profit: float
    exit_price: float | None = Field(default=None, ge=0)
    quantity: float | None = Field(default=None, ge=0)
    fee: float | None = Field(default=None, ge=0)
    strategy: str | None = None
    note: str | None = None
    entry_time: str | None = None
    exit_time: str | None = None

    @field_validator("symbol", mode="before")
    @classmethod
    def _require_symbol(cls, value):
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("Symbol is required")
        return text

    @field_validator("side", mode="before")
    @classmethod
    def _normalize_side(cls, value):
        return _coerce_side(value)

    @field_validator("entry_price", "stop_loss", "take_profit", mode="before")
    @classmethod
    def _require_price(cls, value, info):
        if value is None or value == "" or value == 0:
            raise ValueError(f"{FIELD_LABELS[info.field_name]} is required")
        return value

    @field_validator("entry_price", "stop_loss", "take_profit")
    @classmethod
    def _positive_price(cls, value: float, info) -> float:
        if value <= 0:
            raise ValueError(f"{FIELD_LABELS[info.field_name]} must be positive")
        return value

    @field_validator("risk_amount", "leverage", "exit_price", "quantity", "fee", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        return None if value == "" else value

    @model_validator(mode="after")
    def _validate_price_order(self):
        errors = price_order_errors(self.side, self.entry_price, self.stop_loss, self.take_profit)
        if errors:
            raise ValueError(next(iter(errors.values())))
        return self


def _error_message(field: str, err: dict) -> str:
    label = FIELD_LABELS.get(field, field)
    kind = err["type"]
    if kind == "value_error":
        return str(err["ctx"]["error"])
    if kind == "missing":
        return f"{label} is required"
    if kind in ("float_parsing", "float_type"):
        return f"{label} must be a valid number"
    if kind == "greater_than_equal":
        return f"{label} must be positive"
    if kind == "greater_than":
        return f"{label} must be greater than 0"
    return err["msg"]


def validate_form(draft: dict) -> dict[str, str]:
    """Validate a draft and return field name -> message; empty when valid."""
    try:
        TradeForm.model_validate(draft)
    except ValidationError as e:
        errors: dict[str, str] = {}
        for err in e.errors():
            if not err["loc"]:
                continue
            field = str(err["loc"][0])
            errors.setdefault(field, _error_message(field, err))
        if not errors.keys() & {"side", "entry_price", "stop_loss", "take_profit"}:
            ordering = price_order_errors(
                draft.get("side", Side.BUY),
                draft.get("entry_price"),
                draft.get("stop_loss"),
                draft.get("take_profit"),
            )
            for field, message in ordering.items():
                errors.setdefault(field, message)
        return errors
    return {}


def resolve_field(name: str) -> str:
    """Map a wire name (``entryPrice``, ``_id``) to the record attribute name."""
    if name in TradeRecord.model_fields:
        return name
    for attr, info in TradeRecord.model_fields.items():
        if info.alias == name:
            return attr
    return name


def parse_form_value(field: str, value):
    """Turn raw input text into the value stored in the draft."""
    if field == "side":
        return _coerce_side(value)
    if field in NUMBER_FIELDS and isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        number = to_number(text)
        return text if number is None else number
    return value


class TradeStats(BaseModel):
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    average_rr: float = 0.0
    average_realized_rr: float = 0.0
    profit_factor: float = 0.0
