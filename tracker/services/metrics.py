"""Derived trade metrics: risk-reward, position sizing and PnL.

Every function is called while a draft is still half-filled, so incomplete or
invalid input yields 0 instead of an exception.
"""

import math
from decimal import Decimal, ROUND_HALF_UP, localcontext

from tracker.utils.constants import SIDE_ALIASES, SIZING_FIELDS


def to_number(value) -> float | None:
    """Coerce a form/table value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _present(*values) -> list[float] | None:
    """Numbers for all values, or None when any is missing or zero."""
    numbers = [to_number(v) for v in values]
    if any(n is None or n == 0 for n in numbers):
        return None
    return numbers


def round_half_up(value: float, places: int) -> float:
    # Half-up on the exact binary value, same as JavaScript's toFixed.
    if math.isnan(value) or math.isinf(value):
        return 0.0
    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # Enough digits for the integer part plus the kept decimals
        ctx.prec = max(28, exact.adjusted() + places + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def _normalize_side(side) -> str | None:
    if side is None:
        return None
    return SIDE_ALIASES.get(str(getattr(side, "value", side)).strip().lower())


def risk_reward_ratio(entry_price, stop_loss, take_profit) -> float:
    """Planned reward over risk, 2 decimals."""
    numbers = _present(entry_price, stop_loss, take_profit)
    if numbers is None:
        return 0.0
    entry, stop, target = numbers
    risk = abs(entry - stop)
    if risk == 0:
        return 0.0
    return round_half_up(abs(target - entry) / risk, 2)


def realized_risk_reward_ratio(entry_price, exit_price, stop_loss) -> float:
    """Achieved reward over planned risk, 2 decimals."""
    numbers = _present(entry_price, exit_price, stop_loss)
    if numbers is None:
        return 0.0
    entry, exit_, stop = numbers
    risk = abs(entry - stop)
    if risk == 0:
        return 0.0
    return round_half_up(abs(exit_ - entry) / risk, 2)


def profit_and_loss(side, entry_price, exit_price, quantity, fee=0) -> float:
    """Signed PnL net of fees, 2 decimals."""
    numbers = _present(entry_price, exit_price, quantity)
    direction = _normalize_side(side)
    if numbers is None or direction is None:
        return 0.0
    entry, exit_, qty = numbers
    fee_value = to_number(fee) or 0.0
    if direction == "buy":
        raw = (exit_ - entry) * qty
    else:
        raw = (entry - exit_) * qty
    return round_half_up(raw - fee_value, 2)


def position_size(risk_amount, entry_price, stop_loss, leverage=1) -> float:
    """Notional size so that hitting the stop loses ``risk_amount``, 4 decimals."""
    if leverage is None:
        leverage = 1
    numbers = _present(risk_amount, entry_price, stop_loss, leverage)
    if numbers is None:
        return 0.0
    risk, entry, stop, lev = numbers
    risk_pct = abs((entry - stop) / entry)
    if risk_pct == 0:
        return 0.0
    return round_half_up(risk / risk_pct * lev, 4)


def quantity(position_size, entry_price) -> float:
    """Units bought for a given notional, 6 decimals."""
    numbers = _present(position_size, entry_price)
    if numbers is None:
        return 0.0
    size, entry = numbers
    return round_half_up(size / entry, 6)


def apply_derived(fields: dict, changed: str | None = None) -> dict:
    """Return a copy of ``fields`` with every derived metric recomputed.

    ``fields`` uses record attribute names. ``changed`` names the field that
    was just edited. Any sizing edit rewrites size and quantity, down to 0
    when the risk amount is cleared; with no field named they are only
    filled in when a risk amount is set and the size is still empty.
    """
    out = dict(fields)
    entry = out.get("entry_price")
    stop = out.get("stop_loss")

    out["rr"] = risk_reward_ratio(entry, stop, out.get("take_profit"))

    exit_price = to_number(out.get("exit_price"))
    if exit_price:
        out["realized_rr"] = realized_risk_reward_ratio(entry, exit_price, stop)
    else:
        out["realized_rr"] = 0.0

    risk_amount = to_number(out.get("risk_amount"))
    if changed is None:
        recompute = bool(risk_amount) and (
            not to_number(out.get("position_size")) or not to_number(out.get("quantity"))
        )
    else:
        # A sizing edit always rewrites both; missing inputs size to 0
        recompute = changed in SIZING_FIELDS
    if recompute:
        size = position_size(risk_amount, entry, stop, out.get("leverage"))
        out["position_size"] = size
        out["quantity"] = quantity(size, entry)

    out["pnl"] = profit_and_loss(
        out.get("side"), entry, exit_price, out.get("quantity"), out.get("fee") or 0
    )
    return out
