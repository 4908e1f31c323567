"""Client-side trade store.

Holds the authoritative local view of the trade collection plus the entry
form state, and mirrors every mutation to the backend optimistically:

- create / update keep the optimistic value when the request fails
- delete / bulk delete reload from the server when the request fails
"""

import logging
import math
import uuid
from pathlib import Path

from tracker.schemas.trade import (
    TradeRecord,
    TradeStats,
    parse_form_value,
    resolve_field,
    validate_form,
)
from tracker.services.export_import import export_trades, import_trades
from tracker.services.metrics import apply_derived, round_half_up, to_number
from tracker.services.trade_api import TradeApiClient, TradeApiError
from tracker.store.state import (
    BulkCreateReconciled,
    CreateReconciled,
    EditFormOpened,
    FormDataSet,
    FormFieldChanged,
    FormReset,
    FormToggled,
    LoadStarted,
    LoadSucceeded,
    RecordReplaced,
    RecordsAdded,
    RecordsRemoved,
    RequestFailed,
    RequestFinished,
    RequestStarted,
    SubmitFinished,
    SubmitStarted,
    TradeState,
    UpdateReconciled,
    ValidationFailed,
    reduce,
)
from tracker.utils.constants import NON_EDITABLE_COLUMNS, RECALC_FIELDS, REQUIRED_FIELDS

logger = logging.getLogger(__name__)


class TradeValidationError(ValueError):
    """Draft rejected client-side; ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str], message: str = "Please fill in all required fields"):
        super().__init__(message)
        self.errors = errors


def _required_field_errors(fields: dict) -> dict[str, str]:
    errors = {}
    for name in REQUIRED_FIELDS:
        value = fields.get(name)
        label = name.replace("_", " ").capitalize()
        if name == "symbol":
            if not str(value or "").strip():
                errors[name] = "Symbol is required"
            continue
        number = to_number(value)
        if not number:
            errors[name] = f"{label} is required"
        elif number < 0:
            errors[name] = f"{label} must be positive"
    return errors


class TradeStore:
    """Application-owned trade state with optimistic CRUD against the API."""

    def __init__(self, api: TradeApiClient, state: TradeState | None = None):
        self.api = api
        self._state = state or TradeState()

    @property
    def state(self) -> TradeState:
        return self._state

    @property
    def trades(self) -> tuple[TradeRecord, ...]:
        return self._state.records

    def dispatch(self, action) -> TradeState:
        self._state = reduce(self._state, action)
        return self._state

    def _fail(self, message: str):
        logger.error(message)
        self.dispatch(RequestFailed(message))

    # --- trade data ---------------------------------------------------------

    async def load(self) -> bool:
        """Replace the local collection with the server's; False on failure."""
        self.dispatch(LoadStarted())
        try:
            records = await self.api.list_trades()
        except TradeApiError as e:
            self._fail(f"Error fetching trades: {e}")
            return False
        self.dispatch(LoadSucceeded(tuple(records)))
        logger.info(f"Loaded {len(records)} trades")
        return True

    def _prepare(self, record: TradeRecord) -> TradeRecord:
        fields = apply_derived(record.model_dump())
        return TradeRecord.model_validate(fields)

    def _provisional(self, fields: dict) -> TradeRecord:
        """Unsaved copy with derived fields and a fresh correlation token."""
        fields = apply_derived(fields)
        fields["id"] = None
        fields["client_id"] = fields.get("client_id") or uuid.uuid4().hex
        if not fields.get("entry_time"):
            fields.pop("entry_time", None)
        return TradeRecord.model_validate(fields)

    async def create(self, record: TradeRecord | dict) -> TradeRecord:
        """Add a trade optimistically and reconcile with the created record.

        Raises ``TradeValidationError`` before touching state when a required
        field is missing or a price is negative. A failed request leaves the
        provisional record in place and sets ``state.error``.
        """
        fields = record.model_dump() if isinstance(record, TradeRecord) else dict(record)
        errors = _required_field_errors(fields)
        if errors:
            raise TradeValidationError(errors)

        provisional = self._provisional(fields)
        self.dispatch(RequestStarted())
        self.dispatch(RecordsAdded((provisional,)))
        try:
            saved = await self.api.create_trade(provisional)
        except TradeApiError as e:
            self._fail(f"Error adding trade: {e}")
            return provisional
        self.dispatch(CreateReconciled(provisional, saved))
        self.dispatch(RequestFinished())
        return saved

    async def bulk_create(self, records: list[TradeRecord]) -> bool:
        if not records:
            return True

        provisional = [self._provisional(record.model_dump()) for record in records]
        self.dispatch(RequestStarted())
        self.dispatch(RecordsAdded(tuple(provisional)))
        try:
            saved = await self.api.bulk_create_trades(provisional)
        except TradeApiError as e:
            self._fail(f"Error bulk adding trades: {e}")
            return False
        if saved is not None:
            self.dispatch(BulkCreateReconciled(tuple(provisional), tuple(saved)))
        self.dispatch(RequestFinished())
        return True

    async def update(self, record: TradeRecord) -> TradeRecord:
        """Replace a trade in place, then merge the server's copy.

        A failed request keeps the local edit and records the error so the
        caller can retry. Responses older than the latest local edit are
        dropped.
        """
        if not record.id:
            raise ValueError("Cannot update a trade without an identifier")

        record = self._prepare(record)
        self.dispatch(RequestStarted())
        self.dispatch(RecordReplaced(record))
        version = self._state.versions[record.id]
        try:
            saved = await self.api.update_trade(record)
        except TradeApiError as e:
            self._fail(f"Error updating trade: {e}")
            return record
        self.dispatch(UpdateReconciled(record.id, version, saved))
        self.dispatch(RequestFinished())
        return self._state.find(record.id) or record

    async def delete(self, trade_id: str) -> bool:
        return await self._remove(
            [trade_id], lambda: self.api.delete_trade(trade_id), "deleting trade"
        )

    async def bulk_delete(self, ids: list[str]) -> bool:
        if not ids:
            return True
        ids = list(ids)
        return await self._remove(
            ids, lambda: self.api.bulk_delete_trades(ids), "bulk deleting trades"
        )

    async def _remove(self, ids: list[str], send, label: str) -> bool:
        """Remove trades optimistically; reload the collection if the server refuses."""
        self.dispatch(RequestStarted())
        self.dispatch(RecordsRemoved(tuple(ids)))
        try:
            await send()
        except TradeApiError as e:
            message = f"Error {label}: {e}"
            logger.error(message)
            await self.load()
            self.dispatch(RequestFailed(message))
            return False
        self.dispatch(RequestFinished())
        return True

    async def edit_cell(self, trade_id: str, field: str, value) -> TradeRecord | None:
        """In-place table edit of one column, routed through ``update``."""
        name = resolve_field(field)
        if name in NON_EDITABLE_COLUMNS or name not in TradeRecord.model_fields:
            raise ValueError(f"Column {field!r} is not editable")

        record = self._state.find(trade_id)
        if record is None:
            logger.warning(f"edit_cell: trade {trade_id} not found")
            return None

        parsed = parse_form_value(name, value)
        current = getattr(record, name)
        if parsed == current:
            return record

        fields = record.model_dump()
        fields[name] = parsed
        if name in RECALC_FIELDS:
            fields = apply_derived(fields, changed=name)
        return await self.update(TradeRecord.model_validate(fields))

    # --- form ---------------------------------------------------------------

    def set_form_data(self, data: dict):
        fields = {resolve_field(k): parse_form_value(resolve_field(k), v) for k, v in data.items()}
        self.dispatch(FormDataSet(fields))

    def update_form_field(self, field: str, value):
        """Merge one edited field into the draft and refresh derived values."""
        name = resolve_field(field)
        parsed = parse_form_value(name, value)
        derived = {}
        if name in RECALC_FIELDS:
            draft = {**self._state.form_data, name: parsed}
            recomputed = apply_derived(draft, changed=name)
            derived = {
                k: v for k, v in recomputed.items()
                if k != name and draft.get(k) != v
            }
        self.dispatch(FormFieldChanged(name, parsed, derived))

    def reset_form(self):
        self.dispatch(FormReset())

    def toggle_form(self):
        self.dispatch(FormToggled())

    def open_edit_form(self, record: TradeRecord):
        self.dispatch(EditFormOpened(record))

    async def submit(self) -> bool:
        """Validate the draft and create or update; False if nothing was sent."""
        if self._state.is_submitting:
            logger.debug("Submit ignored: a submission is already in flight")
            return False

        self.dispatch(SubmitStarted())
        state = self._state
        errors = validate_form(state.form_data)
        if errors:
            self.dispatch(ValidationFailed(errors))
            self.dispatch(SubmitFinished())
            return False

        fields = apply_derived(state.form_data)
        error = None
        try:
            if state.is_edit_mode and state.editing_trade_id:
                fields["id"] = state.editing_trade_id
                await self.update(TradeRecord.model_validate(fields))
            else:
                fields.pop("id", None)
                await self.create(fields)
        except ValueError as e:
            logger.error(f"Form submission error: {e}")
            error = str(e)
            return False
        else:
            self.dispatch(FormReset(close=True))
            return True
        finally:
            self.dispatch(SubmitFinished(error=error))

    # --- read side ----------------------------------------------------------

    def stats(self) -> TradeStats:
        """Aggregate win/loss and RR figures over the current collection."""
        trades = self._state.records
        if not trades:
            return TradeStats()

        pnls = [t.pnl or 0.0 for t in trades]
        wins = [p for p in pnls if p > 0]
        losses = [p for p in pnls if p < 0]
        total_profit = sum(wins)
        total_loss = abs(sum(losses))
        count = len(trades)

        if total_loss == 0:
            profit_factor = math.inf
        else:
            profit_factor = round_half_up(total_profit / total_loss, 2)

        return TradeStats(
            total_trades=count,
            winning_trades=len(wins),
            losing_trades=len(losses),
            win_rate=round_half_up(len(wins) / count * 100, 2),
            total_pnl=round_half_up(sum(pnls), 2),
            average_rr=round_half_up(sum(t.rr or 0.0 for t in trades) / count, 2),
            average_realized_rr=round_half_up(sum(t.realized_rr or 0.0 for t in trades) / count, 2),
            profit_factor=profit_factor,
        )

    # --- files --------------------------------------------------------------

    def export_file(self, path: str | Path | None = None) -> Path:
        return export_trades(list(self._state.records), path)

    async def import_file(self, path: str | Path) -> bool:
        """Read an export and create its trades; a malformed file changes nothing."""
        records = import_trades(path)
        return await self.bulk_create(records)
