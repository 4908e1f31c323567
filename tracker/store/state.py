"""Trade store state and its reducer.

Every transition is ``reduce(state, action) -> new state``. State objects are
never mutated; each handler returns a fresh ``TradeState`` built with
``dataclasses.replace``.
"""

import logging
from dataclasses import dataclass, field, replace
from functools import singledispatch

from tracker.schemas.trade import TradeRecord
from tracker.utils.constants import DEFAULT_SIDE, DEFAULT_TIMEFRAME

logger = logging.getLogger(__name__)


def default_form_values() -> dict:
    return {"side": DEFAULT_SIDE, "timeframe": DEFAULT_TIMEFRAME}


@dataclass(frozen=True)
class TradeState:
    records: tuple[TradeRecord, ...] = ()
    versions: dict[str, int] = field(default_factory=dict)  # record key -> update sequence
    is_loading: bool = False
    error: str | None = None

    form_data: dict = field(default_factory=default_form_values)
    is_submitting: bool = False
    form_error: str | None = None
    show_form: bool = False
    is_edit_mode: bool = False
    editing_trade_id: str | None = None
    validation_errors: dict[str, str] = field(default_factory=dict)

    def find(self, key: str) -> TradeRecord | None:
        for record in self.records:
            if record.key == key:
                return record
        return None


# --- actions: trade data ---------------------------------------------------

@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class LoadSucceeded:
    records: tuple[TradeRecord, ...]


@dataclass(frozen=True)
class RequestStarted:
    pass


@dataclass(frozen=True)
class RequestFinished:
    pass


@dataclass(frozen=True)
class RequestFailed:
    error: str


@dataclass(frozen=True)
class RecordsAdded:
    records: tuple[TradeRecord, ...]


@dataclass(frozen=True)
class CreateReconciled:
    provisional: TradeRecord
    saved: TradeRecord


@dataclass(frozen=True)
class BulkCreateReconciled:
    provisional: tuple[TradeRecord, ...]
    saved: tuple[TradeRecord, ...]


@dataclass(frozen=True)
class RecordReplaced:
    record: TradeRecord


@dataclass(frozen=True)
class UpdateReconciled:
    trade_id: str
    version: int
    saved: TradeRecord


@dataclass(frozen=True)
class RecordsRemoved:
    ids: tuple[str, ...]


# --- actions: form ---------------------------------------------------------

@dataclass(frozen=True)
class FormDataSet:
    data: dict


@dataclass(frozen=True)
class FormFieldChanged:
    field: str
    value: object
    derived: dict


@dataclass(frozen=True)
class FormReset:
    close: bool = False


@dataclass(frozen=True)
class FormToggled:
    pass


@dataclass(frozen=True)
class EditFormOpened:
    record: TradeRecord


@dataclass(frozen=True)
class ValidationFailed:
    errors: dict[str, str]
    message: str = "Please fix the highlighted fields"


@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class SubmitFinished:
    error: str | None = None


# --- reducer ---------------------------------------------------------------

@singledispatch
def _apply(action, state: TradeState) -> TradeState:
    raise TypeError(f"Unknown trade store action: {type(action).__name__}")


@_apply.register
def _(action: LoadStarted, state: TradeState) -> TradeState:
    return replace(state, is_loading=True, error=None)


@_apply.register
def _(action: LoadSucceeded, state: TradeState) -> TradeState:
    return replace(state, records=tuple(action.records), versions={}, is_loading=False)


@_apply.register
def _(action: RequestStarted, state: TradeState) -> TradeState:
    return replace(state, is_loading=True, error=None)


@_apply.register
def _(action: RequestFinished, state: TradeState) -> TradeState:
    return replace(state, is_loading=False)


@_apply.register
def _(action: RequestFailed, state: TradeState) -> TradeState:
    return replace(state, error=action.error, is_loading=False)


@_apply.register
def _(action: RecordsAdded, state: TradeState) -> TradeState:
    return replace(state, records=state.records + tuple(action.records))


def _same_trade(record: TradeRecord, provisional: TradeRecord) -> bool:
    """Match an unsaved local record to the provisional sent in a create request."""
    if record.id:
        return False
    if provisional.client_id and record.client_id:
        return record.client_id == provisional.client_id
    # No token on one side: fall back to the natural key
    return (
        record.symbol == provisional.symbol
        and record.entry_price == provisional.entry_price
        and record.entry_time == provisional.entry_time
    )


@_apply.register
def _(action: CreateReconciled, state: TradeState) -> TradeState:
    records = []
    replaced = False
    for record in state.records:
        if not replaced and _same_trade(record, action.provisional):
            records.append(action.saved)
            replaced = True
        else:
            records.append(record)
    if not replaced:
        logger.warning(
            f"Created trade {action.saved.id} has no provisional match; appending"
        )
        records.append(action.saved)
    return replace(state, records=tuple(records))


@_apply.register
def _(action: BulkCreateReconciled, state: TradeState) -> TradeState:
    kept = tuple(
        r for r in state.records
        if not any(_same_trade(r, p) for p in action.provisional)
    )
    return replace(state, records=kept + tuple(action.saved))


@_apply.register
def _(action: RecordReplaced, state: TradeState) -> TradeState:
    key = action.record.key
    records = tuple(action.record if r.key == key else r for r in state.records)
    versions = dict(state.versions)
    versions[key] = versions.get(key, 0) + 1
    return replace(state, records=records, versions=versions)


@_apply.register
def _(action: UpdateReconciled, state: TradeState) -> TradeState:
    current = state.versions.get(action.trade_id, 0)
    if current != action.version:
        logger.info(
            f"Discarding stale update response for trade {action.trade_id} "
            f"(version {action.version}, current {current})"
        )
        return state

    def merge(record: TradeRecord) -> TradeRecord:
        server_fields = action.saved.model_dump(exclude_unset=True)
        merged = {**record.model_dump(), **server_fields}
        merged["id"] = action.saved.id or record.id
        return TradeRecord.model_validate(merged)

    records = tuple(merge(r) if r.id == action.trade_id else r for r in state.records)
    return replace(state, records=records)


@_apply.register
def _(action: RecordsRemoved, state: TradeState) -> TradeState:
    ids = set(action.ids)
    records = tuple(r for r in state.records if r.id not in ids)
    versions = {k: v for k, v in state.versions.items() if k not in ids}
    return replace(state, records=records, versions=versions)


@_apply.register
def _(action: FormDataSet, state: TradeState) -> TradeState:
    return replace(state, form_data=dict(action.data))


@_apply.register
def _(action: FormFieldChanged, state: TradeState) -> TradeState:
    form_data = {**state.form_data, action.field: action.value, **action.derived}
    validation_errors = {k: v for k, v in state.validation_errors.items() if k != action.field}
    return replace(
        state,
        form_data=form_data,
        form_error=None,
        validation_errors=validation_errors,
    )


@_apply.register
def _(action: FormReset, state: TradeState) -> TradeState:
    return replace(
        state,
        form_data=default_form_values(),
        form_error=None,
        validation_errors={},
        is_edit_mode=False,
        editing_trade_id=None,
        show_form=False if action.close else state.show_form,
    )


@_apply.register
def _(action: FormToggled, state: TradeState) -> TradeState:
    return replace(state, show_form=not state.show_form)


@_apply.register
def _(action: EditFormOpened, state: TradeState) -> TradeState:
    return replace(
        state,
        form_data=action.record.model_dump(exclude={"client_id"}),
        show_form=True,
        is_edit_mode=True,
        editing_trade_id=action.record.id,
        form_error=None,
        validation_errors={},
    )


@_apply.register
def _(action: ValidationFailed, state: TradeState) -> TradeState:
    return replace(state, validation_errors=dict(action.errors), form_error=action.message)


@_apply.register
def _(action: SubmitStarted, state: TradeState) -> TradeState:
    return replace(state, is_submitting=True, form_error=None)


@_apply.register
def _(action: SubmitFinished, state: TradeState) -> TradeState:
    return replace(state, is_submitting=False, form_error=action.error or state.form_error)


def reduce(state: TradeState, action) -> TradeState:
    return _apply(action, state)
