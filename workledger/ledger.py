"""Worker ledger models and the balance-keeping mutations applied to them."""

from __future__ import annotations

import logging
import secrets
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from workledger.errors import NotFoundError, UnknownTypeError, ValidationError
from workledger.event_ids import DELIMITER, OFF_DAY_CODE, VACATION_CODE, EventId, decode_event_id, encode_event_id

logger = logging.getLogger(__name__)

SUFFIX_BYTES = 6

Number = Union[int, float]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)


class Vacation(WireModel):
    id: str
    start: str
    end: str
    business_days: Number = Field(default=0, alias="busDays")


class OffDay(WireModel):
    id: str
    start: str
    end: str
    all_day: bool = Field(default=False, alias="allDay")
    absence_time: Number = Field(default=0, alias="absTime")
    lunch: bool = False


Event = Union[Vacation, OffDay]


class Worker(WireModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False, extra="allow")

    id: str
    name: str = Field(alias="title")
    department: str = Field(default="", alias="dep")
    color: str = ""
    available_days: Number = Field(default=0, alias="avaDays")
    compensatory_hours: Number = Field(default=0, alias="compH")
    vacations: list[Vacation] = Field(default_factory=list)
    off_days: list[OffDay] = Field(default_factory=list, alias="offDays")

    def events(self) -> list[Event]:
        return [*self.vacations, *self.off_days]


class WorkerSet(WireModel):
    workers: list[Worker] = Field(default_factory=list)


class AbsenceType(str, Enum):
    VACATION = "vacation"
    OFF_DAY = "offday"

    @property
    def code(self) -> str:
        return VACATION_CODE if self is AbsenceType.VACATION else OFF_DAY_CODE

    @classmethod
    def parse(cls, value: str) -> "AbsenceType":
        normalized = value.strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value == normalized:
                return member
        raise UnknownTypeError(f"Unknown absence type: {value}")


class AbsencePayload(WireModel):
    start: str | None = None
    end: str | None = None
    business_days: Number | None = Field(default=None, alias="busDays")
    all_day: bool | None = Field(default=None, alias="allDay")
    absence_time: Number | None = Field(default=None, alias="absTime")
    lunch: bool | None = None


class AbsenceChanges(AbsencePayload):
    id: str | None = None
    type: str | None = None


def balance_effect(event: Event) -> tuple[Number, Number]:
    """Return the (days, hours) an event adds to its worker's balances."""
    if isinstance(event, Vacation):
        return -event.business_days, 0
    if event.all_day:
        return -1, 0
    return 0, event.absence_time


def _apply(worker: Worker, event: Event, sign: int = 1) -> None:
    days, hours = balance_effect(event)
    worker.available_days += sign * days
    worker.compensatory_hours += sign * hours


def find_worker(ledger: WorkerSet, worker_id: str) -> Worker:
    for worker in ledger.workers:
        if worker.id == worker_id:
            return worker
    raise NotFoundError(f"Worker {worker_id} not found")


def _decode(event_id: str) -> EventId:
    try:
        return decode_event_id(event_id)
    except ValueError as exc:
        raise NotFoundError(f"Event {event_id} not found") from exc


def _locate_event(ledger: WorkerSet, event_id: str) -> tuple[Worker, list, int]:
    decoded = _decode(event_id)
    worker = find_worker(ledger, decoded.worker_id)
    events = worker.vacations if decoded.is_vacation else worker.off_days
    for index, event in enumerate(events):
        if event.id == event_id:
            return worker, events, index
    raise NotFoundError(f"Event {event_id} not found")


def _fresh_suffix(worker: Worker) -> str:
    taken = {event.id.rsplit(DELIMITER, 1)[-1] for event in worker.events()}
    while True:
        suffix = secrets.token_hex(SUFFIX_BYTES)
        if suffix not in taken:
            return suffix


def _event_id(worker: Worker, absence_type: AbsenceType, suffix: str) -> str:
    try:
        return encode_event_id(worker.id, absence_type.code, suffix)
    except ValueError as exc:
        raise ValidationError(f"Worker id {worker.id} cannot be used in an event identifier") from exc


def _build_event(event_id: str, absence_type: AbsenceType, start: str, end: str, payload: AbsencePayload) -> Event:
    if absence_type is AbsenceType.VACATION:
        return Vacation(id=event_id, start=start, end=end, business_days=payload.business_days or 0)
    all_day = bool(payload.all_day)
    return OffDay(
        id=event_id,
        start=start,
        end=end,
        all_day=all_day,
        absence_time=0 if all_day else payload.absence_time or 0,
        lunch=bool(payload.lunch),
    )


def _events_for(worker: Worker, absence_type: AbsenceType) -> list:
    return worker.vacations if absence_type is AbsenceType.VACATION else worker.off_days


def create_absence(
    ledger: WorkerSet,
    worker_id: str | None,
    absence: AbsencePayload | None,
    absence_type: str | None,
) -> Event:
    if not worker_id or absence is None or not absence_type:
        raise ValidationError("Worker id, absence and type are required")
    if not absence.start or not absence.end:
        raise ValidationError("Absence start and end dates are required")
    kind = AbsenceType.parse(absence_type)
    worker = find_worker(ledger, worker_id)

    event_id = _event_id(worker, kind, _fresh_suffix(worker))
    event = _build_event(event_id, kind, absence.start, absence.end, absence)
    _events_for(worker, kind).append(event)
    _apply(worker, event)
    logger.info(
        "Created %s %s for worker %s (avaDays=%s, compH=%s)",
        kind.value,
        event.id,
        worker.id,
        worker.available_days,
        worker.compensatory_hours,
    )
    return event


def _target_type(current: Event, changes: AbsenceChanges) -> AbsenceType:
    if changes.type:
        return AbsenceType.parse(changes.type)
    if changes.business_days is not None:
        return AbsenceType.VACATION
    if changes.all_day is not None or changes.absence_time is not None:
        return AbsenceType.OFF_DAY
    return AbsenceType.VACATION if isinstance(current, Vacation) else AbsenceType.OFF_DAY


def _with_current_values(current: Event, kind: AbsenceType, changes: AbsenceChanges) -> AbsenceChanges:
    # Fields left out keep their value while the event stays the same type.
    if kind is AbsenceType.VACATION and isinstance(current, Vacation):
        kept = {"business_days": current.business_days}
    elif kind is AbsenceType.OFF_DAY and isinstance(current, OffDay):
        kept = {"all_day": current.all_day, "absence_time": current.absence_time, "lunch": current.lunch}
    else:
        kept = {}
    kept.update(start=current.start, end=current.end)
    return changes.model_copy(update={key: value for key, value in kept.items() if getattr(changes, key) in (None, "")})


def update_absence(ledger: WorkerSet, event_id: str, changes: AbsenceChanges) -> Event:
    """Replace an event, moving it between lists when its type changes.

    The old event's effect is reversed and the new one applied, so the
    balances end up exactly as if the event had been deleted and recreated.
    Fields missing from ``changes`` keep their current value unless the
    event changes type, in which case they take the create defaults.
    """
    worker, events, index = _locate_event(ledger, event_id)
    current = events[index]
    kind = _target_type(current, changes)
    merged = _with_current_values(current, kind, changes)
    suffix = _decode(event_id).suffix
    replacement = _build_event(_event_id(worker, kind, suffix), kind, merged.start, merged.end, merged)

    _apply(worker, current, sign=-1)
    _apply(worker, replacement)
    target = _events_for(worker, kind)
    if target is events:
        events[index] = replacement
    else:
        del events[index]
        target.append(replacement)
    logger.info(
        "Updated event %s -> %s for worker %s (avaDays=%s, compH=%s)",
        event_id,
        replacement.id,
        worker.id,
        worker.available_days,
        worker.compensatory_hours,
    )
    return replacement


def delete_absence(ledger: WorkerSet, event_id: str) -> Event:
    worker, events, index = _locate_event(ledger, event_id)
    removed = events.pop(index)
    _apply(worker, removed, sign=-1)
    logger.info(
        "Deleted event %s for worker %s (avaDays=%s, compH=%s)",
        event_id,
        worker.id,
        worker.available_days,
        worker.compensatory_hours,
    )
    return removed


def next_worker_id(workers: list[Worker]) -> str:
    numeric = [int(worker.id) for worker in workers if worker.id.isdigit()]
    return str(max(numeric, default=0) + 1)


def add_worker(
    ledger: WorkerSet,
    name: str | None,
    department: str = "",
    color: str = "",
    available_days: Number = 0,
    compensatory_hours: Number = 0,
) -> Worker:
    if not name or not name.strip():
        raise ValidationError("Worker name is required")
    worker = Worker(
        id=next_worker_id(ledger.workers),
        name=name.strip(),
        department=department,
        color=color,
        available_days=available_days,
        compensatory_hours=compensatory_hours,
    )
    ledger.workers.append(worker)
    logger.info("Added worker %s (%s)", worker.id, worker.name)
    return worker


EDITABLE_FIELDS = ("name", "department", "color", "available_days", "compensatory_hours")


def edit_worker(ledger: WorkerSet, worker_id: str, changes: dict[str, Any]) -> Worker:
    """Shallow-merge profile and balance fields onto an existing worker."""
    worker = find_worker(ledger, worker_id)
    updates = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
    if "name" in updates and (not updates["name"] or not str(updates["name"]).strip()):
        raise ValidationError("Worker name is required")
    if "name" in updates:
        updates["name"] = str(updates["name"]).strip()
    for key, value in updates.items():
        setattr(worker, key, value)
    logger.info("Edited worker %s fields %s", worker.id, sorted(updates))
    return worker


def remove_worker(ledger: WorkerSet, worker_id: str) -> Worker:
    worker = find_worker(ledger, worker_id)
    ledger.workers = [other for other in ledger.workers if other is not worker]
    logger.info("Removed worker %s with %d events", worker.id, len(worker.events()))
    return worker
