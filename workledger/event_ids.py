from __future__ import annotations

from typing import NamedTuple

DELIMITER = "-"
VACATION_CODE = "1"
OFF_DAY_CODE = "2"


class EventId(NamedTuple):
    worker_id: str
    type_code: str
    suffix: str

    @property
    def is_vacation(self) -> bool:
        return self.type_code == VACATION_CODE


def encode_event_id(worker_id: str, type_code: str, suffix: str) -> str:
    parts = (worker_id, type_code, suffix)
    for part in parts:
        if not part:
            raise ValueError("Event identifier parts must not be empty")
        if DELIMITER in part:
            raise ValueError(f"Event identifier part {part!r} contains {DELIMITER!r}")
    return DELIMITER.join(parts)


def decode_event_id(token: str) -> EventId:
    parts = token.split(DELIMITER)
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Malformed event identifier {token!r}")
    return EventId(*parts)
