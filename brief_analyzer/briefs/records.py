"""Id-addressed operations over a brief's sub-record collections.

Deliverables, missing-info entries and questions are stored as ordered lists,
but callers address them by their stable ``id`` rather than by position.
All helpers return new lists and leave the input untouched.
"""

from __future__ import annotations

from typing import Protocol, TypeVar


class HasId(Protocol):
    id: str


R = TypeVar("R", bound=HasId)


def find_record(records: list[R], record_id: str) -> R:
    for record in records:
        if record.id == record_id:
            return record
    raise KeyError(record_id)


def append_record(records: list[R], record: R) -> list[R]:
    if any(r.id == record.id for r in records):
        raise ValueError(f"Duplicate record id {record.id}")
    return [*records, record]


def replace_record(records: list[R], record_id: str, record: R) -> list[R]:
    find_record(records, record_id)
    return [record if r.id == record_id else r for r in records]


def remove_record(records: list[R], record_id: str) -> list[R]:
    find_record(records, record_id)
    return [r for r in records if r.id != record_id]
