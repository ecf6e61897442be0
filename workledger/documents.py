from __future__ import annotations

import math
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from workledger.models import Document

SortOrder = Literal["asc", "desc"]


def serialize_document(document: Document) -> dict[str, Any]:
    return {**document.payload, "_id": str(document.id)}


def load_collection(db: Session, collection: str) -> list[dict[str, Any]]:
    documents = db.scalars(
        select(Document).where(Document.collection == collection).order_by(Document.id)
    ).all()
    return [serialize_document(document) for document in documents]


def add_document(db: Session, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
    body = {key: value for key, value in payload.items() if key != "_id"}
    document = Document(collection=collection, payload=body)
    db.add(document)
    db.commit()
    db.refresh(document)
    return serialize_document(document)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def apply_filters(items: list[dict[str, Any]], filters: dict[str, str]) -> list[dict[str, Any]]:
    """Keep items whose fields contain every non-empty filter value, ignoring case."""
    active = {key: needle.lower() for key, needle in filters.items() if needle}
    return [
        item
        for item in items
        if all(not _is_blank(item.get(key)) and needle in str(item[key]).lower() for key, needle in active.items())
    ]


def effective_sort_field(items: list[dict[str, Any]], requested: str) -> str:
    if items and requested in items[0]:
        return requested
    if items and "ID" in items[0]:
        return "ID"
    return "_id"


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value))


def sort_items(items: list[dict[str, Any]], field: str, order: SortOrder = "asc") -> list[dict[str, Any]]:
    present = [item for item in items if not _is_blank(item.get(field))]
    missing = [item for item in items if _is_blank(item.get(field))]
    present.sort(key=lambda item: _sort_key(item[field]), reverse=order == "desc")
    return present + missing


def paginate(items: list[dict[str, Any]], page: int, page_size: int) -> dict[str, Any]:
    total_items = len(items)
    start = (page - 1) * page_size
    return {
        "data": items[start : start + page_size],
        "totalItems": total_items,
        "totalPages": math.ceil(total_items / page_size),
        "currentPage": page,
    }
