from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from workledger.config import Settings, get_settings
from workledger.db import get_db
from workledger.documents import (
    SortOrder,
    add_document,
    apply_filters,
    effective_sort_field,
    load_collection,
    paginate,
    sort_items,
)
from workledger.errors import LedgerError, PersistenceError
from workledger.ledger import (
    AbsenceChanges,
    AbsencePayload,
    Number,
    add_worker,
    create_absence,
    delete_absence,
    edit_worker,
    remove_worker,
    update_absence,
)
from workledger.logging_config import setup_logging
from workledger.models import User
from workledger.security import verify_password
from workledger.store import LedgerStore, get_ledger_store

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Workledger API")
app.mount("/static", StaticFiles(directory=settings.static_dir, check_dir=False), name="static")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

EQUIPMENT_REPAIRS = "tblRepairList"
CIRCUIT_REPAIRS = "tblCircuitoList"
RESERVED_QUERY_KEYS = {"dataType", "sortField", "sortOrder", "page", "pageSize"}


@app.middleware("http")
async def disable_cache_for_api(request: Request, call_next):
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
        response.headers["Pragma"] = "no-cache"
    return response


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if not isinstance(exc, PersistenceError):
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in errors
    )
    logger.warning("%s %s invalid request: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": f"Invalid request: {detail}"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error"})


class WorkerCreatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: str | None = Field(default=None, alias="title")
    department: str = Field(default="", alias="dep")
    color: str = ""
    available_days: Number = Field(default=0, alias="avaDays")
    compensatory_hours: Number = Field(default=0, alias="compH")


class WorkerPatchPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    name: str | None = Field(default=None, alias="title")
    department: str | None = Field(default=None, alias="dep")
    color: str | None = None
    available_days: Number | None = Field(default=None, alias="avaDays")
    compensatory_hours: Number | None = Field(default=None, alias="compH")


class AbsenceCreatePayload(BaseModel):
    id: str | None = None
    absence: AbsencePayload | None = None
    type: str | None = None


class LoginPayload(BaseModel):
    user: str
    password: str


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@app.get("/api/workers")
def get_workers(store: LedgerStore = Depends(get_ledger_store)) -> dict[str, Any]:
    return dump(store.load())


@app.post("/api/workers")
def create_worker(
    payload: WorkerCreatePayload,
    store: LedgerStore = Depends(get_ledger_store),
) -> dict[str, str]:
    with store.mutate() as ledger:
        worker = add_worker(
            ledger,
            payload.name,
            department=payload.department,
            color=payload.color,
            available_days=payload.available_days,
            compensatory_hours=payload.compensatory_hours,
        )
    return {"message": f"Worker {worker.id} created"}


@app.patch("/api/workers/{worker_id}")
def patch_worker(
    worker_id: str,
    payload: WorkerPatchPayload,
    store: LedgerStore = Depends(get_ledger_store),
) -> dict[str, Any]:
    with store.mutate() as ledger:
        worker = edit_worker(ledger, worker_id, payload.model_dump(exclude_unset=True, exclude_none=True))
    return {"message": f"Worker {worker_id} updated", "worker": dump(worker)}


@app.delete("/api/workers/{worker_id}")
def delete_worker(worker_id: str, store: LedgerStore = Depends(get_ledger_store)) -> dict[str, str]:
    with store.mutate() as ledger:
        remove_worker(ledger, worker_id)
    return {"message": f"Worker {worker_id} deleted"}


@app.post("/api/absences", status_code=status.HTTP_201_CREATED)
def post_absence(
    payload: AbsenceCreatePayload,
    store: LedgerStore = Depends(get_ledger_store),
) -> dict[str, str]:
    with store.mutate() as ledger:
        event = create_absence(ledger, payload.id, payload.absence, payload.type)
    return {"message": f"Absence {event.id} created"}


@app.patch("/api/absences/{event_id}")
def patch_absence(
    event_id: str,
    payload: AbsenceChanges,
    store: LedgerStore = Depends(get_ledger_store),
) -> dict[str, Any]:
    with store.mutate() as ledger:
        event = update_absence(ledger, event_id, payload)
    return {"message": f"Absence {event_id} updated", "event": dump(event)}


@app.delete("/api/absences/{event_id}")
def remove_absence(event_id: str, store: LedgerStore = Depends(get_ledger_store)) -> dict[str, str]:
    with store.mutate() as ledger:
        delete_absence(ledger, event_id)
    return {"message": f"Absence {event_id} deleted"}


@app.get("/api/getpagdata")
def get_paginated_data(
    request: Request,
    data_type: str = Query(alias="dataType", min_length=1),
    sort_field: str = Query(default="DateTime", alias="sortField"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=30, alias="pageSize", ge=1, le=500),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    filters = {key: value for key, value in request.query_params.items() if key not in RESERVED_QUERY_KEYS}
    items = load_collection(db, data_type)
    field = effective_sort_field(items, sort_field)
    matched = sort_items(apply_filters(items, filters), field, sort_order)
    return paginate(matched, page, page_size)


@app.get("/api/getdata")
def get_data(
    data_type: str = Query(alias="dataType", min_length=1),
    sort_field: str = Query(default="DateTime", alias="sortField"),
    sort_order: SortOrder = Query(default="asc", alias="sortOrder"),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    items = load_collection(db, data_type)
    return {"data": sort_items(items, effective_sort_field(items, sort_field), sort_order)}


@app.post("/api/repairs/equipment", status_code=status.HTTP_201_CREATED)
def create_equipment_repair(
    record: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, "data": add_document(db, EQUIPMENT_REPAIRS, record)}


@app.post("/api/repairs/circuits", status_code=status.HTTP_201_CREATED)
def create_circuit_repair(
    record: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, "data": add_document(db, CIRCUIT_REPAIRS, record)}


@app.get("/api/currentDateTime")
def current_date_time() -> dict[str, str]:
    return {"dateTime": datetime.now(timezone.utc).isoformat()}


@app.post("/api/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)) -> JSONResponse:
    user = db.scalar(select(User).where(User.username == payload.user.strip()))
    if user is None or not verify_password(payload.password, user.password_hash):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": "Invalid credentials"},
        )
    if not user.is_active:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"success": False, "message": "User account is disabled"},
        )
    return JSONResponse(content={"success": True, "user": {"id": user.id, "username": user.username}})


@app.get("/health")
def health(app_settings: Settings = Depends(get_settings)) -> dict[str, bool | str]:
    return {"ok": True, "env": app_settings.environment}


@app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def api_not_found(path: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": f"API route /api/{path} not found"})


if __name__ == "__main__":
    uvicorn.run(
        "workledger.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
