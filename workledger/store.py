from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pydantic
from fastapi import Depends

from workledger.config import Settings, get_settings
from workledger.errors import PersistenceError
from workledger.ledger import WorkerSet

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> WorkerSet:
        if not self.path.exists():
            return WorkerSet()
        try:
            with self.path.open(encoding="utf-8") as handle:
                raw = json.load(handle)
            return WorkerSet.model_validate(raw)
        except (OSError, ValueError, pydantic.ValidationError) as exc:
            logger.exception("Failed to read worker ledger %s", self.path)
            raise PersistenceError() from exc

    def save(self, ledger: WorkerSet) -> None:
        document = ledger.model_dump(mode="json", by_alias=True)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, ensure_ascii=False, allow_nan=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except (OSError, ValueError) as exc:
            logger.exception("Failed to write worker ledger %s", self.path)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError() from exc

    @contextmanager
    def mutate(self) -> Iterator[WorkerSet]:
        """Yield the current ledger and persist it if the block succeeds."""
        with self._lock:
            ledger = self.load()
            yield ledger
            self.save(ledger)


_stores: dict[Path, LedgerStore] = {}
_stores_lock = threading.Lock()


def store_for(path: Path) -> LedgerStore:
    resolved = Path(path).resolve()
    with _stores_lock:
        store = _stores.get(resolved)
        if store is None:
            store = _stores[resolved] = LedgerStore(resolved)
        return store


def get_ledger_store(settings: Settings = Depends(get_settings)) -> LedgerStore:
    return store_for(settings.workers_path)
