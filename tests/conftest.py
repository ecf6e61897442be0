from __future__ import annotations

import json

import pytest

import workledger.db as app_db
from workledger import models  # noqa: F401
from workledger.config import get_settings


@pytest.fixture(autouse=True)
def reset_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test_suite.db'}")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "files"))
    get_settings.cache_clear()

    # Rebuild DB bindings per test so every test gets its own writable SQLite file.
    app_db.engine.dispose()
    app_db.DATABASE_URL = app_db.get_database_url()
    app_db.engine = app_db.build_engine(app_db.DATABASE_URL)
    app_db.SessionLocal = app_db.build_session_factory(app_db.engine)

    app_db.Base.metadata.create_all(bind=app_db.engine)
    yield
    app_db.Base.metadata.drop_all(bind=app_db.engine)
    app_db.engine.dispose()
    get_settings.cache_clear()


@pytest.fixture
def workers_path():
    return get_settings().workers_path


@pytest.fixture
def write_ledger(workers_path):
    def _write(workers: list[dict]) -> None:
        workers_path.parent.mkdir(parents=True, exist_ok=True)
        workers_path.write_text(json.dumps({"workers": workers}), encoding="utf-8")

    return _write


@pytest.fixture
def read_ledger(workers_path):
    def _read() -> dict:
        return json.loads(workers_path.read_text(encoding="utf-8"))

    return _read
