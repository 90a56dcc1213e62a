from __future__ import annotations

import os
import importlib
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studymentor.api.deps import get_drafting_client
from studymentor.db.base import Base
from studymentor.db.deps import get_db
from studymentor.observability import client as client_module


class _DummyTrace:
    def __init__(self, name=None, metadata=None, **kwargs):
        self.name = name
        self.metadata = metadata or {}

    def update(self, metadata=None, **kwargs):
        if metadata:
            self.metadata = {**self.metadata, **metadata}

    def end(self):
        pass


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.traces = []

    def trace(self, **kwargs):
        trace = _DummyTrace(name=kwargs.get("name"), metadata=kwargs.get("metadata"))
        self.traces.append(trace)
        return trace


@pytest.fixture()
def sqlite_override():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover - sqlite setup
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return override_get_db


@pytest.mark.skipif("OPIK_API_KEY" not in os.environ, reason="OPIK_API_KEY env var required for Opik tests")
def test_app_runs_with_opik_enabled(monkeypatch, sqlite_override):
    api_key = os.environ["OPIK_API_KEY"]
    monkeypatch.setenv("OPIK_ENABLED", "true")
    monkeypatch.setenv("OPIK_PROJECT", "studymentor-test")
    monkeypatch.setenv("OPIK_API_KEY", api_key)

    import studymentor.core.config as config_module
    import studymentor.main as main_module

    importlib.reload(config_module)
    importlib.reload(client_module)
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    client_module.reset_opik_client()
    reloaded_main = importlib.reload(main_module)

    reloaded_main.app.dependency_overrides[get_db] = sqlite_override
    reloaded_main.app.dependency_overrides[get_drafting_client] = lambda: None
    user_id = str(uuid4())

    with TestClient(reloaded_main.app) as test_client:
        assert test_client.get("/health").status_code == 200
        onboarding = test_client.post(
            "/onboarding",
            json={
                "user_id": user_id,
                "exam_date": "2030-06-01",
                "daily_available_hours": 2,
                "subjects": [{"name": "Math", "topics": [{"name": "Limits", "difficulty": "hard"}]}],
            },
        )
        assert onboarding.status_code == 200
        resp = test_client.post("/plans/today", json={"user_id": user_id})
        assert resp.status_code == 200

    trace_names = [trace.name for trace in client_module.get_opik_client().traces]
    assert "daily_plan.generate" in trace_names
    assert "metric:daily_plan.fallback.used" in trace_names

    reloaded_main.app.dependency_overrides.clear()

    monkeypatch.setenv("OPIK_ENABLED", "false")
    importlib.reload(config_module)
    importlib.reload(client_module)
    client_module.reset_opik_client()
    importlib.reload(main_module)
