"""
End-to-end tests for the assembled application.
"""

from fastapi.testclient import TestClient

from app import create_app
from respcache.config import Settings
from respcache.sweeper import ExpirySweeper


def make_settings(tmp_path, **overrides):
    values = {"database_url": f"sqlite:///{tmp_path / 'app.db'}"}
    values.update(overrides)
    return Settings(**values)


def test_root_is_cached(tmp_path):
    app = create_app(make_settings(tmp_path, cache_ttl_seconds=120))

    with TestClient(app) as client:
        first = client.get("/")
        second = client.get("/")

        assert first.status_code == second.status_code == 200
        assert first.json()["cache"]["ttl_seconds"] == 120
        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert second.json() == first.json()
        assert app.state.cache_store.count("/") == 1


def test_docs_are_not_cached(tmp_path):
    app = create_app(make_settings(tmp_path))

    with TestClient(app) as client:
        client.get("/docs")
        response = client.get("/docs")

        assert response.headers["content-type"].startswith("text/html")
        assert app.state.cache_store.count() == 0


def test_lifespan_runs_sweeper(tmp_path):
    app = create_app(make_settings(tmp_path))
    sweeper: ExpirySweeper = app.state.sweeper

    with TestClient(app):
        assert sweeper.running

    assert not sweeper.running


def test_settings_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'env.db'}")
    monkeypatch.setenv("CACHE_SWEEP_INTERVAL_SECONDS", "90")

    app = create_app()

    assert app.state.sweeper.interval == 90
