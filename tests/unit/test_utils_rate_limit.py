import time
import pytest
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

from salonbook.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.post("/limited", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited():
        return {"ok": True}

    @app.post("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_local_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2))
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 429


def test_limit_is_per_path_and_bearer_token(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1))
    headers_a = {"Authorization": "Bearer user-a"}
    headers_b = {"Authorization": "Bearer user-b"}
    assert client.post("/limited", headers=headers_a).status_code == 200
    assert client.post("/limited", headers=headers_a).status_code == 429
    assert client.post("/limited", headers=headers_b).status_code == 200
    assert client.post("/limitedB", headers=headers_a).status_code == 200


def test_window_resets(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=1))
    assert client.post("/limited").status_code == 200
    assert client.post("/limited").status_code == 429
    time.sleep(1.1)
    assert client.post("/limited").status_code == 200


def test_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1)
    app.state.rate_limit_enabled = False
    client = TestClient(app)
    for _ in range(3):
        assert client.post("/limited").status_code == 200


def test_health_info_without_redis(monkeypatch):
    from fastapi_limiter import FastAPILimiter
    monkeypatch.setattr(FastAPILimiter, "redis", None, raising=False)
    app = _make_app()
    app.state.rate_limit_enabled = True
    info = TestClient(app).get("/rl_info").json()
    assert info == {"enabled": True, "ready": False, "backend": None}


def test_health_info_with_redis(monkeypatch):
    from fastapi_limiter import FastAPILimiter
    monkeypatch.setattr(FastAPILimiter, "redis", object(), raising=False)
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info = TestClient(_make_app()).get("/rl_info").json()
    assert info["backend"] == "redis"
    assert info["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}
