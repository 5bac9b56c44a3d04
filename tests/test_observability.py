from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from locals3.infra.observability.metrics import render_metrics
from locals3.infra.observability.middleware import ObservabilityMiddleware


def build_app(enable_metrics: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ObservabilityMiddleware, enable_metrics=enable_metrics)

    @app.get("/objects/{key}")
    def get_object(key: str, request: Request):
        request.state.operation = "FetchObject"
        return {"key": key}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def test_metrics_operation_label():
    client = TestClient(build_app())
    resp = client.get("/objects/123")
    assert resp.status_code == 200

    metrics_text = render_metrics()[0].decode()
    assert "s3_requests_total" in metrics_text
    assert 'operation="FetchObject"' in metrics_text
    assert "/objects/123" not in metrics_text


def test_unmatched_requests_share_a_label():
    client = TestClient(build_app())
    client.get("/health")
    metrics_text = render_metrics()[0].decode()
    assert 'operation="unmatched"' in metrics_text
    assert "s3_request_duration_seconds" in metrics_text


def test_request_id_propagation():
    client = TestClient(build_app(enable_metrics=False))

    # auto-generate when missing
    r1 = client.get("/health")
    rid1 = r1.headers.get("X-Request-Id")
    assert rid1 is not None and len(rid1) == 16
    assert r1.headers.get("x-amz-request-id") == rid1

    # echo when provided
    rid = "req-abc-123"
    r2 = client.get("/health", headers={"X-Request-Id": rid})
    assert r2.headers.get("X-Request-Id") == rid
    assert r2.headers.get("x-amz-request-id") == rid
