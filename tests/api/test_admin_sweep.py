from __future__ import annotations

import os
import time

from fastapi.testclient import TestClient

from conftest import CRON_SECRET, parse_xml
from locals3.common.config import Settings
from locals3.main import create_app


def _age(path, hours: float) -> None:
    stamp = time.time() - hours * 3600
    os.utime(path, (stamp, stamp))


def test_health(client):
    response = client.get("/_admin/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "storage_writable": True}


def test_sweep_deletes_only_expired_files(client, auth_headers, storage_root):
    client.put("/tmp", headers=auth_headers)
    client.put("/photos", headers=auth_headers)
    client.put("/tmp/old.txt", content=b"old", headers=auth_headers)
    client.put("/tmp/fresh.txt", content=b"fresh", headers=auth_headers)
    client.put("/photos/old.txt", content=b"kept", headers=auth_headers)
    _age(storage_root / "tmp" / "old.txt", hours=2)
    _age(storage_root / "photos" / "old.txt", hours=48)

    response = client.get(f"/_admin/sweep?secret_key={CRON_SECRET}")
    assert response.status_code == 200
    root = parse_xml(response.content)
    assert root.tag == "CronResult"
    assert root.findtext("Status") == "Success"
    assert root.findtext("ScannedFiles") == "2"
    assert root.findtext("DeletedFiles") == "1"

    assert not (storage_root / "tmp" / "old.txt").exists()
    assert (storage_root / "tmp" / "fresh.txt").exists()
    assert (storage_root / "photos" / "old.txt").exists()


def test_sweep_rejects_wrong_secret(client):
    for url in ("/_admin/sweep", "/_admin/sweep?secret_key=guess"):
        response = client.get(url)
        assert response.status_code == 403
        error = parse_xml(response.content)
        assert error.findtext("Code") == "AccessDenied"
        assert error.findtext("Message") == "Not Allowed"


def test_sweep_secret_never_reaches_the_log(client, caplog):
    client.get(f"/_admin/sweep?secret_key={CRON_SECRET}")
    client.get("/_admin/sweep?secret_key=cron-guess-999")

    records = [record for record in caplog.records if record.name == "http"]
    assert records
    for record in records:
        logged = record.getMessage() + repr(getattr(record, "extra", {}))
        assert CRON_SECRET not in logged
        assert "cron-guess-999" not in logged

    access = [record for record in records if record.getMessage().startswith("request ")]
    assert [record.extra["query"] for record in access] == [
        {"secret_key": "***"},
        {"secret_key": "***"},
    ]


def test_sweep_disabled_without_secret(storage_root):
    app = create_app(Settings(STORAGE_ROOT=storage_root, ACCESS_KEY="k"))
    response = TestClient(app).get("/_admin/sweep?secret_key=anything")
    assert response.status_code == 503
    assert parse_xml(response.content).findtext("Code") == "ServiceUnavailable"


def test_metrics_labelled_by_operation(client, auth_headers):
    client.put("/photos", headers=auth_headers)
    client.put("/photos/a.txt", content=b"a", headers=auth_headers)

    response = client.get("/_admin/metrics")
    assert response.status_code == 200
    text = response.text
    assert "s3_requests_total" in text
    assert "s3_request_duration_seconds" in text
    assert 'operation="PutObject"' in text
    assert 'operation="CreateBucket"' in text


def test_metrics_can_be_disabled(storage_root):
    app = create_app(
        Settings(STORAGE_ROOT=storage_root, ACCESS_KEY="k", ENABLE_METRICS=False)
    )
    response = TestClient(app).get("/_admin/metrics")
    assert response.status_code == 404
