from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from fastapi.testclient import TestClient

from locals3.common.config import Settings
from locals3.infra.storage.layout import StorageLayout
from locals3.main import create_app

ACCESS_KEY = "AKIALOCALS3TEST"
SECRET_KEY = "local-secret-key"
CRON_SECRET = "cron-secret-123"


def credential_header(access_key: str = ACCESS_KEY) -> dict[str, str]:
    return {
        "Authorization": (
            f"AWS4-HMAC-SHA256 Credential={access_key}/20240101/us-east-1/s3/aws4_request, "
            "SignedHeaders=host;x-amz-date, Signature=deadbeef"
        )
    }


def sigv4_headers(
    method: str,
    url: str,
    body: bytes = b"",
    *,
    access_key: str = ACCESS_KEY,
) -> dict[str, str]:
    """Headers an AWS SDK would send, signed with botocore."""
    request = AWSRequest(method=method, url=url, data=body)
    S3SigV4Auth(Credentials(access_key, SECRET_KEY), "s3", "us-east-1").add_auth(request)
    return {name: value for name, value in request.headers.items()}


def parse_xml(content: bytes) -> ET.Element:
    """Parse an XML body and drop namespaces so tests can use bare tags."""
    root = ET.fromstring(content)
    for element in root.iter():
        element.tag = element.tag.rsplit("}", 1)[-1]
    return root


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(storage_root: Path) -> Settings:
    return Settings(
        STORAGE_ROOT=storage_root,
        ACCESS_KEY=ACCESS_KEY,
        TEMP_BUCKETS={"tmp": 1},
        CRON_SECRET_KEY=CRON_SECRET,
    )


@pytest.fixture
def layout(storage_root: Path) -> StorageLayout:
    layout = StorageLayout(storage_root)
    layout.ensure()
    return layout


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return credential_header()


@pytest.fixture
def bucket(client: TestClient, auth_headers: dict[str, str]) -> str:
    response = client.put("/photos", headers=auth_headers)
    assert response.status_code == 200
    return "photos"
