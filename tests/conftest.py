# tests/conftest.py
import os
from uuid import uuid4

# --- Configure env for tests *before* importing app code ---
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AWS_REGION", "eu-west-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("TX_PASSCODE", "4321")
os.environ.setdefault("ADMIN_USER", "admin")
os.environ.setdefault("ADMIN_PASS", "AdminTest123!")
# Ensure we always have a bucket name for tests
os.environ.setdefault("S3_BUCKET", f"ft-test-{uuid4().hex}")

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
import boto3

# Import after env is set so settings reads the values above
from app.config import settings
import app.main as app
from app.services.bootstrap import seed_admin
from app.services.dates import utc_today

PASSCODE = "4321"


def _empty_bucket(s3, bucket_name: str):
    """Helper: delete all objects in the bucket."""
    if not bucket_name:
        return
    resp = s3.list_objects_v2(Bucket=bucket_name)
    for obj in resp.get("Contents", []):
        s3.delete_object(Bucket=bucket_name, Key=obj["Key"])


@pytest.fixture(scope="session", autouse=True)
def aws_moto():
    """Global Moto for all tests (no real AWS calls)."""
    with mock_aws():
        yield


@pytest.fixture(scope="session", autouse=True)
def setup_s3(aws_moto):
    """Create the test bucket inside Moto."""
    bucket_name = settings.s3_bucket
    region = settings.aws_region
    s3 = boto3.client("s3", region_name=region)

    # us-east-1 doesn't need LocationConstraint; others do
    if region == "us-east-1":
        s3.create_bucket(Bucket=bucket_name)
    else:
        s3.create_bucket(
            Bucket=bucket_name,
            CreateBucketConfiguration={"LocationConstraint": region},
        )

    yield s3, bucket_name

    # Final cleanup
    _empty_bucket(s3, bucket_name)


@pytest.fixture(autouse=True)
def clean_bucket(setup_s3):
    """Ensure the bucket is empty before each test."""
    s3, bucket_name = setup_s3
    _empty_bucket(s3, bucket_name)
    yield


@pytest.fixture(scope="function")
def client():
    return TestClient(app.app)


@pytest.fixture
def admin_headers(client):
    seed_admin("upsert", settings.admin_user, settings.admin_pass)
    r = client.post("/api/auth/login", json={"username": settings.admin_user, "password": settings.admin_pass})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def passcode_headers(admin_headers):
    return {**admin_headers, "X-Passcode": PASSCODE}


@pytest.fixture
def create_finance(client, admin_headers):
    """Factory: create a finance through the API and return its id."""

    def _create(**overrides):
        payload = {
            "name": "Ravi Kumar",
            "contact": "98450 00000",
            "amount": 10000,
            "interest_rate": 12,
        }
        payload.update(overrides)
        payload = {k: v for k, v in payload.items() if v is not None}
        r = client.post("/api/finance", json=payload, headers=admin_headers)
        assert r.status_code == 200, r.text
        return r.json()["id"]

    return _create


def _months_ago(n: int):
    today = utc_today()
    y, m = divmod(today.year * 12 + today.month - 1 - n, 12)
    return today.replace(year=y, month=m + 1, day=1)


@pytest.fixture
def months_ago():
    """First day of the month ``n`` months before today (UTC)."""
    return _months_ago
