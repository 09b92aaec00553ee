"""
Shared fixtures for integration tests.

Provides:
- ALB access log line and gzip file builders
- Bundled field list and compiled schema
- Temporary SQLite backend
- In-memory S3 client serving gzip log bodies
"""

import gzip
import io
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from alblogs.config import clear_settings_cache
from alblogs.ingestion import CandidateKey, SchemaBuilder, load_field_names
from alblogs.storage import get_backend
from tests.unit.conftest import make_client_error

# Fields written inside double quotes by ALB
QUOTED_FIELDS = {
    "request",
    "user_agent",
    "trace_id",
    "domain_name",
    "chosen_cert_arn",
    "actions_executed",
    "redirect_url",
    "error_reason",
    "target_port_list",
    "target_status_code_list",
    "classification",
    "classification_reason",
}

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def make_record(index: int = 0, **overrides) -> dict:
    """
    Build one ALB access log record keyed by field name.

    Records with different index values have distinct
    (request_creation_time, trace_id) pairs.
    """
    created = BASE_TIME + timedelta(milliseconds=index)
    record = {
        "type": "https",
        "time": (created + timedelta(milliseconds=5)).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "elb": "app/my-alb/50dc6c495c0c9188",
        "client_port": f"192.168.131.39:{2817 + index}",
        "target_port": "10.0.0.1:80",
        "request_processing_time": "0.000",
        "target_processing_time": "0.001",
        "response_processing_time": "0.000",
        "elb_status_code": "200",
        "target_status_code": "200",
        "received_bytes": "34",
        "sent_bytes": "366",
        "request": f"GET https://www.example.com:443/page/{index} HTTP/1.1",
        "user_agent": "curl/7.46.0",
        "ssl_cipher": "ECDHE-RSA-AES128-GCM-SHA256",
        "ssl_protocol": "TLSv1.2",
        "target_group_arn": (
            "arn:aws:elasticloadbalancing:us-east-1:123456789012:"
            "targetgroup/my-targets/73e2d6bc24d8a067"
        ),
        "trace_id": f"Root=1-58337262-{index:024x}",
        "domain_name": "www.example.com",
        "chosen_cert_arn": "-",
        "matched_rule_priority": "0",
        "request_creation_time": created.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "actions_executed": "forward",
        "redirect_url": "-",
        "error_reason": "-",
        "target_port_list": "10.0.0.1:80",
        "target_status_code_list": "200",
        "classification": "-",
        "classification_reason": "-",
        "conn_trace_id": f"TID_{index:016x}",
    }
    record.update(overrides)
    return record


def render_line(record: dict, fields) -> str:
    """Render a record as a space-separated ALB log line."""
    parts = []
    for name in fields:
        value = record[name]
        if name in QUOTED_FIELDS or " " in value or '"' in value:
            value = '"' + value.replace('"', '""') + '"'
        parts.append(value)
    return " ".join(parts)


def gzip_lines(lines) -> bytes:
    """Gzip newline-terminated lines."""
    return gzip.compress("".join(line + "\n" for line in lines).encode("utf-8"))


class InMemoryS3:
    """
    Minimal stand-in for a boto3 S3 client's get_object.

    Bodies are fresh body_class instances (BytesIO by default) so tests
    can check they get closed.
    """

    body_class = io.BytesIO

    def __init__(self, objects: dict[str, bytes] | None = None):
        self.objects = dict(objects or {})
        self.bodies: list[io.BytesIO] = []
        self.requests: list[tuple[str, str]] = []

    def get_object(self, Bucket, Key):
        self.requests.append((Bucket, Key))
        if Key not in self.objects:
            raise make_client_error("NoSuchKey", "GetObject")
        body = self.body_class(self.objects[Key])
        self.bodies.append(body)
        return {"Body": body}


@pytest.fixture
def fields():
    """Bundled field list."""
    return load_field_names()


@pytest.fixture
def schema(fields):
    """Schema compiled from the bundled field list."""
    return SchemaBuilder().build(fields)


@pytest.fixture
def temp_db_path(tmp_path):
    """Path for a temporary SQLite database."""
    return tmp_path / "alblogs" / "test.db"


@pytest.fixture
def sqlite_backend(temp_db_path, schema):
    """Initialized SQLite backend, closed after the test."""
    backend = get_backend(temp_db_path)
    backend.initialize(schema)
    yield backend
    backend.close()


@pytest.fixture
def make_log_file(fields):
    """Factory building gzip log file bytes from record indices or records."""

    def _make(records) -> bytes:
        lines = []
        for record in records:
            if isinstance(record, int):
                record = make_record(record)
            lines.append(render_line(record, fields))
        return gzip_lines(lines)

    return _make


@pytest.fixture
def candidate():
    """Factory for CandidateKey objects in a test bucket."""

    def _candidate(key: str) -> CandidateKey:
        return CandidateKey(bucket="alb-logs", key=key, last_modified=BASE_TIME)

    return _candidate


@pytest.fixture
def failing_s3():
    """S3 client whose get_object always fails with AccessDenied."""
    client = MagicMock()
    client.get_object.side_effect = make_client_error("AccessDenied", "GetObject")
    return client


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep settings lookups away from the developer's environment."""
    for var in ("ALBLOGS_CONFIG", "ALBLOGS_FIELDS_FILE", "ALBLOGS_MAX_FILES"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ALBLOGS_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("ALBLOGS_TEMP_DIR", str(tmp_path / "tmp"))
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()
