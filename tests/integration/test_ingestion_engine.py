"""
Integration tests for transactional log file loading.

Tests:
- Loading a file into SQLite with typed columns
- Idempotent re-ingestion of the same file
- Rollback of a file containing a malformed record
- Rollback of a file interrupted part way through
- Whole-row deduplication when trace_id is not logged
- Fetch failures and non-gzip bodies
"""

import io

import pytest

from alblogs.exceptions import IngestionError, ObjectFetchError, ParseError
from alblogs.ingestion import IngestionEngine, SchemaBuilder
from alblogs.storage import get_backend
from tests.integration.conftest import (
    InMemoryS3,
    gzip_lines,
    make_record,
    render_line,
)

KEY_A = "AWSLogs/123456789012/elasticloadbalancing/us-east-1/2024/01/15/a.log.gz"
KEY_B = "AWSLogs/123456789012/elasticloadbalancing/us-east-1/2024/01/15/b.log.gz"


def row_count(backend) -> int:
    return backend.get_table_row_count("logs")


class TestIngest:
    """Tests for IngestionEngine.ingest."""

    def test_loads_all_records(self, sqlite_backend, schema, make_log_file, candidate):
        s3 = InMemoryS3({KEY_A: make_log_file(range(3))})

        loaded = IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema)

        assert loaded == 3
        assert row_count(sqlite_backend) == 3
        assert s3.requests == [("alb-logs", KEY_A)]

    def test_column_values(self, sqlite_backend, schema, make_log_file, candidate):
        s3 = InMemoryS3({KEY_A: make_log_file([0])})
        IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema)

        (row,) = sqlite_backend.query(
            'SELECT "request", "elb_status_code", "target_processing_time", '
            '"chosen_cert_arn", "client_port" FROM "logs"'
        )

        assert row["request"] == "GET https://www.example.com:443/page/0 HTTP/1.1"
        assert row["elb_status_code"] == 200
        assert row["target_processing_time"] == pytest.approx(0.001)
        assert row["chosen_cert_arn"] == "-"
        assert row["client_port"] == "192.168.131.39:2817"

    def test_dash_in_numeric_column_kept(
        self, sqlite_backend, schema, fields, candidate
    ):
        """A target that never answered logs "-" for its status and timings."""
        record = make_record(
            0, target_status_code="-", target_processing_time="-1", target_port="-"
        )
        s3 = InMemoryS3({KEY_A: gzip_lines([render_line(record, fields)])})
        IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema)

        (row,) = sqlite_backend.query(
            'SELECT "target_status_code", "target_processing_time" FROM "logs"'
        )

        assert row["target_status_code"] == "-"
        assert row["target_processing_time"] == -1.0

    def test_reingest_is_idempotent(
        self, sqlite_backend, schema, make_log_file, candidate
    ):
        s3 = InMemoryS3({KEY_A: make_log_file(range(5))})
        engine = IngestionEngine(s3, sqlite_backend)

        engine.ingest(candidate(KEY_A), schema)
        engine.ingest(candidate(KEY_A), schema)

        assert row_count(sqlite_backend) == 5

    def test_overlapping_files(self, sqlite_backend, schema, make_log_file, candidate):
        s3 = InMemoryS3({KEY_A: make_log_file([0, 1, 2]), KEY_B: make_log_file([2, 3])})
        engine = IngestionEngine(s3, sqlite_backend)

        engine.ingest(candidate(KEY_A), schema)
        engine.ingest(candidate(KEY_B), schema)

        assert row_count(sqlite_backend) == 4

    def test_reopened_database_keeps_dedup(
        self, temp_db_path, schema, make_log_file, candidate
    ):
        s3 = InMemoryS3({KEY_A: make_log_file(range(2))})
        for _ in range(2):
            with get_backend(temp_db_path) as backend:
                backend.initialize(schema)
                IngestionEngine(s3, backend).ingest(candidate(KEY_A), schema)

        with get_backend(temp_db_path) as backend:
            assert row_count(backend) == 2

    def test_body_closed(self, sqlite_backend, schema, make_log_file, candidate):
        s3 = InMemoryS3({KEY_A: make_log_file([0])})

        IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema)

        assert all(body.closed for body in s3.bodies)

    def test_empty_file(self, sqlite_backend, schema, candidate):
        s3 = InMemoryS3({KEY_A: gzip_lines([])})

        assert IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema) == 0


class TestAtomicity:
    """A file is committed entirely or not at all."""

    def test_bad_record_rolls_back_file(
        self, sqlite_backend, schema, fields, make_log_file, candidate
    ):
        good_lines = [render_line(make_record(i), fields) for i in (10, 11)]
        bad_file = gzip_lines(good_lines + ["too few fields"])
        s3 = InMemoryS3({KEY_A: make_log_file([0, 1]), KEY_B: bad_file})
        engine = IngestionEngine(s3, sqlite_backend)

        engine.ingest(candidate(KEY_A), schema)
        with pytest.raises(ParseError) as exc_info:
            engine.ingest(candidate(KEY_B), schema)

        error = exc_info.value
        assert error.key == KEY_B
        assert error.line_number == 3
        assert KEY_B in str(error)
        # The earlier file stays committed, nothing from the bad one does
        assert row_count(sqlite_backend) == 2
        assert all(body.closed for body in s3.bodies)

    def test_backend_usable_after_rollback(
        self, sqlite_backend, schema, make_log_file, candidate
    ):
        s3 = InMemoryS3({KEY_A: gzip_lines(['"unterminated']), KEY_B: make_log_file([0])})
        engine = IngestionEngine(s3, sqlite_backend)

        with pytest.raises(ParseError):
            engine.ingest(candidate(KEY_A), schema)
        engine.ingest(candidate(KEY_B), schema)

        assert row_count(sqlite_backend) == 1

    def test_interrupt_rolls_back_file(
        self, sqlite_backend, schema, make_log_file, candidate
    ):
        """KeyboardInterrupt while reading a file leaves none of its rows."""
        data = make_log_file(range(100, 400))
        rows_before_interrupt = []

        class InterruptingBody(io.BytesIO):
            def read(self, size=-1):
                if self.tell() >= len(data) // 2:
                    rows_before_interrupt.append(row_count(sqlite_backend))
                    raise KeyboardInterrupt
                if size is None or size < 0 or size > 256:
                    size = 256
                return super().read(size)

        s3 = InMemoryS3({KEY_A: make_log_file([0, 1]), KEY_B: data})
        engine = IngestionEngine(s3, sqlite_backend)
        engine.ingest(candidate(KEY_A), schema)

        s3.body_class = InterruptingBody
        with pytest.raises(KeyboardInterrupt):
            engine.ingest(candidate(KEY_B), schema)

        # Rows of the interrupted file were inserted, then rolled back
        assert rows_before_interrupt[0] > 2
        assert row_count(sqlite_backend) == 2
        assert not sqlite_backend._connection.in_transaction
        assert all(body.closed for body in s3.bodies)

    def test_not_gzip(self, sqlite_backend, schema, candidate):
        s3 = InMemoryS3({KEY_A: b"http 2024-01-15T10:00:00Z plain text\n"})

        with pytest.raises(ParseError, match="decompress") as exc_info:
            IngestionEngine(s3, sqlite_backend).ingest(candidate(KEY_A), schema)

        assert exc_info.value.key == KEY_A
        assert row_count(sqlite_backend) == 0

    def test_database_error_wrapped(self, temp_db_path, make_log_file, candidate):
        """Rows that do not fit the table surface as IngestionError."""
        wide = SchemaBuilder().build(["type", "time", "extra"])
        narrow = SchemaBuilder().build(["type", "time"])
        s3 = InMemoryS3({KEY_A: gzip_lines(["http 2024 x"])})

        with get_backend(temp_db_path) as backend:
            backend.initialize(narrow)
            with pytest.raises(IngestionError, match="database error") as exc_info:
                IngestionEngine(s3, backend).ingest(candidate(KEY_A), wide)

        assert exc_info.value.key == KEY_A


class TestWholeRowFallback:
    """Deduplication when the field list lacks trace_id."""

    FIELDS = ["type", "time", "request_creation_time", "request"]

    def test_identical_rows_collapse(self, temp_db_path, candidate):
        schema = SchemaBuilder().build(self.FIELDS)
        line = 'http 2024-01-15T10:00:01Z 2024-01-15T10:00:00Z "GET / HTTP/1.1"'
        other = 'http 2024-01-15T10:00:02Z 2024-01-15T10:00:00Z "GET / HTTP/1.1"'
        s3 = InMemoryS3({KEY_A: gzip_lines([line, line, other])})

        with get_backend(temp_db_path) as backend:
            backend.initialize(schema)
            loaded = IngestionEngine(s3, backend).ingest(candidate(KEY_A), schema)
            rows = row_count(backend)

        assert loaded == 3
        assert rows == 2


class TestFetchFailures:
    """Tests for S3 fetch errors."""

    def test_missing_object(self, sqlite_backend, schema, candidate):
        with pytest.raises(ObjectFetchError) as exc_info:
            IngestionEngine(InMemoryS3(), sqlite_backend).ingest(
                candidate(KEY_A), schema
            )

        assert exc_info.value.key == KEY_A

    def test_access_denied(self, sqlite_backend, schema, failing_s3, candidate):
        with pytest.raises(ObjectFetchError, match="AccessDenied"):
            IngestionEngine(failing_s3, sqlite_backend).ingest(candidate(KEY_A), schema)
        assert row_count(sqlite_backend) == 0
