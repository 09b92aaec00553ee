"""
End-to-end run: resolve, select, load.

Wires the metadata resolver, candidate selection, schema builder and
ingestion engine for a single load balancer. Steps run strictly one after
another; the first failure ends the run, leaving files committed so far
in the database.
"""

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError

from ..config.constants import TABLE_NAME
from ..config.settings import Settings, get_settings
from ..exceptions import (
    ConfigurationError,
    DatastoreError,
    NoCandidatesError,
    UsageError,
)
from ..ingestion import (
    CandidateKeySelector,
    IngestionEngine,
    SchemaBuilder,
    full_s3_prefix,
    load_field_names,
)
from ..metadata import MetadataCache, MetadataResolver
from ..storage import StorageError, get_backend

logger = logging.getLogger(__name__)

QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure logging for command-line use.

    INFO prints bare progress messages; DEBUG adds timestamps and
    logger names. AWS SDK loggers stay at WARNING either way.
    """
    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    else:
        fmt = "%(message)s"
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@dataclass
class RunOptions:
    """Inputs of a single run."""

    load_balancer: str
    reference_time: datetime
    max_files: int = 1
    db_path: Optional[Path] = None

    def validate(self) -> None:
        """
        Raises:
            UsageError: On a missing name or a non-positive file count
        """
        if not self.load_balancer:
            raise UsageError("load balancer name is required")
        if self.max_files < 1:
            raise UsageError("number of candidate log files must be a positive number")


@dataclass
class RunResult:
    """Result of a run."""

    load_balancer: str
    db_path: Path
    bucket: str
    prefix: str
    started_at: datetime = field(default_factory=lambda: datetime.now().astimezone())
    completed_at: Optional[datetime] = None
    # Stats
    candidates_found: int = 0
    files_ingested: int = 0
    rows_attempted: int = 0
    row_count: int = 0
    ingested_keys: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get run duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "load_balancer": self.load_balancer,
            "db_path": str(self.db_path),
            "bucket": self.bucket,
            "prefix": self.prefix,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "duration_seconds": self.duration_seconds,
            "candidates_found": self.candidates_found,
            "files_ingested": self.files_ingested,
            "rows_attempted": self.rows_attempted,
            "row_count": self.row_count,
            "ingested_keys": self.ingested_keys,
        }


def create_clients(settings: Settings) -> tuple[Any, Any]:
    """
    Create the S3 and ELBv2 clients for a run.

    Returns:
        Tuple of (s3_client, elbv2_client)

    Raises:
        ConfigurationError: If the AWS profile or region setup is invalid
    """
    try:
        session = boto3.Session(
            profile_name=settings.aws_profile,
            region_name=settings.aws_region,
        )
        return session.client("s3"), session.client("elbv2")
    except BotoCoreError as e:
        raise ConfigurationError(f"cannot set up AWS session: {e}") from e


def run(
    options: RunOptions,
    settings: Optional[Settings] = None,
    *,
    s3_client: Any = None,
    elbv2_client: Any = None,
) -> RunResult:
    """
    Load access logs around a reference time into SQLite.

    Args:
        options: What to load
        settings: Settings (defaults to get_settings())
        s3_client: boto3 S3 client (created from settings if None)
        elbv2_client: boto3 ELBv2 client (created from settings if None)

    Returns:
        RunResult; the database is closed when this returns

    Raises:
        UsageError, ResolutionError, TransientIOError,
        NoCandidatesError, IngestionError, SchemaError, DatastoreError
    """
    started_at = datetime.now().astimezone()
    options.validate()
    settings = settings or get_settings()

    if s3_client is None or elbv2_client is None:
        default_s3, default_elbv2 = create_clients(settings)
        s3_client = s3_client or default_s3
        elbv2_client = elbv2_client or default_elbv2

    cache = MetadataCache(settings.cache_file).load()
    meta = MetadataResolver(elbv2_client, cache).resolve(options.load_balancer)

    prefix = full_s3_prefix(
        options.reference_time, meta.prefix, meta.account, meta.region
    )
    logger.info("Fetching candidate log files list, this may take a while")
    selector = CandidateKeySelector(s3_client)
    candidates = selector.list_prefix(meta.bucket, prefix, options.reference_time)
    if not candidates:
        raise NoCandidatesError(meta.bucket, prefix)

    db_path = options.db_path or settings.database_path(options.load_balancer)
    schema = SchemaBuilder().build(load_field_names(settings.fields_file))

    result = RunResult(
        load_balancer=options.load_balancer,
        db_path=Path(db_path),
        bucket=meta.bucket,
        prefix=prefix,
        started_at=started_at,
        candidates_found=len(candidates),
    )

    try:
        with get_backend(db_path) as backend:
            backend.initialize(schema)
            engine = IngestionEngine(s3_client, backend)
            for i, candidate in enumerate(candidates):
                if i == options.max_files:
                    break
                logger.info(f"Processing {candidate.uri}")
                result.rows_attempted += engine.ingest(candidate, schema)
                result.files_ingested += 1
                result.ingested_keys.append(candidate.key)
            result.row_count = backend.get_table_row_count(TABLE_NAME)
    except StorageError as e:
        raise DatastoreError(str(e)) from e

    skipped = len(candidates) - result.files_ingested
    if skipped:
        logger.debug(f"Left {skipped} candidate files unprocessed")

    result.completed_at = datetime.now().astimezone()
    return result
