"""
Selection and loading of ALB access log files.

Usage:
    from alblogs.ingestion import (
        CandidateKeySelector,
        IngestionEngine,
        SchemaBuilder,
        load_field_names,
    )

    schema = SchemaBuilder().build(load_field_names())
    candidates = CandidateKeySelector(s3).list_candidates(
        meta.bucket, meta.prefix, meta.account, meta.region, ref_time
    )
    engine = IngestionEngine(s3, backend)
    for candidate in candidates[:max_files]:
        engine.ingest(candidate, schema)
"""

from .candidates import CandidateKey, CandidateKeySelector, full_s3_prefix
from .engine import IngestionEngine
from .file_utils import iter_records, open_gzip_text
from .schema import (
    ColumnDefinition,
    ColumnType,
    SchemaBuilder,
    TableSchema,
    load_field_names,
    validate_field_names,
)

__all__ = [
    # Candidate selection
    "CandidateKey",
    "CandidateKeySelector",
    "full_s3_prefix",
    # Schema
    "ColumnType",
    "ColumnDefinition",
    "TableSchema",
    "SchemaBuilder",
    "load_field_names",
    "validate_field_names",
    # Loading
    "IngestionEngine",
    "iter_records",
    "open_gzip_text",
]
