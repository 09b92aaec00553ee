"""
Constants for ALB access log discovery and the SQLite schema.
"""

from datetime import timedelta

# =============================================================================
# Candidate Log File Selection
# =============================================================================

# ALB delivers a log file every 5 minutes per load balancer node, so a file
# holding records for the reference time is written within this window.
CANDIDATE_WINDOW = timedelta(minutes=5)

# Default reference time when none is given: a few minutes in the past,
# so the files covering it have already been delivered.
DEFAULT_LOOKBACK = timedelta(minutes=5)

LOG_FILE_SUFFIX = ".log.gz"

# Fixed segments of the S3 layout:
# bucket[/prefix]/AWSLogs/aws-account-id/elasticloadbalancing/region/yyyy/mm/dd/
LOGS_ROOT_SEGMENT = "AWSLogs"
SERVICE_SEGMENT = "elasticloadbalancing"
DATE_PATH_FORMAT = "%Y/%m/%d"

# =============================================================================
# Load Balancer Attributes
# =============================================================================

ATTR_LOGGING_ENABLED = "access_logs.s3.enabled"
ATTR_LOGGING_BUCKET = "access_logs.s3.bucket"
ATTR_LOGGING_PREFIX = "access_logs.s3.prefix"

# =============================================================================
# SQLite Schema
# =============================================================================

TABLE_NAME = "logs"
UNIQUE_INDEX_NAME = "idx0"

# Fields stored with a native numeric type; everything else is kept verbatim.
INTEGER_FIELDS = frozenset(
    [
        "elb_status_code",
        "target_status_code",
        "received_bytes",
        "sent_bytes",
        "matched_rule_priority",
    ]
)

REAL_FIELDS = frozenset(
    [
        "request_processing_time",
        "target_processing_time",
        "response_processing_time",
    ]
)

# Together these identify a single request in the ALB logs.
REQUEST_IDENTITY_FIELDS = ("request_creation_time", "trace_id")

# =============================================================================
# Local Files
# =============================================================================

APP_NAME = "alblogs"
CACHE_FILE_NAME = "alblogs-cache.json"

FIELD_DOCS_URL = (
    "https://docs.aws.amazon.com/elasticloadbalancing/latest/application/"
    "load-balancer-access-logs.html#access-log-entry-syntax"
)
