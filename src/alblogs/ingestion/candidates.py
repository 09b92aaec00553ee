"""
Selection of ALB access log files around a reference time.

ALB writes log files to
    bucket[/prefix]/AWSLogs/account/elasticloadbalancing/region/yyyy/mm/dd/
grouped by UTC day. A file containing records for the reference time is
written shortly after it, so candidates are the files of that day whose
LastModified falls within a few minutes after the reference time.
"""

import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..config.constants import (
    CANDIDATE_WINDOW,
    DATE_PATH_FORMAT,
    LOG_FILE_SUFFIX,
    LOGS_ROOT_SEGMENT,
    SERVICE_SEGMENT,
)
from ..exceptions import ListingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateKey:
    """An S3 object that plausibly holds records near the reference time."""

    bucket: str
    key: str
    last_modified: datetime

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware and in UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def full_s3_prefix(ref_time: datetime, prefix: str, account: str, region: str) -> str:
    """
    Build the S3 prefix holding the logs of ref_time's UTC day.

    Example:
        full_s3_prefix(t, "my-prefix", "123456789012", "us-east-1")
        -> "my-prefix/AWSLogs/123456789012/elasticloadbalancing/us-east-1/2024/01/15"
    """
    day = ensure_utc(ref_time).strftime(DATE_PATH_FORMAT)
    joined = posixpath.join(
        prefix, LOGS_ROOT_SEGMENT, account, SERVICE_SEGMENT, region, day
    )
    return posixpath.normpath(joined)


class CandidateKeySelector:
    """
    Lists candidate log files for a reference time.

    Args:
        s3_client: boto3 "s3" client
        window: How long after the reference time a file may be written
    """

    def __init__(self, s3_client: Any, window: timedelta = CANDIDATE_WINDOW):
        self._client = s3_client
        self.window = window

    def list_candidates(
        self,
        bucket: str,
        prefix: str,
        account: str,
        region: str,
        ref_time: datetime,
    ) -> list[CandidateKey]:
        """
        List log files written within the window after ref_time.

        Returns keys in listing order; an empty list is not an error.

        Raises:
            ListingError: If listing the bucket fails
        """
        full_prefix = full_s3_prefix(ref_time, prefix, account, region)
        return self.list_prefix(bucket, full_prefix, ref_time)

    def list_prefix(
        self, bucket: str, full_prefix: str, ref_time: datetime
    ) -> list[CandidateKey]:
        """List and filter log files under an already computed prefix."""
        not_before = ensure_utc(ref_time)
        not_after = not_before + self.window

        candidates = []
        scanned = 0
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=full_prefix):
                for obj in page.get("Contents", []):
                    scanned += 1
                    key = obj.get("Key")
                    last_modified = obj.get("LastModified")
                    if not key or last_modified is None:
                        continue
                    if not key.endswith(LOG_FILE_SUFFIX):
                        continue
                    modified = ensure_utc(last_modified)
                    if modified < not_before or modified > not_after:
                        continue
                    candidates.append(
                        CandidateKey(bucket=bucket, key=key, last_modified=modified)
                    )
        except (ClientError, BotoCoreError) as e:
            raise ListingError(
                f"listing log files failed: {e}", bucket=bucket, prefix=full_prefix
            ) from e

        logger.debug(
            f"Scanned {scanned} objects under s3://{bucket}/{full_prefix}, "
            f"{len(candidates)} candidates"
        )
        return candidates
