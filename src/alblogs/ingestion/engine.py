"""
Transactional loading of ALB access log files.

Each file is fetched from S3, decompressed, split into records and
inserted inside a single transaction: either every record of the file is
committed or none is. Duplicate suppression is left to the table's unique
index (INSERT OR IGNORE), so re-loading a file is harmless.
"""

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import IngestionError, ObjectFetchError
from ..storage.base import StorageBackend, StorageError
from .candidates import CandidateKey
from .file_utils import iter_records, open_gzip_text
from .schema import TableSchema

logger = logging.getLogger(__name__)


class IngestionEngine:
    """
    Loads log files into a storage backend.

    Args:
        s3_client: boto3 "s3" client
        backend: Initialized storage backend

    Example:
        engine = IngestionEngine(s3_client, backend)
        for candidate in candidates[:max_files]:
            engine.ingest(candidate, schema)
    """

    def __init__(self, s3_client: Any, backend: StorageBackend):
        self._client = s3_client
        self._backend = backend

    def ingest(self, candidate: CandidateKey, schema: TableSchema) -> int:
        """
        Load one log file.

        Args:
            candidate: Log file to load
            schema: Table schema built from the field list

        Returns:
            Number of records read and submitted for insertion; rows
            already present in the table are ignored, not counted apart

        Raises:
            ObjectFetchError: If the object cannot be fetched
            ParseError: If the file is not gzip or a record is malformed;
                nothing from the file is committed
            IngestionError: If the database rejects a row
        """
        body = self._fetch(candidate)
        try:
            count = self._load(body, schema)
        except IngestionError as e:
            raise e.with_key(candidate.key)
        except StorageError as e:
            raise IngestionError(f"database error: {e}", key=candidate.key) from e
        except (ClientError, BotoCoreError) as e:
            raise ObjectFetchError(
                f"reading object body failed: {e}", key=candidate.key
            ) from e
        finally:
            body.close()

        logger.debug(f"Loaded {count} records from {candidate.uri}")
        return count

    def _fetch(self, candidate: CandidateKey) -> Any:
        try:
            response = self._client.get_object(
                Bucket=candidate.bucket, Key=candidate.key
            )
        except (ClientError, BotoCoreError) as e:
            raise ObjectFetchError(
                f"fetching object failed: {e}", key=candidate.key
            ) from e
        return response["Body"]

    def _load(self, body: Any, schema: TableSchema) -> int:
        names = schema.field_names
        count = 0
        with open_gzip_text(body) as text, self._backend.transaction() as cursor:
            for _, fields in iter_records(text, len(names)):
                cursor.execute(schema.insert_sql, dict(zip(names, fields)))
                count += 1
        return count
