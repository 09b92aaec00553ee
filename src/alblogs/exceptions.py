"""
Custom exceptions for alblogs.

Every failure the tool reports to the operator derives from AlbLogsError.
The classes mirror the error categories of a run:

- UsageError: bad command-line input
- ResolutionError / ConfigurationError: load balancer setup problems
- TransientIOError: AWS API failures (never retried)
- NoCandidatesError: nothing matched the time window
- IngestionError / ParseError: a single log file could not be loaded
- DatastoreError: the local database could not be opened or read
"""

from typing import Optional


class AlbLogsError(Exception):
    """
    Base exception for all alblogs errors.

    Allows broad exception catching at the command-line boundary.
    """

    pass


class UsageError(AlbLogsError):
    """Raised for a missing required argument or an invalid option value."""

    pass


class ResolutionError(AlbLogsError):
    """
    Raised when storage metadata for a load balancer cannot be resolved.

    Attributes:
        load_balancer: Name of the load balancer being resolved (optional)
        message: Detailed error message
    """

    def __init__(self, message: str, load_balancer: Optional[str] = None):
        self.load_balancer = load_balancer
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with load balancer context."""
        if self.load_balancer:
            return f"{self.message} (load balancer '{self.load_balancer}')"
        return self.message


class ConfigurationError(ResolutionError):
    """
    Raised when the load balancer setup prevents fetching logs.

    Covers unknown load balancers, disabled access logging, an
    undeterminable S3 bucket and malformed ARNs.
    """

    pass


class TransientIOError(AlbLogsError):
    """
    Raised when an AWS API call fails (network, auth, throttling).

    No retry is attempted; re-running the command is safe because
    ingestion is idempotent.
    """

    pass


class DiscoveryAPIError(ResolutionError, TransientIOError):
    """Raised when the load balancer control-plane API call fails."""

    pass


class ListingError(TransientIOError):
    """Raised when listing log objects in S3 fails."""

    def __init__(self, message: str, bucket: str, prefix: str):
        self.bucket = bucket
        self.prefix = prefix
        super().__init__(f"{message} (bucket={bucket!r}, prefix={prefix!r})")


class NoCandidatesError(AlbLogsError):
    """
    Raised when no log file matched the requested time window.

    Attributes:
        bucket: S3 bucket that was listed
        prefix: Full S3 prefix that was listed
    """

    def __init__(self, bucket: str, prefix: str):
        self.bucket = bucket
        self.prefix = prefix
        super().__init__(
            f"no candidate log files found, bucket {bucket!r}, prefix {prefix!r}"
        )


class DatastoreError(AlbLogsError):
    """
    Raised when the local SQLite database cannot be opened, initialized
    or read outside of a file transaction.
    """

    pass


class SchemaError(AlbLogsError):
    """
    Raised when the field list cannot be turned into a table schema.

    Attributes:
        field: The offending field name (optional)
        message: Detailed error message
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.field is not None:
            return f"{self.message} (field={self.field!r})"
        return self.message


class IngestionError(AlbLogsError):
    """
    Raised when a log file cannot be loaded into the database.

    The file's transaction has been rolled back by the time this
    propagates; files committed earlier in the run are unaffected.

    Attributes:
        key: S3 key of the log file (optional until attached)
        message: Detailed error message
    """

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.key:
            return f"ingesting {self.key!r}: {self.message}"
        return self.message

    def with_key(self, key: str) -> "IngestionError":
        """Attach the S3 key and refresh the rendered message."""
        self.key = key
        self.args = (self._format_message(),)
        return self


class ObjectFetchError(IngestionError, TransientIOError):
    """Raised when a log object cannot be fetched from S3."""

    pass


class ParseError(IngestionError):
    """
    Raised when a log file cannot be decompressed or parsed.

    Attributes:
        line_number: The line number where parsing failed (optional)
        line_content: Rendering of the problematic record (optional)
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        key: Optional[str] = None,
    ):
        self.line_number = line_number
        self.line_content = line_content
        super().__init__(message, key=key)

    def _format_message(self) -> str:
        """Format the error message with key and line context."""
        message = self.message
        if self.line_number is not None and self.line_content:
            # Truncate long lines for readability
            content = (
                self.line_content[:100] + "..."
                if len(self.line_content) > 100
                else self.line_content
            )
            message = f"{message} (line {self.line_number}: {content!r})"
        elif self.line_number is not None:
            message = f"{message} (line {self.line_number})"
        if self.key:
            return f"ingesting {self.key!r}: {message}"
        return message
