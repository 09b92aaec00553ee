"""
Shared stream utilities for the ingestion module.

Provides decompression and record splitting for ALB access log files.
"""

import csv
import gzip
import io
import zlib
from typing import IO, BinaryIO, Iterator

from ..exceptions import ParseError

# Errors raised while inflating a damaged or non-gzip stream
DECOMPRESSION_ERRORS = (gzip.BadGzipFile, EOFError, zlib.error)

# Largest accepted field; csv defaults to 128 KiB
FIELD_SIZE_LIMIT = 2**31 - 1


def open_gzip_text(stream: BinaryIO, encoding: str = "utf-8") -> IO[str]:
    """
    Wrap a binary gzip stream as a text stream.

    Decompression happens lazily while reading; a body that is not gzip
    fails on the first read.

    Args:
        stream: Readable binary stream, e.g. an S3 response body
        encoding: Text encoding (default: utf-8); undecodable bytes are
            replaced rather than failing the file

    Returns:
        Text stream suitable for csv.reader (newline translation disabled)
    """
    gz = gzip.GzipFile(fileobj=stream, mode="rb")
    return io.TextIOWrapper(gz, encoding=encoding, errors="replace", newline="")


def iter_records(text: IO[str], field_count: int) -> Iterator[tuple[int, list[str]]]:
    """
    Split an ALB access log into records.

    Records are space-separated with double-quoted fields that may
    contain spaces; a doubled quote inside a quoted field is a literal
    quote. Blank lines are skipped.

    Args:
        text: Decompressed text stream
        field_count: Number of fields every record must have

    Yields:
        Tuples of (line_number, fields)

    Raises:
        ParseError: On malformed quoting, a wrong field count or a
            damaged compressed stream
    """
    csv.field_size_limit(FIELD_SIZE_LIMIT)
    reader = csv.reader(text, delimiter=" ", quotechar='"', strict=True)
    while True:
        try:
            fields = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            raise ParseError(
                f"malformed record: {e}", line_number=reader.line_num
            ) from e
        except DECOMPRESSION_ERRORS as e:
            raise ParseError(f"failed to decompress log file: {e}") from e

        if not fields:
            continue
        if len(fields) != field_count:
            raise ParseError(
                f"wrong number of fields: expected {field_count}, got {len(fields)}",
                line_number=reader.line_num,
                line_content=" ".join(fields),
            )
        yield reader.line_num, fields
