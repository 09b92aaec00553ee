#!/usr/bin/env python3
"""
Regenerate the bundled ALB access log field list.

Downloads the AWS documentation page describing the access log entry
syntax, extracts the field names from the first column of the table that
follows the "access-log-entry-syntax" heading and writes them, one per
line, to src/alblogs/config/fields.txt.

Usage:
    # Refresh the bundled field list
    python scripts/update_fields.py

    # Write somewhere else
    python scripts/update_fields.py --output /tmp/fields.txt

    # Parse a saved copy of the page instead of downloading it
    python scripts/update_fields.py --html page.html
"""

import argparse
import logging
import sys
from collections import Counter
from html.parser import HTMLParser
from pathlib import Path
from typing import Optional

import httpx

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from alblogs.config import FIELD_DOCS_URL
from alblogs.pipeline import setup_logging

logger = logging.getLogger(__name__)

SECTION_ID = "access-log-entry-syntax"
HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
DEFAULT_OUTPUT = Path(__file__).parent.parent / "src" / "alblogs" / "config" / "fields.txt"
REQUEST_TIMEOUT = 30.0


class FieldListError(Exception):
    """Raised when the documentation page does not yield a usable field list."""

    pass


def normalize_field_name(text: str) -> str:
    """
    Turn a documented field name into a column name.

    Keeps ASCII letters, digits and underscores, maps ':' to '_' and drops
    everything else.

    Examples:
        >>> normalize_field_name(" client:port ")
        'client_port'
    """
    out = []
    for ch in text.strip():
        if ch == ":":
            out.append("_")
        elif ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9"):
            out.append(ch)
    return "".join(out)


class FieldTableParser(HTMLParser):
    """Collects first-column cell texts of the table after the section heading."""

    def __init__(self, section_id: str = SECTION_ID):
        super().__init__(convert_charrefs=True)
        self.section_id = section_id
        self.cells: list[str] = []
        self._want_table = False
        self._done = False
        self._table_depth = 0
        self._column = 0
        self._cell_text: Optional[list[str]] = None
        self._cell_depth = 0

    def handle_starttag(self, tag, attrs):
        if self._done:
            return
        if tag in HEADING_TAGS and dict(attrs).get("id") == self.section_id:
            self._want_table = True
            return
        if tag == "table":
            if self._table_depth:
                self._table_depth += 1
            elif self._want_table:
                self._want_table = False
                self._table_depth = 1
            return
        if not self._table_depth:
            return
        if tag == "tr":
            self._column = 0
        elif tag in ("td", "th"):
            if self._cell_text is not None:
                self._cell_depth += 1
            elif tag == "td" and self._column == 0:
                self._cell_text = []
                self._cell_depth = 1
            else:
                self._column += 1

    def handle_endtag(self, tag):
        if not self._table_depth:
            return
        if tag == "table":
            self._table_depth -= 1
            if not self._table_depth:
                self._done = True
            return
        if tag in ("td", "th") and self._cell_text is not None:
            self._cell_depth -= 1
            if not self._cell_depth:
                self.cells.append("".join(self._cell_text))
                self._cell_text = None
                self._column += 1

    def handle_data(self, data):
        if self._cell_text is not None:
            self._cell_text.append(data)


def parse_field_names(html: str) -> list[str]:
    """
    Extract the ordered field list from the documentation page.

    Raises:
        FieldListError: If no fields are found, a name is empty after
            normalization or names repeat
    """
    parser = FieldTableParser()
    parser.feed(html)
    parser.close()

    names = []
    for cell in parser.cells:
        name = normalize_field_name(cell)
        if not name:
            raise FieldListError(f"invalid field name {cell.strip()!r}")
        names.append(name)

    if not names:
        raise FieldListError("no columns found")

    counts = Counter(names)
    repeated = [f"{name!r} ({count})" for name, count in counts.items() if count > 1]
    if repeated:
        raise FieldListError(
            "non-unique column list, columns seen more than once: "
            + ", ".join(repeated)
        )
    return names


def fetch_page(url: str = FIELD_DOCS_URL) -> str:
    """Download the documentation page."""
    response = httpx.get(url, timeout=REQUEST_TIMEOUT, follow_redirects=True)
    if response.status_code != 200:
        raise FieldListError(f"unexpected status: HTTP {response.status_code}")
    return response.text


def write_fields(names: list[str], output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n".join(names) + "\n", encoding="utf-8")


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Regenerate the ALB access log field list",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Output file (default: {DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "--html",
        type=Path,
        help="Read a saved copy of the documentation page instead of downloading it",
    )
    parser.add_argument(
        "--url",
        default=FIELD_DOCS_URL,
        help="Documentation page URL",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.html:
            html = args.html.read_text(encoding="utf-8")
        else:
            logger.info(f"Fetching {args.url}")
            html = fetch_page(args.url)
        names = parse_field_names(html)
        write_fields(names, args.output)
    except (FieldListError, httpx.HTTPError, OSError) as e:
        logger.error(f"Failed to update field list: {e}")
        return 1

    logger.info(f"Wrote {len(names)} fields to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
