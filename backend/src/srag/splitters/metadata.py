"""Best-effort title/author/date extraction from the head of a document."""

import re
from typing import Optional

METADATA_SCAN_CHARS = 2000

AUTHOR_PATTERNS = (
    re.compile(r"author\s*:\s*([^\n\r]+)", re.IGNORECASE),
    re.compile(r"written by\s+([^\n\r,]+)", re.IGNORECASE),
    re.compile(r"created by\s+([^\n\r,]+)", re.IGNORECASE),
    re.compile(r"\bby\s+([^\n\r,]+)", re.IGNORECASE),
)

TITLE_PATTERNS = (
    re.compile(r"title\s*:\s*([^\n\r]+)", re.IGNORECASE),
    re.compile(r"^[ \t]*(\S[^\n\r]*)$", re.MULTILINE),
)

DATE_PATTERNS = (
    re.compile(r"date\s*:\s*([^\n\r]+)", re.IGNORECASE),
    re.compile(
        r"\b((?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{4})\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{2,4})\b"),
)


def _first_match(patterns: tuple[re.Pattern, ...], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_basic_metadata(text: str) -> dict[str, str]:
    """Scan the first characters of a document for author, title and date.

    Patterns are tried in order and the first non-empty match wins. Missing
    fields are simply absent from the result.
    """
    head = text[:METADATA_SCAN_CHARS]
    metadata = {}

    for field, patterns in (
        ("author", AUTHOR_PATTERNS),
        ("title", TITLE_PATTERNS),
        ("date", DATE_PATTERNS),
    ):
        value = _first_match(patterns, head)
        if value:
            metadata[field] = value

    return metadata


def format_metadata_summary(document_id: str, metadata: dict[str, str]) -> str:
    return (
        "DOCUMENT METADATA:\n"
        f"Title: {metadata.get('title') or document_id}\n"
        f"Author: {metadata.get('author') or 'Unknown'}\n"
        f"Date: {metadata.get('date') or 'Unknown'}\n"
    )
