"""
Markdown parser for story and feature documents.

Documents have no frontmatter; their structure is read from the text itself:

    # Add login button            <- title (first non-blank line)

    Labels: auth, frontend        <- optional, anywhere in the document
    Feature: #7                   <- optional parent feature reference

    As a user I want ...          <- description (everything after the
                                     first blank run following the title)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path


# =============================================================================
# PATTERNS
# =============================================================================

TITLE_PREFIX_PATTERN = re.compile(r"^#+\s*")
LABELS_PATTERN = re.compile(r"Labels?:\s*(.+)", re.IGNORECASE)
FEATURE_REF_PATTERNS = (
    re.compile(r"Feature[:#]\s*#?(\d+)", re.IGNORECASE),
    re.compile(r"Closes #(\d+)", re.IGNORECASE),
)
FILENAME_NUMBER_PATTERN = re.compile(r"\d+")

DEFAULT_FEATURE_ID = "0"


@dataclass
class ParsedDocument:
    """Leading structure of a markdown record."""

    title: str = ""
    description: str = ""
    labels: list[str] = field(default_factory=list)


# =============================================================================
# DOCUMENT PARSING
# =============================================================================


def parse_title_and_description(content: str) -> tuple[str, str]:
    """Split a document into its title and description.

    Args:
        content: Raw markdown file content

    Returns:
        Tuple of (title, description); both empty for a blank document
    """
    lines = content.split("\n")

    title_index = next((i for i, line in enumerate(lines) if line.strip()), None)
    if title_index is None:
        return "", ""

    title = TITLE_PREFIX_PATTERN.sub("", lines[title_index].strip()).strip()

    # Skip the blank run after the title
    start = title_index + 1
    while start < len(lines) and not lines[start].strip():
        start += 1

    description = "\n".join(lines[start:]).strip()
    return title, description


def parse_labels(content: str) -> list[str]:
    """Extract the comma-separated `Labels:` line, if any."""
    match = LABELS_PATTERN.search(content)
    if not match:
        return []
    return [label.strip() for label in match.group(1).split(",") if label.strip()]


def parse_document(content: str) -> ParsedDocument:
    title, description = parse_title_and_description(content)
    return ParsedDocument(title=title, description=description, labels=parse_labels(content))


def extract_feature_id(content: str) -> str:
    """Find the parent feature reference of a story.

    Looks for `Feature: 12`, `Feature #12` or `Closes #12`.

    Returns:
        The referenced number, or "0" when the story names no feature
    """
    for pattern in FEATURE_REF_PATTERNS:
        match = pattern.search(content)
        if match:
            return match.group(1)
    return DEFAULT_FEATURE_ID


def read_title(file_path: Path) -> str:
    """Read only the title of a record file."""
    title, _ = parse_title_and_description(file_path.read_text(encoding="utf-8"))
    return title


def record_id_from_filename(filename: str) -> str:
    """Derive a listing id from a filename.

    `story-42.md` -> `42`, `login-flow.md` -> `login-flow`
    """
    match = FILENAME_NUMBER_PATTERN.search(filename)
    if match:
        return match.group(0)
    return Path(filename).stem


def merge_labels(defaults: list[str], parsed: list[str]) -> list[str]:
    """Prepend default labels, dropping duplicates while keeping order."""
    merged: list[str] = []
    for label in [*defaults, *parsed]:
        if label not in merged:
            merged.append(label)
    return merged
