"""Line grammar shared by compiler sources and the user overlay.

    # comment
    metformin                 <- bare canonical term
    lysinopril -> lisinopril  <- correction mapping (variant -> canonical)

Blank lines and lines starting with ``#`` are ignored. A line is a mapping
when it contains the literal delimiter `` -> ``. Bad lines are reported
individually and never abort the whole file.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from medvocab.errors import GrammarError, MedvocabError, ResourceError, ValidationError
from medvocab.logging import get_logger

logger = get_logger(__name__)

ARROW = " -> "
COMMENT_PREFIX = "#"
MAX_TERM_LENGTH = 100


@dataclass(frozen=True)
class VocabEntry:
    """One parsed line: a bare term, or a variant mapped onto a term."""

    term: str
    variant: str | None = None
    line_number: int = 0

    @property
    def is_mapping(self) -> bool:
        return self.variant is not None


@dataclass(frozen=True)
class SkippedLine:
    line_number: int
    text: str
    reason: str


@dataclass
class ParseResult:
    """Entries of a file plus the lines that were skipped."""

    entries: list[VocabEntry] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)


def validate_term(term: str) -> None:
    """Reject terms that cannot be stored safely.

    Raises:
        ValidationError: If the term is too long or contains control characters
    """
    if len(term) > MAX_TERM_LENGTH:
        raise ValidationError(
            f"Term too long (max {MAX_TERM_LENGTH} characters)",
            context={"length": len(term)},
        )
    if any(unicodedata.category(c) == "Cc" for c in term):
        raise ValidationError("Term contains control characters")


def parse_line(line: str, line_number: int = 0) -> VocabEntry | None:
    """Parse a single line.

    Args:
        line: Raw line, with or without its newline
        line_number: 1-based line number for error reporting

    Returns:
        The entry, or None for blank and comment lines

    Raises:
        GrammarError: If a mapping is malformed
        ValidationError: If a term fails validation
    """
    raw = line.rstrip("\r\n")
    stripped = raw.strip()

    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return None

    if ARROW not in raw:
        validate_term(stripped)
        return VocabEntry(term=stripped, line_number=line_number)

    variant, _, term = raw.partition(ARROW)
    variant, term = variant.strip(), term.strip()
    # "a -> -> b" overlaps, so str.count() only sees one delimiter
    if ARROW.strip() in variant or ARROW.strip() in term:
        raise GrammarError("More than one mapping delimiter", line_number)
    if not variant or not term:
        raise GrammarError("Mapping has an empty side", line_number)

    validate_term(variant)
    validate_term(term)
    return VocabEntry(term=term, variant=variant, line_number=line_number)


def parse_lines(lines: Iterable[str], source: str = "<text>") -> ParseResult:
    """Parse every line, skipping (and logging) the bad ones."""
    result = ParseResult()

    for line_number, line in enumerate(lines, start=1):
        try:
            entry = parse_line(line, line_number)
        except MedvocabError as e:
            result.skipped.append(SkippedLine(line_number, line.rstrip("\r\n"), e.message))
            logger.warning(
                f"Skipping line {line_number} of {source}: {e.message}",
                extra={"source": source, "line": line_number},
            )
            continue

        if entry is not None:
            result.entries.append(entry)

    return result


def read_vocabulary_file(path: Path | str) -> ParseResult:
    """Read and parse a UTF-8 vocabulary file.

    Raises:
        ResourceError: If the file is missing, unreadable or not UTF-8
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceError(
            f"Cannot read vocabulary file: {e}",
            context={"path": str(path)},
        ) from e

    return parse_lines(text.splitlines(), source=path.name)
