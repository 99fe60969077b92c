"""Transcript correction against the overlay and the compiled index.

Text is split into tokens (maximal runs of letters, digits and apostrophes)
and the separators between them. Separators are copied through unchanged;
each token long enough is looked up in the user overlay, then in the
matcher, and replaced with case preserved.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from medvocab.config import EngineConfig, MatchingSettings
from medvocab.errors import ResourceError
from medvocab.logging import get_logger
from medvocab.vocabulary.index import Match, Matcher
from medvocab.vocabulary.overlay import Overlay, OverlayHandle
from medvocab.vocabulary.phonetic import get_encoder

logger = get_logger(__name__)

TOKEN_PATTERN = re.compile(r"(?:[^\W_]|')+")

DEFAULT_MIN_TOKEN_LENGTH = 3
CONTEXT_CHARS = 20


@dataclass
class Correction:
    """A single substitution made in a text."""

    original: str
    corrected: str
    match_type: str  # "overlay", "exact", "fuzzy"
    confidence: float  # 0.0 to 1.0
    position: int | None = None  # Character offset in the input text
    context: str = ""  # Surrounding input text

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "corrected": self.corrected,
            "match_type": self.match_type,
            "confidence": self.confidence,
            "position": self.position,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Correction":
        return cls(
            original=data["original"],
            corrected=data["corrected"],
            match_type=data["match_type"],
            confidence=data["confidence"],
            position=data.get("position"),
            context=data.get("context", ""),
        )


@dataclass
class CorrectionLog:
    """All substitutions made during one correction pass."""

    corrections: list[Correction] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    vocabulary_terms: int = 0
    overlay_entries: int = 0

    def add(self, correction: Correction) -> None:
        self.corrections.append(correction)

    def __len__(self) -> int:
        return len(self.corrections)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "vocabulary_terms": self.vocabulary_terms,
            "overlay_entries": self.overlay_entries,
            "correction_count": len(self.corrections),
            "corrections": [c.to_dict() for c in self.corrections],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrectionLog":
        log = cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            vocabulary_terms=data.get("vocabulary_terms", 0),
            overlay_entries=data.get("overlay_entries", 0),
        )
        for c_data in data.get("corrections", []):
            log.corrections.append(Correction.from_dict(c_data))
        return log

    def save(self, path: Path | str) -> None:
        """Save log to JSON file.

        Raises:
            ResourceError: If the file cannot be written
        """
        path = Path(path)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ResourceError(
                f"Cannot write correction log: {e}",
                context={"path": str(path)},
            ) from e

    @classmethod
    def load(cls, path: Path | str) -> "CorrectionLog":
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)


def iter_tokens(text: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` spans of the tokens in ``text``."""
    for match in TOKEN_PATTERN.finditer(text):
        yield match.start(), match.end()


def match_case(original: str, replacement: str) -> str:
    """Carry the case pattern of ``original`` over to ``replacement``.

    All caps stays all caps, a leading capital stays a leading capital
    (rest lowercased), anything else is lowercased.
    """
    if not original or not replacement:
        return replacement

    if original.isupper():
        return replacement.upper()
    if original[0].isupper() and not any(c.isupper() for c in original[1:]):
        return replacement[0].upper() + replacement[1:].lower()
    return replacement.lower()


def _lookup(token: str, overlay: Overlay | None, matcher: Matcher | None) -> Match | None:
    if overlay is not None:
        canonical = overlay.find_correction(token)
        if canonical is not None:
            return Match(canonical, "overlay")
    if matcher is not None:
        return matcher.lookup(token)
    return None


def _rewrite(
    text: str,
    overlay: Overlay | None,
    matcher: Matcher | None,
    min_token_length: int,
    log: CorrectionLog | None,
) -> str:
    pieces: list[str] = []
    cursor = 0

    for start, end in iter_tokens(text):
        token = text[start:end]
        if len(token) < min_token_length:
            continue

        match = _lookup(token, overlay, matcher)
        if match is None:
            continue

        replacement = match_case(token, match.term)
        if replacement == token:
            continue

        pieces.append(text[cursor:start])
        pieces.append(replacement)
        cursor = end

        if log is not None:
            log.add(
                Correction(
                    original=token,
                    corrected=replacement,
                    match_type=match.source,
                    confidence=round(match.score, 4),
                    position=start,
                    context=text[max(0, start - CONTEXT_CHARS):end + CONTEXT_CHARS],
                )
            )

    pieces.append(text[cursor:])
    return "".join(pieces)


def process(
    text: str,
    overlay: Overlay | None,
    matcher: Matcher | None,
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
) -> str:
    """Correct vocabulary in ``text``.

    Pure and thread-safe given a fixed overlay snapshot: performs no I/O and
    mutates nothing. Any unexpected failure returns ``text`` unchanged.

    Args:
        text: Transcribed text
        overlay: User overlay snapshot (consulted first), or None
        matcher: Compiled-vocabulary matcher, or None
        min_token_length: Shorter tokens are never rewritten

    Returns:
        Text with corrected tokens; everything else byte-for-byte identical
    """
    corrected, _ = process_with_log(text, overlay, matcher, min_token_length)
    return corrected


def process_with_log(
    text: str,
    overlay: Overlay | None,
    matcher: Matcher | None,
    min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
) -> tuple[str, CorrectionLog]:
    """Like ``process`` but also return the log of substitutions.

    Returns:
        Tuple of (corrected_text, correction_log)
    """
    log = CorrectionLog(
        vocabulary_terms=len(matcher) if matcher is not None else 0,
        overlay_entries=len(overlay) if overlay is not None else 0,
    )
    if not text:
        return text, log

    try:
        return _rewrite(text, overlay, matcher, min_token_length, log), log
    except Exception:
        logger.exception("Vocabulary correction failed; passing text through unchanged")
        return text, CorrectionLog(
            vocabulary_terms=log.vocabulary_terms,
            overlay_entries=log.overlay_entries,
        )


class CorrectionEngine:
    """Owns one matcher and one overlay handle; the object callers hold.

    Example:
        engine = CorrectionEngine.from_config(load_engine_config())
        engine.process("Patient on lysinopril")  # "Patient on lisinopril"
        engine.reload_overlay()
    """

    def __init__(
        self,
        matcher: Matcher | None = None,
        overlay: OverlayHandle | None = None,
        settings: MatchingSettings | None = None,
    ):
        self.settings = settings or (matcher.settings if matcher is not None else MatchingSettings())
        self.matcher = matcher if matcher is not None else Matcher.empty(settings=self.settings)
        self.overlay = overlay if overlay is not None else OverlayHandle()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "CorrectionEngine":
        """Load index and overlay from the paths in ``config``.

        Either may fail independently; the engine then runs with whatever
        loaded (ultimately as a pass-through).
        """
        encoder = get_encoder(config.phonetic_scheme)
        matcher = Matcher.load(
            config.resolved_index_path(),
            encoder=encoder,
            settings=config.matching,
        )
        overlay = OverlayHandle.from_path(config.resolved_overlay_path())
        return cls(matcher, overlay, config.matching)

    def process(self, text: str) -> str:
        return process(
            text,
            self.overlay.snapshot(),
            self.matcher,
            self.settings.min_token_length,
        )

    def process_with_log(self, text: str) -> tuple[str, CorrectionLog]:
        return process_with_log(
            text,
            self.overlay.snapshot(),
            self.matcher,
            self.settings.min_token_length,
        )

    def process_many(self, texts: list[str]) -> list[str]:
        """Correct a batch of transcriptions against one overlay snapshot."""
        overlay = self.overlay.snapshot()
        return [
            process(text, overlay, self.matcher, self.settings.min_token_length)
            for text in texts
        ]

    def reload_overlay(self, path: Path | str | None = None) -> Overlay:
        return self.overlay.reload(path)
