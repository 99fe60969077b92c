"""User overlay: user-authored corrections that outrank the compiled index.

The overlay uses the same line grammar as compiler sources but only ever
matches exactly (case-insensitively); there is no fuzzy search, so user
overrides stay predictable.

``OverlayHandle`` owns the active overlay. A reload builds a complete new
``Overlay`` first and then swaps a single reference, so readers holding a
snapshot keep seeing the old overlay in full.
"""

from __future__ import annotations

import threading
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from medvocab.errors import ResourceError
from medvocab.logging import get_logger
from medvocab.vocabulary.grammar import VocabEntry, parse_lines, read_vocabulary_file

logger = get_logger(__name__)

MAX_OVERLAY_ENTRIES = 10_000

DEFAULT_OVERLAY_CONTENT = """\
# Custom Medical Vocabulary
# Lines starting with # are comments and will be ignored
# Entries here take priority over the built-in vocabulary.
# Matching is exact (case-insensitive): no fuzzy matching is applied.

# MEDICAL TERMS (one per line)
bronchoscopy
colonoscopy
myocarditis

# CORRECTIONS (format: wrong word -> correct word)
# Use " -> " (space, arrow, space) to separate the two sides
diabeetus -> diabetes
hemophilia -> haemophilia
pediatrician -> paediatrician
esophagus -> oesophagus
"""


class Overlay:
    """Immutable exact-match table built from user entries.

    Example:
        overlay = Overlay.load("custom_medical_vocab.txt")
        overlay.find_correction("Diabeetus")  # "diabetes"
    """

    def __init__(self, entries: Iterable[VocabEntry] = (), source: str | None = None):
        exact: dict[str, str] = {}
        corrections: dict[str, str] = {}
        count = 0

        for entry in entries:
            if count >= MAX_OVERLAY_ENTRIES:
                logger.warning(
                    f"Overlay has more than {MAX_OVERLAY_ENTRIES} entries; ignoring the rest",
                    extra={"source": source or "<entries>"},
                )
                break
            count += 1

            exact[entry.term.lower()] = entry.term
            if entry.is_mapping and entry.variant.lower() != entry.term.lower():
                corrections[entry.variant.lower()] = entry.term

        exact.update(corrections)
        self._exact: Mapping[str, str] = MappingProxyType(exact)
        self._corrections: Mapping[str, str] = MappingProxyType(corrections)
        self.source = source

    @classmethod
    def empty(cls) -> "Overlay":
        return cls()

    @classmethod
    def from_text(cls, text: str, source: str = "<text>") -> "Overlay":
        return cls(parse_lines(text.splitlines(), source=source).entries, source=source)

    @classmethod
    def load(cls, path: Path | str) -> "Overlay":
        """Load an overlay file.

        Never raises: bad lines are skipped and an unreadable file gives an
        empty overlay, both with a warning.
        """
        path = Path(path)
        try:
            parsed = read_vocabulary_file(path)
        except ResourceError as e:
            logger.warning(f"User overlay unavailable, using none: {e.message}")
            return cls(source=str(path))

        overlay = cls(parsed.entries, source=str(path))
        logger.info(
            f"Loaded user overlay from {path}",
            extra={"entries": len(overlay), "skipped": len(parsed.skipped)},
        )
        return overlay

    @classmethod
    def reload(cls, path: Path | str) -> "Overlay":
        """Build a fresh overlay from ``path``; same rules as ``load``."""
        logger.info(f"Reloading user overlay from {path}")
        return cls.load(path)

    def find_correction(self, word: str) -> str | None:
        """Exact, case-insensitive lookup of a term or variant."""
        return self._exact.get(word.lower())

    def is_variant(self, word: str) -> bool:
        return word.lower() in self._corrections

    def __len__(self) -> int:
        return len(self._exact)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self._exact


class OverlayHandle:
    """Holder of the active overlay, swapped atomically on reload.

    Readers call ``snapshot()`` (no locking) and use that object for the
    whole of one request. Writers are serialized with a lock so two
    concurrent reloads cannot interleave.
    """

    def __init__(self, overlay: Overlay | None = None, path: Path | str | None = None):
        self._overlay = overlay if overlay is not None else Overlay.empty()
        self._path = Path(path) if path else None
        self._write_lock = threading.Lock()

    @classmethod
    def from_path(cls, path: Path | str) -> "OverlayHandle":
        return cls(Overlay.load(path), path)

    @property
    def path(self) -> Path | None:
        return self._path

    def snapshot(self) -> Overlay:
        """The overlay current at the time of the call."""
        return self._overlay

    def replace(self, overlay: Overlay) -> None:
        with self._write_lock:
            self._overlay = overlay

    def reload(self, path: Path | str | None = None) -> Overlay:
        """Re-read the overlay file and swap it in.

        Args:
            path: New overlay file; defaults to the one used last

        Returns:
            The newly active overlay
        """
        with self._write_lock:
            if path is not None:
                self._path = Path(path)
            if self._path is None:
                logger.warning("No overlay path configured; nothing to reload")
                return self._overlay
            overlay = Overlay.reload(self._path)
            self._overlay = overlay
        return overlay


def ensure_overlay_file(path: Path | str) -> Path:
    """Create the user overlay file with commented examples if missing.

    Raises:
        ResourceError: If the file or its directory cannot be created
    """
    path = Path(path)
    if path.exists():
        return path

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_OVERLAY_CONTENT, encoding="utf-8")
    except OSError as e:
        raise ResourceError(
            f"Failed to create overlay file: {e}",
            context={"path": str(path)},
        ) from e

    logger.info(f"Created default overlay file at {path}")
    return path
