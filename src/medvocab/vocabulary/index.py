"""Compiled vocabulary index and the runtime matcher.

Artifact layout::

    b"MVIX" | uint16 format version (big-endian) | zlib(JSON payload)

The JSON payload is validated with ``IndexArtifact`` on load. Readers reject
any version marker other than ``FORMAT_VERSION`` instead of guessing.

The ``Matcher`` wraps a loaded artifact with a BK-tree over the lowercased
canonical terms and answers ``find_correction`` queries: exact table first,
then bounded-edit-distance candidates ranked by a weighted mix of edit and
phonetic similarity.
"""

from __future__ import annotations

import json
import struct
import time
import zlib
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from medvocab.config import MatchingSettings
from medvocab.errors import (
    ArtifactFormatError,
    ArtifactVersionError,
    MedvocabError,
    ResourceError,
)
from medvocab.logging import get_logger, log_operation_complete
from medvocab.vocabulary.bktree import BKTree, MetricTree
from medvocab.vocabulary.phonetic import (
    DEFAULT_SCHEME,
    PhoneticEncoder,
    digest_similarity,
    get_encoder,
)
from medvocab.vocabulary.terms import Category

logger = get_logger(__name__)

MAGIC = b"MVIX"
FORMAT_VERSION = 1
_HEADER = struct.Struct(">4sH")


class IndexArtifact(BaseModel):
    """Payload of a compiled index. All keys are lowercased."""

    model_config = ConfigDict(frozen=True)

    # lowercased term or variant -> canonical display form
    exact: dict[str, str] = Field(default_factory=dict)
    # lowercased variant -> canonical display form
    corrections: dict[str, str] = Field(default_factory=dict)
    # lowercased canonical -> phonetic digest
    phonetic: dict[str, str] = Field(default_factory=dict)
    # lowercased canonical -> category
    categories: dict[str, Category] = Field(default_factory=dict)
    # canonical display forms, in compilation order
    terms: list[str] = Field(default_factory=list)
    phonetic_scheme: str = DEFAULT_SCHEME
    # names of the source files that contributed, in processing order
    sources: list[str] = Field(default_factory=list)


def encode_index(artifact: IndexArtifact) -> bytes:
    """Serialize an artifact. Equal artifacts encode to equal bytes."""
    payload = json.dumps(
        artifact.model_dump(mode="json"),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")
    return _HEADER.pack(MAGIC, FORMAT_VERSION) + zlib.compress(payload, 9)


def decode_index(data: bytes) -> IndexArtifact:
    """Deserialize and validate an artifact.

    Raises:
        ArtifactFormatError: If the bytes are not a medvocab index or are corrupt
        ArtifactVersionError: If the version marker is not recognized
    """
    if len(data) < _HEADER.size:
        raise ArtifactFormatError("Index artifact is truncated", context={"size": len(data)})

    magic, version = _HEADER.unpack_from(data)
    if magic != MAGIC:
        raise ArtifactFormatError("Not a medvocab index (bad magic)", context={"magic": magic.hex()})
    if version != FORMAT_VERSION:
        raise ArtifactVersionError(found=version, expected=FORMAT_VERSION)

    try:
        payload = json.loads(zlib.decompress(data[_HEADER.size:]).decode("utf-8"))
        return IndexArtifact.model_validate(payload)
    except (zlib.error, UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError) as e:
        raise ArtifactFormatError(f"Corrupt index payload: {e}") from e


def read_index(path: Path | str) -> IndexArtifact:
    """Read an artifact from disk, raising on any problem.

    Raises:
        ResourceError: If the file cannot be read
        ArtifactFormatError: If the content is not a valid index
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ResourceError(f"Cannot read index: {e}", context={"path": str(path)}) from e
    return decode_index(data)


def write_index(data: bytes, path: Path | str) -> Path:
    """Write artifact bytes atomically (temp file, then rename).

    Raises:
        ResourceError: If the file cannot be written
    """
    path = Path(path)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(data)
        temp_path.replace(path)
    except OSError as e:
        raise ResourceError(
            f"Cannot write vocabulary index: {e}",
            context={"path": str(path)},
        ) from e
    return path


@dataclass(frozen=True)
class ScoredCandidate:
    """A fuzzy candidate with the scores that ranked it."""

    term: str
    distance: int
    edit_score: float
    phonetic_score: float
    combined: float


@dataclass(frozen=True)
class Match:
    """Result of a successful lookup.

    ``source`` is ``"exact"`` for exact-table hits (terms and known
    variants), ``"fuzzy"`` for accepted candidates, ``"overlay"`` for user
    overrides.
    """

    term: str
    source: str
    score: float = 1.0


class Matcher:
    """Read-only lookup structure over a compiled index.

    Safe to share between threads: nothing is mutated after construction.

    Example:
        matcher = Matcher.load("vocabulary.mvix")
        matcher.find_correction("lysinopril")  # "lisinopril"
    """

    def __init__(
        self,
        artifact: IndexArtifact | None = None,
        encoder: PhoneticEncoder | None = None,
        settings: MatchingSettings | None = None,
        tree_factory: Callable[[], MetricTree] = BKTree,
    ):
        if artifact is None:
            artifact = IndexArtifact()
        self.settings = settings or MatchingSettings()
        self.encoder = encoder or _encoder_for(artifact.phonetic_scheme)

        self._exact: Mapping[str, str] = MappingProxyType(dict(artifact.exact))
        self._corrections: Mapping[str, str] = MappingProxyType(dict(artifact.corrections))
        self._categories: Mapping[str, Category] = MappingProxyType(dict(artifact.categories))
        self._terms: tuple[str, ...] = tuple(artifact.terms)

        if self.encoder.name == artifact.phonetic_scheme:
            digests = dict(artifact.phonetic)
        else:
            logger.info(
                f"Re-encoding digests with '{self.encoder.name}' "
                f"(index uses '{artifact.phonetic_scheme}')"
            )
            digests = {}
        for term in self._terms:
            key = term.lower()
            if key not in digests:
                digests[key] = self.encoder.encode(key)
        self._phonetic: Mapping[str, str] = MappingProxyType(digests)

        self._tree = tree_factory()
        for term in self._terms:
            self._tree.insert(term.lower())

    @classmethod
    def empty(
        cls,
        encoder: PhoneticEncoder | None = None,
        settings: MatchingSettings | None = None,
    ) -> "Matcher":
        """A matcher with no vocabulary; every lookup misses."""
        return cls(IndexArtifact(), encoder=encoder, settings=settings)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        encoder: PhoneticEncoder | None = None,
        settings: MatchingSettings | None = None,
    ) -> "Matcher":
        """Build a matcher from artifact bytes, raising on invalid input."""
        return cls(decode_index(data), encoder=encoder, settings=settings)

    @classmethod
    def load(
        cls,
        path: Path | str,
        encoder: PhoneticEncoder | None = None,
        settings: MatchingSettings | None = None,
    ) -> "Matcher":
        """Load a matcher from an artifact file.

        Never raises: an unreadable file or an invalid artifact is logged and
        yields an empty matcher, so corrections are simply disabled.

        Args:
            path: Artifact path
            encoder: Phonetic encoder; defaults to the artifact's scheme
            settings: Matching weights and thresholds

        Returns:
            Loaded matcher, or an empty one on failure
        """
        started = time.perf_counter()
        try:
            artifact = read_index(path)
        except ResourceError as e:
            logger.warning(f"Vocabulary index unavailable, corrections disabled: {e.message}")
            return cls.empty(encoder=encoder, settings=settings)
        except MedvocabError as e:
            logger.error(
                f"Rejecting vocabulary index, corrections disabled: {e.message}",
                extra={"path": str(path), "error_type": type(e).__name__},
            )
            return cls.empty(encoder=encoder, settings=settings)

        matcher = cls(artifact, encoder=encoder, settings=settings)
        log_operation_complete(
            logger,
            "load vocabulary index",
            duration=time.perf_counter() - started,
            terms=len(matcher),
        )
        return matcher

    def lookup(self, word: str) -> Match | None:
        """Find the canonical term for ``word`` along with how it was found."""
        key = word.lower()

        canonical = self._exact.get(key)
        if canonical is not None:
            return Match(canonical, "exact")

        ranked = self.rank_candidates(word)
        if not ranked:
            return None

        best = ranked[0]
        if best.combined > self.settings.accept_threshold:
            return Match(best.term, "fuzzy", best.combined)
        return None

    def find_correction(self, word: str) -> str | None:
        """Return the canonical term for ``word``, or None if nothing qualifies."""
        match = self.lookup(word)
        return match.term if match else None

    def rank_candidates(self, word: str) -> list[ScoredCandidate]:
        """Score every canonical term within ``max_distance`` of ``word``.

        Returns:
            Candidates best first: highest combined score, then smallest
            edit distance, then lexicographically smallest term
        """
        key = word.lower()
        found = self._tree.find_within(key, self.settings.max_distance)
        if not found:
            return []

        digest = self.encoder.encode(key)
        scored = []

        for distance, candidate in found:
            longest = max(len(key), len(candidate))
            edit_score = 1.0 - distance / longest if longest else 1.0
            phonetic_score = digest_similarity(digest, self._phonetic.get(candidate, ""))
            combined = (
                self.settings.edit_weight * edit_score
                + self.settings.phonetic_weight * phonetic_score
            )
            scored.append(
                (
                    (-combined, distance, candidate),
                    ScoredCandidate(
                        term=self._exact.get(candidate, candidate),
                        distance=distance,
                        edit_score=edit_score,
                        phonetic_score=phonetic_score,
                        combined=combined,
                    ),
                )
            )

        scored.sort(key=lambda pair: pair[0])
        return [candidate for _, candidate in scored]

    def is_variant(self, word: str) -> bool:
        return word.lower() in self._corrections

    def category_of(self, term: str) -> Category | None:
        return self._categories.get(term.lower())

    def terms_in_category(self, category: Category) -> list[str]:
        return [t for t in self._terms if self._categories.get(t.lower()) == category]

    @property
    def terms(self) -> tuple[str, ...]:
        return self._terms

    @property
    def correction_count(self) -> int:
        return len(self._corrections)

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self._exact


def _encoder_for(scheme: str) -> PhoneticEncoder:
    try:
        return get_encoder(scheme)
    except KeyError:
        logger.warning(f"Unknown phonetic scheme '{scheme}' in index, using '{DEFAULT_SCHEME}'")
        return get_encoder(DEFAULT_SCHEME)
