"""Vocabulary compiler: categorized source files to one binary index.

Sources are processed in the fixed ``SOURCE_ORDER``. Within that order:

- the category of a canonical term comes from the first source mentioning it,
- the display form of a term is the last one written (case-insensitive dedup),
- a mapping whose variant is itself a canonical term is dropped.

Given the same files in the same order the output bytes are identical.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from medvocab.errors import ResourceError
from medvocab.logging import LogContext, get_logger, log_operation_complete, log_operation_start
from medvocab.vocabulary.grammar import VocabEntry, read_vocabulary_file
from medvocab.vocabulary.index import IndexArtifact, encode_index, write_index
from medvocab.vocabulary.phonetic import PhoneticEncoder, get_encoder
from medvocab.vocabulary.terms import Category, SourceFile, sources_in_directory

logger = get_logger(__name__)


@dataclass
class CompileReport:
    """What went into (and was left out of) a compiled index."""

    sources_read: list[str] = field(default_factory=list)
    sources_missing: list[str] = field(default_factory=list)
    skipped_lines: int = 0
    dropped_mappings: int = 0
    term_count: int = 0
    correction_count: int = 0
    per_category: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.term_count == 0


@dataclass
class _PendingMapping:
    variant_key: str
    target_key: str
    source: str
    line_number: int


class VocabularyCompiler:
    """Accumulates source entries and builds an ``IndexArtifact``.

    Example:
        compiler = VocabularyCompiler()
        compiler.add_entries(Category.MEDICATION_GENERIC, entries, "medication_generic.txt")
        artifact = compiler.build()
    """

    def __init__(
        self,
        encoder: PhoneticEncoder | None = None,
        report: CompileReport | None = None,
    ):
        self.encoder = encoder or get_encoder()
        self.report = report if report is not None else CompileReport()
        self._display: dict[str, str] = {}
        self._categories: dict[str, Category] = {}
        self._order: list[str] = []
        self._mappings: list[_PendingMapping] = []

    def add_source(self, source: SourceFile) -> bool:
        """Read one source file. A missing file is a warning, not an error.

        Returns:
            True if the file was read
        """
        with LogContext(category=source.category.value):
            try:
                parsed = read_vocabulary_file(source.path)
            except ResourceError as e:
                logger.warning(f"Skipping vocabulary source {source.name}: {e.message}")
                self.report.sources_missing.append(source.name)
                return False

        self.report.skipped_lines += len(parsed.skipped)
        self.add_entries(source.category, parsed.entries, source.name)
        self.report.sources_read.append(source.name)
        return True

    def add_entries(
        self,
        category: Category,
        entries: Iterable[VocabEntry],
        source_name: str = "<entries>",
    ) -> None:
        """Register parsed entries under ``category``."""
        for entry in entries:
            self._register_canonical(entry.term, category)

            if not entry.is_mapping:
                continue

            variant_key = entry.variant.lower()
            target_key = entry.term.lower()
            # "copd -> COPD" only fixes the display form
            if variant_key == target_key:
                continue

            self._mappings.append(
                _PendingMapping(variant_key, target_key, source_name, entry.line_number)
            )

    def _register_canonical(self, term: str, category: Category) -> None:
        key = term.lower()
        if key not in self._categories:
            self._categories[key] = category
            self._order.append(key)
        self._display[key] = term

    def build(self) -> IndexArtifact:
        """Resolve pending mappings and produce the immutable artifact."""
        corrections: dict[str, str] = {}

        for mapping in self._mappings:
            if mapping.variant_key in self._display:
                logger.warning(
                    f"Dropping mapping '{mapping.variant_key}': variant is also a canonical term",
                    extra={"source": mapping.source, "line": mapping.line_number},
                )
                self.report.dropped_mappings += 1
                continue
            corrections[mapping.variant_key] = self._display[mapping.target_key]

        exact = {key: self._display[key] for key in self._order}
        exact.update(corrections)

        per_category: dict[str, int] = {}
        for key in self._order:
            name = self._categories[key].value
            per_category[name] = per_category.get(name, 0) + 1

        self.report.term_count = len(self._order)
        self.report.correction_count = len(corrections)
        self.report.per_category = per_category

        if not self._order:
            logger.error("Compiled vocabulary is EMPTY: corrections will be disabled")

        return IndexArtifact(
            exact=exact,
            corrections=corrections,
            phonetic={key: self.encoder.encode(key) for key in self._order},
            categories=dict(self._categories),
            terms=[self._display[key] for key in self._order],
            phonetic_scheme=self.encoder.name,
            sources=list(self.report.sources_read),
        )


def compile_vocabulary(
    sources: Sequence[SourceFile],
    encoder: PhoneticEncoder | None = None,
    report: CompileReport | None = None,
) -> bytes:
    """Compile an ordered list of source files into artifact bytes.

    Args:
        sources: Source files in processing order
        encoder: Phonetic encoder for the stored digests
        report: Filled in with counts and warnings when given

    Returns:
        Artifact bytes, ready for ``write_index`` or ``Matcher.from_bytes``
    """
    started = time.perf_counter()
    log_operation_start(logger, "compile vocabulary", sources=len(sources))

    compiler = VocabularyCompiler(encoder, report)
    for source in sources:
        compiler.add_source(source)

    data = encode_index(compiler.build())
    log_operation_complete(
        logger,
        "compile vocabulary",
        duration=time.perf_counter() - started,
        terms=compiler.report.term_count,
        corrections=compiler.report.correction_count,
    )
    return data


def compile_directory(
    directory: Path | str,
    output: Path | str,
    encoder: PhoneticEncoder | None = None,
) -> CompileReport:
    """Compile ``<category>.txt`` files from a directory and write the index.

    Returns:
        The compile report
    """
    report = CompileReport()
    data = compile_vocabulary(sources_in_directory(directory), encoder, report)
    write_index(data, output)
    logger.info(f"Wrote vocabulary index to {output}", extra={"bytes": len(data)})
    return report
