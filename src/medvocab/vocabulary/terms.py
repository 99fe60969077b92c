"""Vocabulary categories and the fixed source-file order.

Each compiled source file holds the terms of exactly one category. The
order of ``Category`` members is the order the compiler processes source
files in, which is what makes category assignment and "last writer wins"
deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Category(str, Enum):
    """Provenance tag of a canonical term. Does not affect matching."""

    MEDICATION_GENERIC = "medication-generic"
    MEDICATION_BRAND = "medication-brand"
    CONDITION = "condition"
    ANATOMY = "anatomy"
    PROCEDURE = "procedure"
    LAB_TEST = "lab-test"
    EPONYM = "eponym"
    ABBREVIATION = "abbreviation"
    PHONETIC_CORRECTION = "phonetic-correction"

    @property
    def filename(self) -> str:
        """Conventional source file name, e.g. ``medication_generic.txt``."""
        return self.value.replace("-", "_") + ".txt"


SOURCE_ORDER: tuple[Category, ...] = tuple(Category)


@dataclass(frozen=True)
class SourceFile:
    """A named vocabulary source: one category, one text file."""

    category: Category
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


def bundled_sources_dir() -> Path:
    """Directory of the source files shipped with the package."""
    return Path(__file__).resolve().parent.parent / "data" / "sources"


def sources_in_directory(directory: Path | str) -> list[SourceFile]:
    """Build the fixed, ordered source list for a directory.

    Files are not required to exist; the compiler warns about missing ones.

    Args:
        directory: Directory holding ``<category>.txt`` files

    Returns:
        One ``SourceFile`` per category, in processing order
    """
    directory = Path(directory)
    return [SourceFile(category, directory / category.filename) for category in SOURCE_ORDER]
