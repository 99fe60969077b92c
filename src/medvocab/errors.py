"""Error types for medvocab.

Every failure inside the correction engine maps onto one of these
categories. Library entry points (``Matcher.load``, ``Overlay.load``,
``process``) catch them and degrade to pass-through behaviour; the strict
readers used by the compiler and the CLI let them propagate.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    RESOURCE = "resource"  # Missing or unreadable file
    GRAMMAR = "grammar"  # Malformed vocabulary line
    VALIDATION = "validation"  # Term rejected by validation rules
    FORMAT = "format"  # Corrupt or foreign artifact
    VERSION = "version"  # Artifact written by an unknown format version
    CONFIGURATION = "configuration"  # Bad config file
    INTERNAL = "internal"  # Bug in code


class MedvocabError(Exception):
    """Base exception for medvocab errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether the engine can keep running after it
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ResourceError(MedvocabError):
    """A source, overlay, artifact or config file could not be read."""

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=True)


class GrammarError(MedvocabError):
    """A line of a vocabulary text file does not follow the grammar.

    Attributes:
        line_number: 1-based line number, when known
    """

    category = ErrorCategory.GRAMMAR

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        context: dict | None = None,
    ):
        context = dict(context or {})
        if line_number is not None:
            context.setdefault("line", line_number)
        super().__init__(message, context, recoverable=True)
        self.line_number = line_number


class ValidationError(MedvocabError):
    """A term failed validation (too long, control characters, limits)."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=True)


class ArtifactFormatError(MedvocabError):
    """The artifact is not a medvocab index or its payload is corrupt."""

    category = ErrorCategory.FORMAT

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ArtifactVersionError(ArtifactFormatError):
    """The artifact carries a format version this build does not understand.

    Attributes:
        found: Version marker read from the artifact
        expected: Version marker this build writes and reads
    """

    category = ErrorCategory.VERSION

    def __init__(self, found: int, expected: int):
        super().__init__(
            f"Unsupported index format version {found} (expected {expected})",
            context={"found": found, "expected": expected},
        )
        self.found = found
        self.expected = expected


class ConfigurationError(MedvocabError):
    """The engine configuration file is invalid."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


def format_error_for_display(error: Exception) -> str:
    """Format an error message for user display.

    Args:
        error: Error to format

    Returns:
        Human-readable error message
    """
    if isinstance(error, MedvocabError):
        category = error.category.value
        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            return f"[{category}] {error.message} ({context_str})"
        return f"[{category}] {error.message}"

    return f"[error] {type(error).__name__}: {error}"
