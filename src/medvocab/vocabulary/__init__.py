"""Vocabulary module for transcript correction.

Compiles categorized term lists into a binary index, matches tokens
against it by exact lookup, edit distance and phonetic similarity, and
rewrites text with user overrides taking priority.
"""

from medvocab.vocabulary.bktree import BKTree, MetricTree
from medvocab.vocabulary.compiler import (
    CompileReport,
    VocabularyCompiler,
    compile_directory,
    compile_vocabulary,
)
from medvocab.vocabulary.correction import (
    Correction,
    CorrectionEngine,
    CorrectionLog,
    match_case,
    process,
    process_with_log,
)
from medvocab.vocabulary.index import (
    FORMAT_VERSION,
    IndexArtifact,
    Match,
    Matcher,
    ScoredCandidate,
    decode_index,
    encode_index,
    read_index,
    write_index,
)
from medvocab.vocabulary.overlay import Overlay, OverlayHandle, ensure_overlay_file
from medvocab.vocabulary.phonetic import (
    MetaphoneEncoder,
    PhoneticEncoder,
    SoundexEncoder,
    get_encoder,
    metaphone,
    soundex,
)
from medvocab.vocabulary.terms import Category, SourceFile, bundled_sources_dir, sources_in_directory

__all__ = [
    "BKTree",
    "MetricTree",
    "CompileReport",
    "VocabularyCompiler",
    "compile_directory",
    "compile_vocabulary",
    "Correction",
    "CorrectionEngine",
    "CorrectionLog",
    "match_case",
    "process",
    "process_with_log",
    "FORMAT_VERSION",
    "IndexArtifact",
    "Match",
    "Matcher",
    "ScoredCandidate",
    "decode_index",
    "encode_index",
    "read_index",
    "write_index",
    "Overlay",
    "OverlayHandle",
    "ensure_overlay_file",
    "MetaphoneEncoder",
    "PhoneticEncoder",
    "SoundexEncoder",
    "get_encoder",
    "metaphone",
    "soundex",
    "Category",
    "SourceFile",
    "bundled_sources_dir",
    "sources_in_directory",
]
