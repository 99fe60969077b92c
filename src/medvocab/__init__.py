"""medvocab - Hybrid vocabulary correction for speech-recognition output.

Maps mis-transcribed domain terms (drug names, conditions, abbreviations)
to canonical forms using a compiled index, bounded edit distance and
phonetic similarity, with user overrides layered on top.
"""

__version__ = "0.1.0"
