"""Phonetic encoding.

Encoders turn a word into a compact digest of how it sounds, so that
"metfromin" and "metformin" land on the same code. The matcher only ever
talks to the ``PhoneticEncoder`` protocol; Metaphone is the default scheme
and Soundex is registered as an alternate.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

_VOWELS = "AEIOU"
_FRONT_VOWELS = "IEY"

# Letters that always encode to themselves (or a fixed code) in Metaphone.
_METAPHONE_DIRECT = {
    "F": "F",
    "J": "J",
    "L": "L",
    "M": "M",
    "N": "N",
    "Q": "K",
    "R": "R",
    "V": "F",
    "X": "KS",
    "Z": "S",
}

_SOUNDEX_CODES = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}


@runtime_checkable
class PhoneticEncoder(Protocol):
    """Maps a word to a phonetic digest.

    ``encode`` must be pure. An empty digest means "no phonetic information"
    (e.g. the word has no letters) and is scored as unavailable.
    """

    name: str

    def encode(self, word: str) -> str:
        ...


def _letters(word: str) -> str:
    return "".join(c for c in word.upper() if c.isalpha() and c.isascii())


def metaphone(word: str) -> str:
    """Generate the Metaphone code for a word.

    Non-letters are dropped first, so multi-word terms such as
    "atrial fibrillation" are encoded as one run of sounds.

    Args:
        word: Word to encode

    Returns:
        Metaphone code (empty if the word has no letters)
    """
    word = _letters(word)
    if not word:
        return ""

    if word.startswith(("KN", "GN", "PN", "AE", "WR")):
        word = word[1:]
    elif word.startswith("WH"):
        word = "W" + word[2:]
    elif word.startswith("X"):
        word = "S" + word[1:]

    length = len(word)
    code: list[str] = []
    i = 0

    while i < length:
        char = word[i]
        prev_char = word[i - 1] if i > 0 else ""
        next_char = word[i + 1] if i + 1 < length else ""
        after_next = word[i + 2] if i + 2 < length else ""

        # Doubled letters sound once, except CC ("accident")
        if char == next_char and char != "C":
            i += 1
            continue

        step = 1

        if char in _VOWELS:
            if i == 0:
                code.append(char)
        elif char in _METAPHONE_DIRECT:
            code.append(_METAPHONE_DIRECT[char])
        elif char == "B":
            if not (i == length - 1 and prev_char == "M"):
                code.append("B")
        elif char == "C":
            if next_char == "H":
                code.append("X")
                step = 2
            elif next_char and next_char in _FRONT_VOWELS:
                code.append("S")
            else:
                code.append("K")
        elif char == "D":
            if next_char == "G" and after_next and after_next in _FRONT_VOWELS:
                code.append("J")
                step = 2
            else:
                code.append("T")
        elif char == "G":
            if next_char == "H":
                step = 2
                if not (after_next and after_next not in _VOWELS):
                    code.append("F")
            elif next_char == "N":
                pass
            elif next_char and next_char in _FRONT_VOWELS:
                code.append("J")
            else:
                code.append("K")
        elif char == "H":
            if (i == 0 or prev_char in _VOWELS) and next_char and next_char in _VOWELS:
                code.append("H")
        elif char == "K":
            if prev_char != "C":
                code.append("K")
        elif char == "P":
            if next_char == "H":
                code.append("F")
                step = 2
            else:
                code.append("P")
        elif char in "ST":
            if next_char == "H":
                code.append("X" if char == "S" else "0")
                step = 2
            elif next_char == "I" and after_next in ("O", "A"):
                code.append("X")
            else:
                code.append(char)
        elif char in "WY":
            if next_char and next_char in _VOWELS:
                code.append(char)

        i += step

    return "".join(code)


def soundex(word: str) -> str:
    """Generate the four-character Soundex code for a word.

    Args:
        word: Word to encode

    Returns:
        Soundex code such as "M315", or "" if the word has no letters
    """
    word = _letters(word)
    if not word:
        return ""

    result = word[0]
    prev_code = _SOUNDEX_CODES.get(word[0], "")

    for char in word[1:]:
        code = _SOUNDEX_CODES.get(char, "")
        if code and code != prev_code:
            result += code
        # H and W do not separate equal codes; vowels do
        if char not in "HW":
            prev_code = code

    return (result + "000")[:4]


class MetaphoneEncoder:
    """Default encoder: English Metaphone."""

    name = "metaphone"

    def encode(self, word: str) -> str:
        return metaphone(word)


class SoundexEncoder:
    """Coarser alternate encoder: American Soundex."""

    name = "soundex"

    def encode(self, word: str) -> str:
        return soundex(word)


_ENCODERS: dict[str, Callable[[], PhoneticEncoder]] = {
    MetaphoneEncoder.name: MetaphoneEncoder,
    SoundexEncoder.name: SoundexEncoder,
}

DEFAULT_SCHEME = MetaphoneEncoder.name


def get_encoder(name: str = DEFAULT_SCHEME) -> PhoneticEncoder:
    """Look up an encoder by scheme name.

    Raises:
        KeyError: If no encoder is registered under ``name``
    """
    try:
        factory = _ENCODERS[name]
    except KeyError:
        known = ", ".join(sorted(_ENCODERS))
        raise KeyError(f"Unknown phonetic scheme '{name}' (known: {known})") from None
    return factory()


def register_encoder(name: str, factory: Callable[[], PhoneticEncoder]) -> None:
    """Register an alternate phonetic scheme."""
    _ENCODERS[name] = factory


def available_schemes() -> list[str]:
    return sorted(_ENCODERS)


def digest_similarity(digest1: str, digest2: str) -> float:
    """Score how alike two phonetic digests are.

    Identical digests score 1.0. Otherwise the score is the length of the
    shared prefix over the length of the shorter digest. If either digest is
    empty the comparison carries no information and scores 0.5.
    """
    if not digest1 or not digest2:
        return 0.5
    if digest1 == digest2:
        return 1.0

    shared = 0
    for a, b in zip(digest1, digest2):
        if a != b:
            break
        shared += 1

    return shared / min(len(digest1), len(digest2))

