"""Compiled regex patterns and character tables for normalization."""

import re
import unicodedata

# Pre-compiled regex patterns
CHAR_REF_RE = re.compile(r"&(#?\w+)[;,]")
TAG_RE = re.compile(r"<[^>]+>")
LITERAL_NEWLINE_RE = re.compile(r"\\n")
WHITESPACE_RE = re.compile(r"\s+")
NON_ALNUM_SPACE_RE = re.compile(r"[^a-z0-9 ]")
NON_ALPHA_RE = re.compile(r"[^a-z]")

DOI_URL_PREFIX_RE = re.compile(r"^https?://(?:dx\.)?doi\.org/")
SCHEME_PREFIX_RE = re.compile(r"^(?:doi(?:\.org)?|pmid|pmcid):\s*")
TRAILING_DOTS_RE = re.compile(r"\.+$")
BRACKETED_RE = re.compile(r"^\[(.*)\]$")
QUOTED_RE = re.compile(r'^"(.*)"$')

NAMED_CHAR_REFS: dict[str, str] = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
}

# Common English stop words, removed from title keys
STOPWORDS = frozenset(
    (
        "a an the of and to in that was his he it with is for as had you not be her on at by which "
        "have or from this him but all she they were my are me one their so said them we who would "
        "been will no when"
    ).split()
)

# Latin letters with no Unicode decomposition
_EXTRA_TRANSLITERATIONS = str.maketrans(
    {
        "ł": "l",
        "Ł": "L",
        "ø": "o",
        "Ø": "O",
        "đ": "d",
        "Đ": "D",
        "ð": "d",
        "Ð": "D",
        "ħ": "h",
        "Ħ": "H",
        "ı": "i",
        "ŀ": "l",
        "Ŀ": "L",
        "ŧ": "t",
        "Ŧ": "T",
        "ŋ": "n",
        "Ŋ": "N",
        "ſ": "s",
        "ĸ": "k",
    }
)


def strip_accents(text: str) -> str:
    """Remove diacritical marks for cross-locale matching.

    Parameters
    ----------
    text : str
        Input text with potential diacritics.

    Returns
    -------
    str
        Text with diacritical marks removed.
    """
    nfd = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in nfd if unicodedata.category(c) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def transliterate(text: str) -> str:
    """Fold accented Latin letters to their ASCII base letters.

    Characters outside the Latin script are left alone.
    """
    return strip_accents(text).translate(_EXTRA_TRANSLITERATIONS)


def decode_char_ref(match: re.Match[str]) -> str:
    """Replacement callback for ``CHAR_REF_RE``.

    Known named references and numeric references decode to their
    character; anything else is dropped. A decoded pipe is dropped too,
    since the pipe is reserved as the author/email separator.
    """
    ref = match.group(1).lower()
    if ref.startswith("#"):
        try:
            code = int(ref[2:], 16) if ref.startswith("#x") else int(ref[1:])
            decoded = chr(code)
        except (ValueError, OverflowError):
            return ""
        if not decoded.isprintable():
            return " "
    else:
        decoded = NAMED_CHAR_REFS.get(ref, "")
    return "" if decoded == "|" else decoded
