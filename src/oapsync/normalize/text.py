"""Field normalization for free text and identifiers."""

from oapsync.normalize._helpers import (
    BRACKETED_RE,
    CHAR_REF_RE,
    DOI_URL_PREFIX_RE,
    LITERAL_NEWLINE_RE,
    QUOTED_RE,
    SCHEME_PREFIX_RE,
    TAG_RE,
    TRAILING_DOTS_RE,
    WHITESPACE_RE,
    decode_char_ref,
    transliterate,
)

__all__ = ["normalize", "normalize_identifier", "normalize_erc"]

# Double-escaped feeds need more than one decoding pass
_MAX_DECODE_PASSES = 4


def normalize(text: str | None) -> str:
    """Clean a free-text field for storage and comparison.

    Strips markup, decodes character references, drops the reserved pipe
    character and collapses whitespace. Accents are preserved.

    Parameters
    ----------
    text : str | None
        Raw field value.

    Returns
    -------
    str
        Cleaned text, empty string for None.

    Examples
    --------
    >>> normalize("<i>Quantum</i>   entanglement &amp; photons\\\\n")
    'Quantum entanglement & photons'
    """
    if not text:
        return ""
    result = text.replace("|", "")
    for _ in range(_MAX_DECODE_PASSES):
        decoded = CHAR_REF_RE.sub(decode_char_ref, result)
        if decoded == result:
            break
        result = decoded
    result = TAG_RE.sub(" ", result)
    result = LITERAL_NEWLINE_RE.sub(" ", result)
    result = WHITESPACE_RE.sub(" ", result)
    return result.strip()


def normalize_identifier(text: str | None) -> str:
    """Canonicalize an identifier value.

    Lower-cases, removes DOI resolver URLs and ``doi:``/``pmid:``/``pmcid:``
    prefixes, trailing dots, and one level of surrounding brackets and
    quotes.

    Parameters
    ----------
    text : str | None
        Raw identifier.

    Returns
    -------
    str
        Canonical identifier, empty string for None.

    Examples
    --------
    >>> normalize_identifier("https://dx.doi.org/10.1000/ABC.")
    '10.1000/abc'
    >>> normalize_identifier('["PMID:12345"]')
    '12345'
    """
    if not text:
        return ""
    result = text.lower().strip()
    result = DOI_URL_PREFIX_RE.sub("", result)
    result = SCHEME_PREFIX_RE.sub("", result)
    result = TRAILING_DOTS_RE.sub("", result)
    result = BRACKETED_RE.sub(r"\1", result)
    result = QUOTED_RE.sub(r"\1", result)
    # Prefixes may sit inside the brackets too
    result = SCHEME_PREFIX_RE.sub("", result)
    result = TRAILING_DOTS_RE.sub("", result)
    return result.strip()


def normalize_erc(text: str | None) -> str:
    """Fold a value to plain ASCII for minting metadata.

    Accented Latin letters lose their accents; any remaining non-ASCII
    character becomes ``.``.
    """
    folded = transliterate(normalize(text))
    return "".join(c if c.isascii() else "." for c in folded)
