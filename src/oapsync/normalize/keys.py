"""Comparison keys derived from titles and author names.

The document key buckets items by title; the author fingerprint decides
whether two items in a bucket can describe the same publication.
"""

from collections.abc import Iterable

from oapsync.models.items import author_name
from oapsync.normalize._helpers import (
    NON_ALNUM_SPACE_RE,
    NON_ALPHA_RE,
    STOPWORDS,
    transliterate,
)
from oapsync.normalize.text import normalize

AUTHOR_KEY_LEN = 4
AUTHOR_MATCH_KEY_LEN = 8

__all__ = [
    "AUTHOR_KEY_LEN",
    "AUTHOR_MATCH_KEY_LEN",
    "filter_title",
    "doc_key",
    "calc_author_key",
    "author_fingerprint",
    "author_match_keys",
]


def filter_title(title: str | None) -> list[str]:
    """Reduce a title to its significant words.

    Folds accents, lower-cases, replaces everything but ``[a-z0-9 ]`` with
    spaces and drops stop words. When what is left spans less than half of
    the normalized title (titles made of stop words, or in a non-Latin
    script), falls back to the lower-cased words of the normalized title.

    Parameters
    ----------
    title : str | None
        Raw or normalized title.

    Returns
    -------
    list[str]
        Key words in title order.

    Examples
    --------
    >>> filter_title("The Quantum Entanglement of a Photon")
    ['quantum', 'entanglement', 'photon']
    >>> filter_title("To Be Or Not To Be")
    ['to', 'be', 'or', 'not', 'to', 'be']
    """
    normalized = normalize(title)
    folded = NON_ALNUM_SPACE_RE.sub(" ", transliterate(normalized).lower())
    words = [word for word in folded.split() if word not in STOPWORDS]
    if len(" ".join(words)) >= len(normalized) // 2:
        return words
    return normalized.lower().split()


def doc_key(title: str | None) -> str:
    """Return the document key: the filtered title words joined by spaces."""
    return " ".join(filter_title(title))


def _folded_name(author: str) -> str:
    return NON_ALPHA_RE.sub("", transliterate(normalize(author_name(author))).lower())


def calc_author_key(author: str) -> str:
    """Return the 4-character key of a ``"last, initials|email"`` author.

    Only the name part is used; the key is the first letters of the
    accent-folded, letters-only surname-first name.

    Examples
    --------
    >>> calc_author_key("Muñoz-Smith, J.|jms@example.edu")
    'muno'
    """
    return _folded_name(author)[:AUTHOR_KEY_LEN]


def author_fingerprint(authors: Iterable[str]) -> frozenset[str]:
    """Return the set of author keys of an item.

    Authors whose name holds no Latin letters contribute nothing; an empty
    result marks an unattributed item that is compatible with anything.
    """
    return frozenset(key for key in (calc_author_key(author) for author in authors) if key)


def author_match_keys(author: str) -> tuple[str, str]:
    """Return the long and short keys used to pair authors when merging.

    Returns
    -------
    tuple[str, str]
        The 8-character surname+initial key and the 4-character key.
    """
    folded = _folded_name(author)
    return folded[:AUTHOR_MATCH_KEY_LEN], folded[:AUTHOR_KEY_LEN]
