"""Normalization of noisy bibliographic fields into comparable keys.

All functions here are pure.
"""

from oapsync.normalize._helpers import STOPWORDS, transliterate
from oapsync.normalize.keys import (
    author_fingerprint,
    author_match_keys,
    calc_author_key,
    doc_key,
    filter_title,
)
from oapsync.normalize.series import is_series_title
from oapsync.normalize.text import normalize, normalize_erc, normalize_identifier

__all__ = [
    "STOPWORDS",
    "author_fingerprint",
    "author_match_keys",
    "calc_author_key",
    "doc_key",
    "filter_title",
    "is_series_title",
    "normalize",
    "normalize_erc",
    "normalize_identifier",
    "transliterate",
]
