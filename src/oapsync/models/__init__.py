"""Data models for oapsync.

Raw items as harvested from a source, OA publication groups, the
identifier key encoding and the Elements type table.
"""

from oapsync.models.identifiers import (
    ALL_CAMPUSES,
    DOI_SCHEME,
    ELEMENTS_SCHEME,
    campus_scheme,
    format_id_key,
    is_campus_scheme,
    parse_id_key,
)
from oapsync.models.items import (
    DataError,
    OAPub,
    OtherItemInfo,
    RawItem,
    author_email,
    author_name,
)
from oapsync.models.types import TYPE_ID_TO_NAME, TYPE_NAME_TO_ID, is_known_type

__all__ = [
    "ALL_CAMPUSES",
    "DOI_SCHEME",
    "ELEMENTS_SCHEME",
    "TYPE_ID_TO_NAME",
    "TYPE_NAME_TO_ID",
    "DataError",
    "OAPub",
    "OtherItemInfo",
    "RawItem",
    "author_email",
    "author_name",
    "campus_scheme",
    "format_id_key",
    "is_campus_scheme",
    "is_known_type",
    "parse_id_key",
]
