"""Identifier schemes and the ``scheme::value`` key encoding.

Every identifier attached to a record is a ``(scheme, value)`` pair. Schemes
of the form ``c-<campus>-id`` are campus-of-origin identifiers; each campus
mints its own, so two records from different campuses legitimately carry
different values under different campus schemes. ``elements`` identifies a
publication inside Elements itself.
"""

ALL_CAMPUSES: tuple[str, ...] = ("eschol", "ucla", "uci", "ucsf")

ELEMENTS_SCHEME = "elements"
DOI_SCHEME = "doi"

KEY_SEPARATOR = "::"

__all__ = [
    "ALL_CAMPUSES",
    "ELEMENTS_SCHEME",
    "DOI_SCHEME",
    "KEY_SEPARATOR",
    "campus_scheme",
    "is_campus_scheme",
    "format_id_key",
    "parse_id_key",
]


def campus_scheme(campus: str) -> str:
    """Return the identifier scheme used by a campus (e.g. ``c-ucla-id``)."""
    return f"c-{campus}-id"


def is_campus_scheme(scheme: str) -> bool:
    """Check whether a scheme denotes a campus-of-origin identifier.

    Parameters
    ----------
    scheme : str
        Lower-cased identifier scheme.

    Returns
    -------
    bool
        True for ``c-`` prefixed schemes.
    """
    return scheme.startswith("c-")


def format_id_key(scheme: str, value: str) -> str:
    """Encode an identifier pair as a single ``scheme::value`` string."""
    return f"{scheme}{KEY_SEPARATOR}{value}"


def parse_id_key(key: str) -> tuple[str, str]:
    """Decode a ``scheme::value`` string.

    Parameters
    ----------
    key : str
        Encoded identifier.

    Returns
    -------
    tuple[str, str]
        The (scheme, value) pair.

    Raises
    ------
    ValueError
        If the key has no separator.
    """
    scheme, sep, value = key.partition(KEY_SEPARATOR)
    if not sep:
        raise ValueError(f"Not a scheme::value identifier: {key!r}")
    return scheme, value
