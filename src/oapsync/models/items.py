"""Raw bibliographic items and OA publication groups."""

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from oapsync.models.identifiers import (
    ELEMENTS_SCHEME,
    format_id_key,
    is_campus_scheme,
)

__all__ = [
    "DataError",
    "OtherItemInfo",
    "RawItem",
    "OAPub",
    "author_name",
    "author_email",
]


class DataError(ValueError):
    """A record is malformed or lacks a required field.

    Data errors are raised at ingestion and storage time; callers skip the
    offending record and keep going.
    """


def author_name(author: str) -> str:
    """Return the ``"last, initials"`` part of an author string."""
    return author.partition("|")[0]


def author_email(author: str) -> str:
    """Return the lower-cased email part of an author string, or ``""``."""
    return author.partition("|")[2].lower().strip()


@dataclass(frozen=True)
class OtherItemInfo:
    """Less common descriptive fields, mostly for non-article types.

    Attributes
    ----------
    abstract : str | None
        Abstract text.
    editors : tuple[str, ...] | None
        Editors as ``"last, initials|email"`` strings.
    publisher : str | None
        Publisher name.
    place_of_publication : str | None
        Place of publication.
    pagination : tuple[str, str] | None
        First and last page.
    name_of_conference : str | None
        Conference name.
    parent_title : str | None
        Title of the containing work (e.g. the book of a chapter).
    """

    abstract: str | None = None
    editors: tuple[str, ...] | None = None
    publisher: str | None = None
    place_of_publication: str | None = None
    pagination: tuple[str, str] | None = None
    name_of_conference: str | None = None
    parent_title: str | None = None

    def is_empty(self) -> bool:
        """Check whether no field is set."""
        return all(value is None for value in self.to_dict().values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "abstract": self.abstract,
            "editors": list(self.editors) if self.editors is not None else None,
            "publisher": self.publisher,
            "place_of_publication": self.place_of_publication,
            "pagination": list(self.pagination) if self.pagination is not None else None,
            "name_of_conference": self.name_of_conference,
            "parent_title": self.parent_title,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "OtherItemInfo":
        """Create from dictionary produced by ``to_dict``."""
        editors = data.get("editors")
        pagination = data.get("pagination")
        return OtherItemInfo(
            abstract=data.get("abstract"),
            editors=tuple(editors) if editors is not None else None,
            publisher=data.get("publisher"),
            place_of_publication=data.get("place_of_publication"),
            pagination=(pagination[0], pagination[1]) if pagination is not None else None,
            name_of_conference=data.get("name_of_conference"),
            parent_title=data.get("parent_title"),
        )


@dataclass(frozen=True)
class RawItem:
    """One bibliographic record from one source.

    Attributes
    ----------
    type_name : str
        Elements type name (e.g. "journal-article", "book").
    title : str
        Normalized title, never empty.
    doc_key : str
        Stop-word-filtered title key used for bucketing.
    updated : str
        ISO8601 timestamp of the source's last change.
    authors : tuple[str, ...]
        Ordered ``"last, initials|email"`` strings.
    date : str | None
        ``YYYY-MM-DD`` with zero-filled unknown parts.
    ids : tuple[tuple[str, str], ...]
        Ordered (scheme, value) identifier pairs.
    journal, volume, issue : str | None
        Serial publication details.
    other_info : OtherItemInfo | None
        Optional extra fields, None when all would be empty.
    """

    type_name: str
    title: str
    doc_key: str
    updated: str
    authors: tuple[str, ...]
    date: str | None
    ids: tuple[tuple[str, str], ...]
    journal: str | None = None
    volume: str | None = None
    issue: str | None = None
    other_info: OtherItemInfo | None = None

    def campus_ids(self) -> list[tuple[str, str]]:
        """Return the campus-of-origin identifiers in order."""
        return [(scheme, value) for scheme, value in self.ids if is_campus_scheme(scheme)]

    def elements_id(self) -> str | None:
        """Return the Elements publication ID, if the item came from Elements."""
        for scheme, value in self.ids:
            if scheme == ELEMENTS_SCHEME:
                return value
        return None

    def is_from_elements(self) -> bool:
        """Check whether the item carries an Elements identifier."""
        return self.elements_id() is not None

    def primary_id(self) -> tuple[str, str]:
        """Return the identifier the item is stored under.

        The Elements identifier wins when present; otherwise the item must
        carry exactly one campus identifier.

        Raises
        ------
        DataError
            If there is no campus identifier, or several without an
            Elements identifier.
        """
        elements_id = self.elements_id()
        if elements_id is not None:
            return (ELEMENTS_SCHEME, elements_id)
        campus_ids = self.campus_ids()
        if not campus_ids:
            raise DataError(f"No campus identifier for item {self.title!r}")
        if len(campus_ids) > 1:
            raise DataError(f"Ambiguous campus identifier for item {self.title!r}: {campus_ids}")
        return campus_ids[0]

    def primary_key(self) -> str:
        """Return the primary identifier as a ``scheme::value`` key."""
        return format_id_key(*self.primary_id())

    def with_authors(self, authors: tuple[str, ...]) -> "RawItem":
        """Return a copy with a different author list."""
        return replace(self, authors=authors)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "type_name": self.type_name,
            "title": self.title,
            "doc_key": self.doc_key,
            "updated": self.updated,
            "authors": list(self.authors),
            "date": self.date,
            "ids": [[scheme, value] for scheme, value in self.ids],
            "journal": self.journal,
            "volume": self.volume,
            "issue": self.issue,
            "other_info": self.other_info.to_dict() if self.other_info is not None else None,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RawItem":
        """Create from dictionary produced by ``to_dict``."""
        other = data.get("other_info")
        return RawItem(
            type_name=data["type_name"],
            title=data["title"],
            doc_key=data["doc_key"],
            updated=data["updated"],
            authors=tuple(data["authors"]),
            date=data.get("date"),
            ids=tuple((scheme, value) for scheme, value in data["ids"]),
            journal=data.get("journal"),
            volume=data.get("volume"),
            issue=data.get("issue"),
            other_info=OtherItemInfo.from_dict(other) if other is not None else None,
        )


@dataclass
class OAPub:
    """A group of raw items believed to describe the same publication.

    Built fresh on every run and never persisted directly.

    Attributes
    ----------
    items : list[RawItem]
        Member items in grouping order; the first is the seed.
    user_emails : set[str]
        Author emails that belong to known users.
    user_ids : set[str]
        Proprietary IDs of those users.
    """

    items: list[RawItem]
    user_emails: set[str] = field(default_factory=set)
    user_ids: set[str] = field(default_factory=set)

    def __iter__(self) -> Iterator[RawItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def all_ids(self) -> list[tuple[str, str]]:
        """Return the union of member identifiers, first occurrence first."""
        seen: set[tuple[str, str]] = set()
        result: list[tuple[str, str]] = []
        for item in self.items:
            for pair in item.ids:
                if pair not in seen:
                    seen.add(pair)
                    result.append(pair)
        return result

    def campus_keys(self) -> list[str]:
        """Return every campus identifier of the group as ``scheme::value``."""
        return [format_id_key(scheme, value) for scheme, value in self.all_ids() if is_campus_scheme(scheme)]

    def association_keys(self) -> list[str]:
        """Return the keys an OAP identifier is associated under.

        These are the campus identifiers; a group made only of Elements
        records falls back to its members' primary keys.
        """
        return self.campus_keys() or sorted(self.member_keys())

    def member_keys(self) -> frozenset[str]:
        """Return the primary keys of all members."""
        return frozenset(item.primary_key() for item in self.items)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a summary dictionary for reporting."""
        return {
            "members": [item.primary_key() for item in self.items],
            "titles": [item.title for item in self.items],
            "type_name": self.items[0].type_name,
            "doc_key": self.items[0].doc_key,
            "ids": [format_id_key(scheme, value) for scheme, value in self.all_ids()],
            "user_emails": sorted(self.user_emails),
            "user_ids": sorted(self.user_ids),
        }
