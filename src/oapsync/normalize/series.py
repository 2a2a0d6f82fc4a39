"""Detection of recurring non-article titles.

Journals publish mastheads, tables of contents, editorials and the like
under the same title in every issue. Grouping those by title would merge
unrelated items, so they are kept apart.
"""

import re
from collections.abc import Mapping

__all__ = ["SERIES_TITLE_PATTERNS", "clean_series_candidate", "is_series_title"]

SERIES_TITLE_PATTERNS: tuple[str, ...] = (
    r"about the contributors",
    r"acknowledge?ments",
    r"advertisements?",
    r"author's biographies",
    r"(back|end|front) (cover|matter)",
    r"(books )?noted with interest",
    r"books received",
    r"brief notes on recent publications",
    r"call for papers",
    r"conference program",
    r"contents",
    r"contributors",
    r"cover",
    r"(editor's|editors|editors'|president's) (introduction|message|note|page)",
    r"editorial",
    r"editorial notes",
    r"foreword",
    r"(forward |reprise )?editor's note",
    r"full issue",
    r"introduction",
    r"job announcements",
    r"letter from the editors",
    r"legislative update",
    r"masthead",
    r"new titles",
    r"preface",
    r"publications received",
    r"review",
    r"(the )?table of contents",
    r"thanks to reviewers",
    r"untitled",
    r"upcoming events",
    r"beyond the frontier ii",
    r"conceiving a courtyard",
    r"environmental information sources",
    r"índice",
    r"lider/ poems",
    r"summary of the research progress meeting",
    r"three pieces",
    r"two poems",
    r"ucla french department dissertation abstracts",
    r"ucla french department publications and dissertations",
)

_SERIES_TITLE_RE = re.compile("^(" + "|".join(SERIES_TITLE_PATTERNS) + ")$")
_LEADING_BRACKET_RE = re.compile(r"^[\[(]")
_TRAILING_BRACKET_RE = re.compile(r"[\])]$")


def clean_series_candidate(title: str) -> str:
    """Prepare a title for series matching.

    Lower-cases, strips one leading ``[``/``(`` and one trailing ``]``/``)``,
    collapses whitespace and folds the typographic apostrophe.
    """
    cleaned = title.lower().strip()
    cleaned = _LEADING_BRACKET_RE.sub("", cleaned)
    cleaned = _TRAILING_BRACKET_RE.sub("", cleaned)
    cleaned = cleaned.replace("’", "'")
    return " ".join(cleaned.split())


def is_series_title(title: str, title_counts: Mapping[str, int]) -> bool:
    """Check whether a title is a recurring non-article title.

    A title seen only once in the corpus is never a series title.

    Parameters
    ----------
    title : str
        Normalized title.
    title_counts : Mapping[str, int]
        Occurrences of each title across the whole corpus.

    Returns
    -------
    bool
        True if the title repeats and matches a known series pattern.

    Examples
    --------
    >>> is_series_title("[Masthead]", {"[Masthead]": 6})
    True
    >>> is_series_title("Masthead", {"Masthead": 1})
    False
    """
    if title_counts.get(title, 0) <= 1:
        return False
    return _SERIES_TITLE_RE.match(clean_series_candidate(title)) is not None
