"""Elements publication type table."""

TYPE_ID_TO_NAME: dict[int, str] = {
    2: "book",
    3: "chapter",
    4: "conference",
    5: "journal-article",
    6: "patent",
    7: "report",
    8: "software",
    9: "performance",
    10: "composition",
    11: "design",
    12: "artefact",
    13: "exhibition",
    14: "other",
    15: "internet-publication",
    16: "scholarly-edition",
    17: "poster",
    18: "thesis-dissertation",
    22: "dataset",
    50: "figure",
    51: "fileset",
    52: "media",
    53: "presentation",
}

TYPE_NAME_TO_ID: dict[str, int] = {name: type_id for type_id, name in TYPE_ID_TO_NAME.items()}

__all__ = ["TYPE_ID_TO_NAME", "TYPE_NAME_TO_ID", "is_known_type"]


def is_known_type(type_name: str) -> bool:
    """Check whether a type name appears in the Elements type table."""
    return type_name in TYPE_NAME_TO_ID
