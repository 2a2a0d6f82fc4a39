"""Small ElementTree helpers shared by the feed parsers."""

import gzip
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from pathlib import Path
from typing import IO

__all__ = ["open_feed", "iter_elements", "parse_document", "text_at", "find_field"]


def open_feed(path: Path) -> IO[bytes]:
    """Open a feed file for binary reading, transparently un-gzipping."""
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    return path.open("rb")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[1] if tag.startswith("{") else tag


def _strip_namespaces(elem: ET.Element) -> None:
    elem.tag = _local_name(elem.tag)
    for key in [k for k in elem.attrib if k.startswith("{")]:
        elem.attrib[key.rsplit("}", 1)[1]] = elem.attrib.pop(key)


def parse_document(data: bytes) -> ET.Element:
    """Parse a small in-memory XML document and strip all namespaces.

    Raises
    ------
    ET.ParseError
        If the document is not well-formed.
    """
    root = ET.fromstring(data)
    for elem in root.iter():
        _strip_namespaces(elem)
    return root


def iter_elements(source: IO[bytes], tags: frozenset[str]) -> Iterator[ET.Element]:
    """Stream complete sub-trees with the given tag names.

    Namespaces are stripped from every element as it closes, so paths in
    callers can use bare tag names. Once the caller moves on, each yielded
    element is cleared and detached from its parent, as is everything
    outside a wanted element, so memory stays bounded for large feeds.

    Parameters
    ----------
    source : IO[bytes]
        Open XML document.
    tags : frozenset[str]
        Local names of the elements to yield.

    Yields
    ------
    ET.Element
        One complete element at a time.
    """
    open_elements: list[ET.Element] = []
    open_wanted = 0
    for event, elem in ET.iterparse(source, events=("start", "end")):
        if event == "start":
            open_elements.append(elem)
            if _local_name(elem.tag) in tags:
                open_wanted += 1
            continue

        open_elements.pop()
        _strip_namespaces(elem)
        if elem.tag in tags:
            open_wanted -= 1
            yield elem
        # Parts of a wanted element stay until the whole element is yielded.
        if open_wanted == 0 and open_elements:
            open_elements[-1].remove(elem)
            elem.clear()


def text_at(node: ET.Element | None, path: str) -> str | None:
    """Return the full text of the first element matching ``path``.

    Parameters
    ----------
    node : ET.Element | None
        Context element.
    path : str
        ElementTree path relative to ``node``.

    Returns
    -------
    str | None
        Concatenated text content, or None when nothing matches.
    """
    if node is None:
        return None
    found = node.find(path)
    if found is None:
        return None
    return "".join(found.itertext())


def find_field(node: ET.Element, name: str) -> ET.Element | None:
    """Return the direct ``field`` child with the given ``name`` attribute."""
    for child in node.iterfind("field"):
        if child.get("name") == name:
            return child
    return None
