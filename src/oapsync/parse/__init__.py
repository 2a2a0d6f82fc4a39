"""Streaming parsers for harvested feeds.

Feeds are read one complete record sub-tree at a time with
``xml.etree.ElementTree.iterparse`` so that large harvests never sit in
memory as a single document.
"""

from oapsync.parse.elements import (
    iter_feed_items,
    native_to_raw_item,
    parse_feed_record,
    parse_pagination,
)
from oapsync.parse.users import iter_user_entries
from oapsync.parse.xmlutil import text_at

__all__ = [
    "iter_feed_items",
    "iter_user_entries",
    "native_to_raw_item",
    "parse_feed_record",
    "parse_pagination",
    "text_at",
]
