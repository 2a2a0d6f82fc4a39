"""Grouping engine: clusters raw items into OA publication groups.

Main Components
---------------
- GroupingContext: per-run title counts, buckets, fingerprint cache, users
- is_compatible: group/candidate compatibility test
- group_items: bucket-then-greedy clustering over the whole population
"""

from oapsync.grouping.compatibility import is_compatible
from oapsync.grouping.context import GroupingContext
from oapsync.grouping.engine import SERIES_DATE_THRESHOLD, group_bucket, group_items

__all__ = [
    "SERIES_DATE_THRESHOLD",
    "GroupingContext",
    "group_bucket",
    "group_items",
    "is_compatible",
]
