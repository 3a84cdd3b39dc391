"""Label timeline resolution.

Reconstructs when a label was applied to each message carrying it, using the
mailbox change log where it is retained and a label search otherwise.
"""

from .anchor import AnchorResolver
from .dedupe import dedupe
from .details import DetailFetcher
from .fallback import FallbackLocator, build_label_query
from .interpolate import interpolate
from .resolver import LabelTimelineResolver, flatten_member_ids, sort_for_display
from .scanner import ChangeLogScan, ChangeLogScanner

__all__ = [
    "AnchorResolver",
    "ChangeLogScan",
    "ChangeLogScanner",
    "DetailFetcher",
    "FallbackLocator",
    "LabelTimelineResolver",
    "build_label_query",
    "dedupe",
    "flatten_member_ids",
    "interpolate",
    "sort_for_display",
]
