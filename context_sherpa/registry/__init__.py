"""Community rule registry client."""

from .cache import IndexCache
from .formatting import format_rule_details, format_search_results
from .index import CommunityRuleIndex, filter_rules, parse_index, parse_tags
from .transport import DocumentFetcher, UrllibFetcher

__all__ = [
    "CommunityRuleIndex",
    "DocumentFetcher",
    "IndexCache",
    "UrllibFetcher",
    "filter_rules",
    "format_rule_details",
    "format_search_results",
    "parse_index",
    "parse_tags",
]
