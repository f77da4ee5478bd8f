"""
行政区划与空间足迹模块

对应SQL表: division
"""

from .router import router
from .cache import DivisionCache, get_division_cache
from .conditions import spatial_filter_condition, any_division_condition
from .footprint import MatchRule, parse_footprint_entries, normalize_footprint_json
from .matcher import DivisionShape, SpatialFootprintMatcher
from .service import SpatialFootprintService

__all__ = [
    "router",
    "DivisionCache",
    "get_division_cache",
    "spatial_filter_condition",
    "any_division_condition",
    "MatchRule",
    "parse_footprint_entries",
    "normalize_footprint_json",
    "DivisionShape",
    "SpatialFootprintMatcher",
    "SpatialFootprintService",
]
