"""
致灾因子分类与层级筛选模块

对应SQL表: hip_type, hip_cluster, hip_hazard, hazardous_event
"""

from .router import router
from .service import HazardFilterService
from .schemas import HazardFilter, ConsistencyWarning, HazardFilterResult, HazardFilterCheckResponse

__all__ = [
    "router",
    "HazardFilterService",
    "HazardFilter",
    "ConsistencyWarning",
    "HazardFilterResult",
    "HazardFilterCheckResponse",
]
