"""
灾情分析查询模块

组合致灾因子层级筛选与空间足迹筛选
"""

from .router import router
from .service import RecordSearchService
from .schemas import RecordSearchRequest, RecordSearchResponse

__all__ = [
    "router",
    "RecordSearchService",
    "RecordSearchRequest",
    "RecordSearchResponse",
]
