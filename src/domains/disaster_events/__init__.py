"""
灾害事件汇总模块

对应SQL表: disaster_event, disaster_records, sector,
sector_disaster_records_relation, damages, losses, disruption
"""

from .router import router
from .service import DisasterEventTotalsService
from .sector_totals import SectorTotalsService
from .analytics import EventAnalyticsService
from .schemas import (
    DisasterEventTotals, DisasterEventTotalsResponse,
    MoneyTotal, SectorTotals, SectorItem,
    EventSectorsResponse, PublishedRecordCount,
)

__all__ = [
    "router",
    "DisasterEventTotalsService",
    "SectorTotalsService",
    "EventAnalyticsService",
    "DisasterEventTotals",
    "DisasterEventTotalsResponse",
    "MoneyTotal",
    "SectorTotals",
    "SectorItem",
    "EventSectorsResponse",
    "PublishedRecordCount",
]
