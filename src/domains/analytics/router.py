"""
灾情分析API路由

接口前缀: /analytics
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.domains.disaster_events.schemas import SectorTotals
from src.domains.disaster_events.sector_totals import SectorTotalsService
from .schemas import RecordSearchRequest, RecordSearchResponse
from .service import RecordSearchService


router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_search_service(db: AsyncSession = Depends(get_db)) -> RecordSearchService:
    return RecordSearchService(db)


def get_sector_totals_service(db: AsyncSession = Depends(get_db)) -> SectorTotalsService:
    return SectorTotalsService(db)


@router.post("/records/search", response_model=RecordSearchResponse)
async def search_records(
    data: RecordSearchRequest,
    service: RecordSearchService = Depends(get_search_service),
) -> RecordSearchResponse:
    """
    检索已发布灾情记录

    致灾因子按最具体的一级筛选，层级不一致时只返回告警；
    行政区划按空间足迹六条规则任一命中
    """
    return await service.search(data)


@router.get("/sector-totals", response_model=SectorTotals)
async def sector_totals_by_division(
    disaster_event_id: UUID = Query(..., description="灾害事件ID"),
    division_ids: list[int] = Query(..., description="行政区划ID，任一命中即纳入"),
    sector_ids: list[int] = Query(default=[], description="部门ID，为空表示不限部门"),
    service: SectorTotalsService = Depends(get_sector_totals_service),
) -> SectorTotals:
    """按行政区划统计的部门汇总"""
    return await service.sector_totals_by_division(disaster_event_id, division_ids, sector_ids)
