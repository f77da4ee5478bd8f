"""
灾害事件汇总API路由

接口前缀: /disaster-events
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from .analytics import EventAnalyticsService
from .schemas import (
    DisasterEventTotalsResponse, SectorTotals,
    EventSectorsResponse, PublishedRecordCount,
)
from .sector_totals import SectorTotalsService
from .service import DisasterEventTotalsService


router = APIRouter(prefix="/disaster-events", tags=["disaster-events"])


def get_totals_service(db: AsyncSession = Depends(get_db)) -> DisasterEventTotalsService:
    return DisasterEventTotalsService(db)


def get_sector_totals_service(db: AsyncSession = Depends(get_db)) -> SectorTotalsService:
    return SectorTotalsService(db)


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> EventAnalyticsService:
    return EventAnalyticsService(db)


@router.get("/{event_id}/totals", response_model=DisasterEventTotalsResponse)
async def calculate_totals(
    event_id: UUID,
    service: DisasterEventTotalsService = Depends(get_totals_service),
) -> DisasterEventTotalsResponse:
    """
    计算事件四项派生汇总（不写库）

    修复/重置/恢复重建费用直接求和，恢复需求按部门覆盖值回退到明细
    """
    totals = await service.calculate_totals(event_id)
    return DisasterEventTotalsResponse(disaster_event_id=event_id, **totals.model_dump())


@router.post("/{event_id}/totals/recompute", response_model=DisasterEventTotalsResponse)
async def recompute_totals(
    event_id: UUID,
    service: DisasterEventTotalsService = Depends(get_totals_service),
) -> DisasterEventTotalsResponse:
    """重新计算并写回事件汇总字段"""
    totals = await service.update_totals(event_id)
    return DisasterEventTotalsResponse(disaster_event_id=event_id, **totals.model_dump())


@router.get("/{event_id}/sector-totals", response_model=SectorTotals)
async def get_sector_totals(
    event_id: UUID,
    sector_ids: list[int] = Query(default=[], description="部门ID，为空表示不限部门"),
    service: SectorTotalsService = Depends(get_sector_totals_service),
) -> SectorTotals:
    """部门维度的损坏/损失/恢复需求合计（仅已发布数据）"""
    return await service.sector_totals(event_id, sector_ids)


@router.get("/{event_id}/sectors", response_model=EventSectorsResponse)
async def list_event_sectors(
    event_id: UUID,
    service: EventAnalyticsService = Depends(get_analytics_service),
) -> EventSectorsResponse:
    """事件涉及的部门"""
    return await service.list_event_sectors(event_id)


@router.get("/{event_id}/published-records/count", response_model=PublishedRecordCount)
async def count_published_records(
    event_id: UUID,
    service: EventAnalyticsService = Depends(get_analytics_service),
) -> PublishedRecordCount:
    return await service.count_published_records(event_id)
