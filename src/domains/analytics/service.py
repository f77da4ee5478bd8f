"""
灾情分析查询服务

组合致灾因子层级筛选、致灾事件时间范围与空间足迹筛选（可含下级区划），检索已发布的灾情记录
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import InternalError
from src.domains.disaster_events.models import DisasterRecord
from src.domains.geography.service import SpatialFootprintService
from src.domains.hazards.service import HazardFilterService
from .schemas import RecordSearchRequest, RecordSearchResponse

logger = logging.getLogger(__name__)


class RecordSearchService:
    """记录检索服务"""

    def __init__(
        self,
        db: AsyncSession,
        hazard_service: Optional[HazardFilterService] = None,
        spatial_service: Optional[SpatialFootprintService] = None,
    ) -> None:
        self._db = db
        self._hazards = hazard_service or HazardFilterService(db)
        self._spatial = spatial_service or SpatialFootprintService(db)

    async def build_query(self, data: RecordSearchRequest):
        """
        构造检索语句

        Returns:
            (select 语句, 致灾因子告警)
        """
        stmt = select(DisasterRecord.id).where(
            DisasterRecord.approval_status == settings.published_status
        )
        if data.disaster_event_id is not None:
            stmt = stmt.where(DisasterRecord.disaster_event_id == data.disaster_event_id)

        date_conditions = self._hazards.event_date_conditions(data.from_date, data.to_date)
        stmt, warnings = await self._hazards.apply_to_record_query(stmt, data, date_conditions)

        if data.division_ids:
            division_ids = list(data.division_ids)
            if data.include_descendants:
                division_ids = await self._spatial.expand_division_ids(division_ids)
            condition = await self._spatial.any_division_condition(
                division_ids, DisasterRecord.spatial_footprint
            )
            stmt = stmt.where(condition)

        return stmt, warnings

    async def search(self, data: RecordSearchRequest) -> RecordSearchResponse:
        stmt, warnings = await self.build_query(data)

        try:
            count_result = await self._db.execute(
                select(func.count()).select_from(stmt.subquery())
            )
            total = count_result.scalar() or 0

            page_stmt = (
                stmt.order_by(DisasterRecord.id)
                .offset((data.page - 1) * data.page_size)
                .limit(data.page_size)
            )
            result = await self._db.execute(page_stmt)
            items = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"灾情记录检索失败: filters={data.model_dump(mode='json')}")
            raise InternalError("Failed to search disaster records") from e

        logger.info(
            f"灾情记录检索: total={total}, page={data.page}, "
            f"divisions={data.division_ids}, warnings={len(warnings)}"
        )
        return RecordSearchResponse(
            items=items,
            total=total,
            page=data.page,
            page_size=data.page_size,
            warnings=warnings,
        )
