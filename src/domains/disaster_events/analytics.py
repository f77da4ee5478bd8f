"""
灾害事件分析查询

只统计已发布（settings.published_status）的记录
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import InternalError
from src.core.ids import require_uuid
from .repository import ImpactRepository
from .schemas import EventSectorsResponse, PublishedRecordCount, SectorItem

logger = logging.getLogger(__name__)


class EventAnalyticsService:
    """事件分析服务"""

    def __init__(self, db: AsyncSession, repository: Optional[ImpactRepository] = None) -> None:
        self._repo = repository or ImpactRepository(db)

    async def list_event_sectors(self, disaster_event_id: Any) -> EventSectorsResponse:
        """事件已发布记录涉及的部门，按名称排序"""
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        try:
            sectors = await self._repo.list_event_sectors(event_id, settings.published_status)
        except SQLAlchemyError as e:
            logger.exception(f"查询事件部门失败: event_id={event_id}")
            raise InternalError("Failed to load event sectors") from e

        return EventSectorsResponse(
            disaster_event_id=event_id,
            items=[
                SectorItem(id=s.id, sectorname=s.sectorname, parent_id=s.parent_id)
                for s in sectors
            ],
        )

    async def count_published_records(self, disaster_event_id: Any) -> PublishedRecordCount:
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        try:
            count = await self._repo.count_published_records(event_id, settings.published_status)
        except SQLAlchemyError as e:
            logger.exception(f"统计已发布记录失败: event_id={event_id}")
            raise InternalError("Failed to count published records") from e

        return PublishedRecordCount(disaster_event_id=event_id, count=count)
