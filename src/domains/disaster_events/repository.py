"""
灾害影响数据访问层

职责: 数据库查询与汇总字段写回，无业务逻辑
所有方法都在调用方传入的会话上执行，不提交不回滚。
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    DisasterEvent, DisasterRecord, Sector, SectorRelation,
    Damages, Losses, Disruption,
)

logger = logging.getLogger(__name__)


class ImpactRepository:
    """事件/记录/部门/明细数据仓库"""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ==================== 事件与记录 ====================

    async def get_event(self, event_id: UUID) -> Optional[DisasterEvent]:
        result = await self._db.execute(
            select(DisasterEvent).where(DisasterEvent.id == event_id)
        )
        return result.scalar_one_or_none()

    async def get_record(self, record_id: UUID) -> Optional[DisasterRecord]:
        result = await self._db.execute(
            select(DisasterRecord).where(DisasterRecord.id == record_id)
        )
        return result.scalar_one_or_none()

    async def list_record_ids_for_event(self, event_id: UUID) -> list[UUID]:
        """事件下全部记录ID（不限审批状态）"""
        result = await self._db.execute(
            select(DisasterRecord.id)
            .where(DisasterRecord.disaster_event_id == event_id)
            .order_by(DisasterRecord.id)
        )
        return list(result.scalars().all())

    # ==================== 明细批量查询 ====================

    async def list_damages_for_records(self, record_ids: Sequence[UUID]) -> Sequence[Damages]:
        if not record_ids:
            return []
        result = await self._db.execute(
            select(Damages)
            .where(Damages.record_id.in_(record_ids))
            .order_by(Damages.record_id, Damages.id)
        )
        return result.scalars().all()

    async def list_disruptions_for_records(self, record_ids: Sequence[UUID]) -> Sequence[Disruption]:
        if not record_ids:
            return []
        result = await self._db.execute(
            select(Disruption)
            .where(Disruption.record_id.in_(record_ids))
            .order_by(Disruption.record_id, Disruption.id)
        )
        return result.scalars().all()

    async def list_sector_relations_for_records(
        self, record_ids: Sequence[UUID]
    ) -> Sequence[SectorRelation]:
        if not record_ids:
            return []
        result = await self._db.execute(
            select(SectorRelation)
            .where(SectorRelation.disaster_record_id.in_(record_ids))
            .order_by(SectorRelation.disaster_record_id, SectorRelation.id)
        )
        return result.scalars().all()

    # ==================== 部门汇总查询 ====================

    async def list_sector_relations_for_event(
        self,
        event_id: UUID,
        sector_ids: Sequence[int],
        published_status: str,
        extra_conditions: Optional[Sequence[Any]] = None,
    ) -> Sequence[SectorRelation]:
        """
        已发布事件下已发布记录的部门关联

        - sector_ids 为空表示不限部门
        - 仅 with_damage 或 with_losses 为真的关联
        - 按 (记录ID, 关联ID) 排序，保证币种取值顺序确定
        """
        query = (
            select(SectorRelation)
            .join(DisasterRecord, DisasterRecord.id == SectorRelation.disaster_record_id)
            .join(DisasterEvent, DisasterEvent.id == DisasterRecord.disaster_event_id)
            .where(
                DisasterEvent.id == event_id,
                DisasterEvent.approval_status == published_status,
                DisasterRecord.approval_status == published_status,
                or_(
                    SectorRelation.with_damage.is_(True),
                    SectorRelation.with_losses.is_(True),
                ),
            )
        )
        if sector_ids:
            query = query.where(SectorRelation.sector_id.in_(list(sector_ids)))
        for condition in extra_conditions or []:
            query = query.where(condition)

        query = query.distinct().order_by(SectorRelation.disaster_record_id, SectorRelation.id)
        result = await self._db.execute(query)
        return result.scalars().all()

    async def list_damages_for_pair(self, record_id: UUID, sector_id: int) -> Sequence[Damages]:
        result = await self._db.execute(
            select(Damages)
            .where(Damages.record_id == record_id, Damages.sector_id == sector_id)
            .order_by(Damages.id)
        )
        return result.scalars().all()

    async def list_losses_for_pair(self, record_id: UUID, sector_id: int) -> Sequence[Losses]:
        result = await self._db.execute(
            select(Losses)
            .where(Losses.record_id == record_id, Losses.sector_id == sector_id)
            .order_by(Losses.id)
        )
        return result.scalars().all()

    # ==================== 事件分析 ====================

    async def list_event_sectors(self, event_id: UUID, published_status: str) -> Sequence[Sector]:
        """事件已发布记录涉及的部门（去重，按名称排序）"""
        result = await self._db.execute(
            select(Sector)
            .join(SectorRelation, SectorRelation.sector_id == Sector.id)
            .join(DisasterRecord, DisasterRecord.id == SectorRelation.disaster_record_id)
            .where(
                DisasterRecord.disaster_event_id == event_id,
                DisasterRecord.approval_status == published_status,
            )
            .distinct()
            .order_by(Sector.sectorname, Sector.id)
        )
        return result.scalars().all()

    async def count_published_records(self, event_id: UUID, published_status: str) -> int:
        result = await self._db.execute(
            select(func.count(DisasterRecord.id)).where(
                DisasterRecord.disaster_event_id == event_id,
                DisasterRecord.approval_status == published_status,
            )
        )
        return result.scalar() or 0

    # ==================== 汇总写回 ====================

    async def update_event_totals(
        self,
        event_id: UUID,
        repair: Decimal,
        replacement: Decimal,
        rehabilitation: Decimal,
        recovery: Decimal,
    ) -> bool:
        """写回四项派生汇总，返回事件是否存在"""
        result = await self._db.execute(
            update(DisasterEvent)
            .where(DisasterEvent.id == event_id)
            .values(
                repair_costs_calc=repair,
                replacement_costs_calc=replacement,
                rehabilitation_costs_calc=rehabilitation,
                recovery_needs_calc=recovery,
            )
        )
        await self._db.flush()

        updated = (result.rowcount or 0) > 0
        logger.info(
            f"写回事件汇总: event_id={event_id}, updated={updated}, "
            f"repair={repair}, replacement={replacement}, "
            f"rehabilitation={rehabilitation}, recovery={recovery}"
        )
        return updated
