"""
灾情记录影响明细业务服务层

职责: 明细写入与删除，每次写入后在同一会话内重算父事件汇总

业务规则:
- 写入前记录必须存在
- 金额/数量不允许为负（Schema 校验）
- 写入后调用 update_totals_by_record_id，记录未挂事件时不重算
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError, InternalError
from src.core.ids import require_uuid
from src.domains.disaster_events.models import (
    SectorRelation, Damages, Losses, Disruption,
)
from src.domains.disaster_events.service import DisasterEventTotalsService
from .repository import RecordImpactRepository
from .schemas import (
    SectorRelationCreate, SectorRelationUpdate,
    DamagesCreate, DamagesUpdate,
    LossesCreate, LossesUpdate,
    DisruptionCreate, DisruptionUpdate,
    RecordFootprintUpdate, ImpactWriteResult,
)

logger = logging.getLogger(__name__)

# 模型 -> (资源名, 指向记录的外键字段)
_RESOURCES: dict[type, tuple[str, str]] = {
    SectorRelation: ("SectorRelation", "disaster_record_id"),
    Damages: ("Damages", "record_id"),
    Losses: ("Losses", "record_id"),
    Disruption: ("Disruption", "record_id"),
}


class RecordImpactService:
    """影响明细写入服务"""

    def __init__(
        self,
        db: AsyncSession,
        repository: Optional[RecordImpactRepository] = None,
        totals_service: Optional[DisasterEventTotalsService] = None,
    ) -> None:
        self._repo = repository or RecordImpactRepository(db)
        self._totals = totals_service or DisasterEventTotalsService(db)

    # ==================== 部门关联 ====================

    async def create_sector_relation(self, record_id: Any, data: SectorRelationCreate) -> ImpactWriteResult:
        return await self._create(SectorRelation, record_id, data)

    async def update_sector_relation(self, relation_id: Any, data: SectorRelationUpdate) -> ImpactWriteResult:
        return await self._update(SectorRelation, relation_id, data)

    async def delete_sector_relation(self, relation_id: Any) -> ImpactWriteResult:
        return await self._delete(SectorRelation, relation_id)

    # ==================== 损坏明细 ====================

    async def create_damages(self, record_id: Any, data: DamagesCreate) -> ImpactWriteResult:
        return await self._create(Damages, record_id, data)

    async def update_damages(self, damages_id: Any, data: DamagesUpdate) -> ImpactWriteResult:
        return await self._update(Damages, damages_id, data)

    async def delete_damages(self, damages_id: Any) -> ImpactWriteResult:
        return await self._delete(Damages, damages_id)

    # ==================== 损失明细 ====================

    async def create_losses(self, record_id: Any, data: LossesCreate) -> ImpactWriteResult:
        return await self._create(Losses, record_id, data)

    async def update_losses(self, losses_id: Any, data: LossesUpdate) -> ImpactWriteResult:
        return await self._update(Losses, losses_id, data)

    async def delete_losses(self, losses_id: Any) -> ImpactWriteResult:
        return await self._delete(Losses, losses_id)

    # ==================== 服务中断 ====================

    async def create_disruption(self, record_id: Any, data: DisruptionCreate) -> ImpactWriteResult:
        return await self._create(Disruption, record_id, data)

    async def update_disruption(self, disruption_id: Any, data: DisruptionUpdate) -> ImpactWriteResult:
        return await self._update(Disruption, disruption_id, data)

    async def delete_disruption(self, disruption_id: Any) -> ImpactWriteResult:
        return await self._delete(Disruption, disruption_id)

    # ==================== 记录 ====================

    async def update_record_footprint(self, record_id: Any, data: RecordFootprintUpdate) -> ImpactWriteResult:
        """更新记录空间足迹（存储前已规范化），不影响金额汇总"""
        rid = require_uuid(record_id, "disaster_record_id")
        try:
            record = await self._repo.get_record(rid)
            if record is None:
                raise NotFoundError("DisasterRecord", str(rid))
            await self._repo.update(record, {"spatial_footprint": data.spatial_footprint})
        except SQLAlchemyError as e:
            logger.exception(f"更新记录足迹失败: record_id={rid}")
            raise InternalError("Failed to update disaster record footprint") from e
        return ImpactWriteResult(disaster_record_id=rid)

    async def delete_record(self, record_id: Any) -> ImpactWriteResult:
        """
        删除灾情记录

        明细由数据库级联删除；记录挂在事件下时重算该事件汇总
        """
        rid = require_uuid(record_id, "disaster_record_id")
        try:
            record = await self._repo.get_record(rid)
            if record is None:
                raise NotFoundError("DisasterRecord", str(rid))
            event_id = record.disaster_event_id
            await self._repo.delete(record)
        except SQLAlchemyError as e:
            logger.exception(f"删除灾情记录失败: record_id={rid}")
            raise InternalError("Failed to delete disaster record") from e

        totals = await self._totals.update_totals(event_id) if event_id is not None else None
        logger.info(f"灾情记录已删除: record_id={rid}, event_id={event_id}")
        return ImpactWriteResult(disaster_record_id=rid, event_totals=totals)

    # ==================== 通用写入 ====================

    async def _create(self, model: type, record_id: Any, data: BaseModel) -> ImpactWriteResult:
        rid = require_uuid(record_id, "disaster_record_id")
        _, record_field = _RESOURCES[model]
        try:
            if await self._repo.get_record(rid) is None:
                raise NotFoundError("DisasterRecord", str(rid))
            values = data.model_dump()
            values[record_field] = rid
            item = await self._repo.create(model, values)
        except SQLAlchemyError as e:
            logger.exception(f"创建明细失败: model={model.__name__}, record_id={rid}")
            raise InternalError(f"Failed to create {model.__name__}") from e

        return await self._after_write(rid, item.id)

    async def _update(self, model: type, item_id: Any, data: BaseModel) -> ImpactWriteResult:
        resource, record_field = _RESOURCES[model]
        iid = require_uuid(item_id, f"{resource.lower()}_id")
        try:
            item = await self._repo.get(model, iid)
            if item is None:
                raise NotFoundError(resource, str(iid))
            item = await self._repo.update(item, data.model_dump(exclude_unset=True))
        except SQLAlchemyError as e:
            logger.exception(f"更新明细失败: model={model.__name__}, id={iid}")
            raise InternalError(f"Failed to update {model.__name__}") from e

        return await self._after_write(getattr(item, record_field), iid)

    async def _delete(self, model: type, item_id: Any) -> ImpactWriteResult:
        resource, record_field = _RESOURCES[model]
        iid = require_uuid(item_id, f"{resource.lower()}_id")
        try:
            item = await self._repo.get(model, iid)
            if item is None:
                raise NotFoundError(resource, str(iid))
            rid = getattr(item, record_field)
            await self._repo.delete(item)
        except SQLAlchemyError as e:
            logger.exception(f"删除明细失败: model={model.__name__}, id={iid}")
            raise InternalError(f"Failed to delete {model.__name__}") from e

        return await self._after_write(rid, iid)

    async def _after_write(self, record_id: Any, item_id: Any) -> ImpactWriteResult:
        totals = await self._totals.update_totals_by_record_id(record_id)
        return ImpactWriteResult(disaster_record_id=record_id, item_id=item_id, event_totals=totals)
