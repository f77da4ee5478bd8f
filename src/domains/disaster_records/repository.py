"""
灾情记录影响明细数据访问层

职责: 部门关联/损坏/损失/中断明细的增删改，无业务逻辑
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.disaster_events.models import DisasterRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class RecordImpactRepository:
    """影响明细仓库（按模型类通用）"""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_record(self, record_id: UUID) -> Optional[DisasterRecord]:
        result = await self._db.execute(
            select(DisasterRecord).where(DisasterRecord.id == record_id)
        )
        return result.scalar_one_or_none()

    async def get(self, model: type[ModelT], item_id: UUID) -> Optional[ModelT]:
        result = await self._db.execute(select(model).where(model.id == item_id))
        return result.scalar_one_or_none()

    async def create(self, model: type[ModelT], values: dict[str, Any]) -> ModelT:
        item = model(**values)
        self._db.add(item)
        await self._db.flush()
        await self._db.refresh(item)

        logger.info(f"创建{model.__tablename__}: id={item.id}")
        return item

    async def update(self, item: ModelT, values: dict[str, Any]) -> ModelT:
        for key, value in values.items():
            setattr(item, key, value)

        await self._db.flush()
        await self._db.refresh(item)

        logger.info(f"更新{item.__tablename__}: id={item.id}, fields={list(values.keys())}")
        return item

    async def delete(self, item: Any) -> None:
        await self._db.delete(item)
        await self._db.flush()
        logger.info(f"删除{item.__tablename__}: id={item.id}")
