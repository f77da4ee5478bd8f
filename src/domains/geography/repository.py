"""
行政区划数据访问层
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from geoalchemy2.shape import to_shape
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .matcher import DivisionShape
from .models import Division

logger = logging.getLogger(__name__)


class DivisionRepository:
    """区划数据仓库"""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_by_id(self, division_id: int) -> Optional[Division]:
        result = await self._db.execute(
            select(Division).where(Division.id == division_id)
        )
        return result.scalar_one_or_none()

    async def get_shape(self, division_id: int) -> Optional[DivisionShape]:
        """读取区划并把 PostGIS 几何转为 shapely 对象"""
        division = await self.get_by_id(division_id)
        if division is None:
            return None
        return to_division_shape(division)

    async def list_descendant_ids(self, division_ids: Sequence[int]) -> list[int]:
        """
        区划及其全部下级区划ID（沿 parent_id 递归）

        UNION 去重，parent_id 成环时递归也会终止。不存在的ID不出现在结果中。
        """
        if not division_ids:
            return []

        tree = (
            select(Division.id)
            .where(Division.id.in_(list(division_ids)))
            .cte("division_tree", recursive=True)
        )
        child = aliased(Division)
        tree = tree.union(
            select(child.id).join(tree, child.parent_id == tree.c.id)
        )
        result = await self._db.execute(select(tree.c.id).order_by(tree.c.id))
        ids = list(result.scalars().all())
        logger.debug(f"展开下级区划: roots={list(division_ids)}, total={len(ids)}")
        return ids


def to_division_shape(division: Division) -> DivisionShape:
    geometry = to_shape(division.geom) if division.geom is not None else None
    return DivisionShape(
        id=division.id,
        name=dict(division.name or {}),
        level=division.level,
        geometry=geometry,
        parent_id=division.parent_id,
    )
