"""
致灾因子分类数据访问层

这里的查询只服务于筛选前的一致性检查，每次查询都放在保存点(SAVEPOINT)内:
查询失败时只回滚保存点，同一会话中随后的记录检索不受影响。
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import HazardType, HazardCluster, SpecificHazard


class HazardRepository:
    """致灾因子分类仓库"""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_type(self, type_id: str) -> Optional[HazardType]:
        return await self._scalar_in_savepoint(select(HazardType).where(HazardType.id == type_id))

    async def get_cluster(self, cluster_id: str) -> Optional[HazardCluster]:
        return await self._scalar_in_savepoint(
            select(HazardCluster).where(HazardCluster.id == cluster_id)
        )

    async def get_hazard_ancestry(self, hazard_id: str) -> Optional[tuple[str, str]]:
        """具体致灾因子的真实 (类簇ID, 类型ID)"""
        stmt = (
            select(SpecificHazard.cluster_id, HazardCluster.type_id)
            .join(HazardCluster, HazardCluster.id == SpecificHazard.cluster_id)
            .where(SpecificHazard.id == hazard_id)
        )
        async with self._db.begin_nested():
            result = await self._db.execute(stmt)
            row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def _scalar_in_savepoint(self, stmt: Any) -> Any:
        async with self._db.begin_nested():
            result = await self._db.execute(stmt)
            return result.scalar_one_or_none()
