"""
致灾因子层级筛选服务

筛选只按最具体的一级生效:
- 指定了具体致灾因子: 仅 hazardous_event.hip_hazard_id = X
- 否则指定了类簇: 仅 hip_cluster_id = X
- 否则指定了类型: 仅 hip_type_id = X
- 都没有: 原样返回基础条件

层级不一致或ID不存在只产生告警，不阻断查询。
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Sequence

from sqlalchemy import Select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.disaster_events.models import DisasterEvent, DisasterRecord
from .models import HazardousEvent
from .repository import HazardRepository
from .schemas import (
    HazardFilter, ConsistencyWarning, HazardFilterResult, HazardFilterCheckResponse,
)

logger = logging.getLogger(__name__)


class HazardFilterService:
    """致灾因子筛选服务"""

    def __init__(self, db: AsyncSession, repository: Optional[HazardRepository] = None) -> None:
        self._repo = repository or HazardRepository(db)

    async def apply_hazard_filter(
        self,
        filters: Optional[HazardFilter],
        base_conditions: Optional[Sequence[Any]] = None,
    ) -> HazardFilterResult:
        """
        生成筛选条件并做非阻断的一致性检查

        Returns:
            HazardFilterResult: 条件列表（新列表，基础条件在前）与告警
        """
        conditions = list(base_conditions or [])
        if filters is None or filters.is_empty():
            return HazardFilterResult(conditions=conditions)

        if filters.specific_hazard_id:
            conditions.append(HazardousEvent.hip_hazard_id == filters.specific_hazard_id)
            level = "hazard"
        elif filters.hazard_cluster_id:
            conditions.append(HazardousEvent.hip_cluster_id == filters.hazard_cluster_id)
            level = "cluster"
        else:
            conditions.append(HazardousEvent.hip_type_id == filters.hazard_type_id)
            level = "type"

        warnings = await self.check_consistency(filters)
        return HazardFilterResult(conditions=conditions, warnings=warnings, applied_level=level)

    async def apply_to_record_query(
        self,
        stmt: Select,
        filters: Optional[HazardFilter],
        event_conditions: Sequence[Any] = (),
    ) -> tuple[Select, list[ConsistencyWarning]]:
        """
        为记录查询追加 记录 -> 灾害事件 -> 致灾事件 关联及筛选条件

        event_conditions 是调用方另外给出的致灾事件条件（如时间范围），
        只要有任何条件就追加关联，否则语句原样返回。
        """
        result = await self.apply_hazard_filter(filters, event_conditions)
        if not result.conditions:
            return stmt, result.warnings

        stmt = (
            stmt.join(DisasterEvent, DisasterEvent.id == DisasterRecord.disaster_event_id)
            .join(HazardousEvent, HazardousEvent.id == DisasterEvent.hazardous_event_id)
            .where(*result.conditions)
        )
        return stmt, result.warnings

    @staticmethod
    def event_date_conditions(from_date: Optional[date], to_date: Optional[date]) -> list[Any]:
        """
        致灾事件时间区间与 [from_date, to_date] 有交集

        开始/结束时间缺失的一端视为无界，未给出的查询端不加限制。
        """
        conditions: list[Any] = []
        if to_date is not None:
            conditions.append(or_(
                HazardousEvent.start_date.is_(None),
                func.date(HazardousEvent.start_date) <= to_date,
            ))
        if from_date is not None:
            conditions.append(or_(
                HazardousEvent.end_date.is_(None),
                func.date(HazardousEvent.end_date) >= from_date,
            ))
        return conditions

    async def check(self, filters: HazardFilter) -> HazardFilterCheckResponse:
        """只做检查，不生成条件（前端联动校验）"""
        result = await self.apply_hazard_filter(filters)
        applied_id = {
            "hazard": filters.specific_hazard_id,
            "cluster": filters.hazard_cluster_id,
            "type": filters.hazard_type_id,
        }.get(result.applied_level or "")
        return HazardFilterCheckResponse(
            applied_level=result.applied_level,
            applied_id=applied_id,
            warnings=result.warnings,
        )

    async def check_consistency(self, filters: HazardFilter) -> list[ConsistencyWarning]:
        """层级一致性检查，存储异常转为告警"""
        try:
            warnings = await self._collect_warnings(filters)
        except SQLAlchemyError as e:
            logger.exception(f"致灾因子层级检查失败: filters={filters.model_dump()}")
            warnings = [ConsistencyWarning(
                code="HAZARD_LOOKUP_FAILED",
                message="Hazard hierarchy lookup failed; filter applied without consistency check",
                details={"error": type(e).__name__},
            )]

        for w in warnings:
            logger.warning(f"致灾因子筛选告警: code={w.code}, message={w.message}, details={w.details}")
        return warnings

    async def _collect_warnings(self, filters: HazardFilter) -> list[ConsistencyWarning]:
        warnings: list[ConsistencyWarning] = []
        type_id = filters.hazard_type_id
        cluster_id = filters.hazard_cluster_id
        hazard_id = filters.specific_hazard_id

        if type_id and await self._repo.get_type(type_id) is None:
            warnings.append(_not_found("HAZARD_TYPE_NOT_FOUND", "hazard_type_id", type_id))

        cluster = None
        if cluster_id:
            cluster = await self._repo.get_cluster(cluster_id)
            if cluster is None:
                warnings.append(_not_found("HAZARD_CLUSTER_NOT_FOUND", "hazard_cluster_id", cluster_id))

        if hazard_id:
            ancestry = await self._repo.get_hazard_ancestry(hazard_id)
            if ancestry is None:
                warnings.append(_not_found("SPECIFIC_HAZARD_NOT_FOUND", "specific_hazard_id", hazard_id))
                return warnings

            true_cluster, true_type = ancestry
            if cluster_id and cluster_id != true_cluster:
                warnings.append(ConsistencyWarning(
                    code="HAZARD_CLUSTER_MISMATCH",
                    message=f"Specific hazard {hazard_id} belongs to cluster {true_cluster}, not {cluster_id}",
                    details={"specific_hazard_id": hazard_id, "expected": true_cluster, "given": cluster_id},
                ))
            if type_id and type_id != true_type:
                warnings.append(ConsistencyWarning(
                    code="HAZARD_TYPE_MISMATCH",
                    message=f"Specific hazard {hazard_id} belongs to type {true_type}, not {type_id}",
                    details={"specific_hazard_id": hazard_id, "expected": true_type, "given": type_id},
                ))
            return warnings

        if cluster is not None and type_id and cluster.type_id != type_id:
            warnings.append(ConsistencyWarning(
                code="HAZARD_TYPE_MISMATCH",
                message=f"Hazard cluster {cluster_id} belongs to type {cluster.type_id}, not {type_id}",
                details={"hazard_cluster_id": cluster_id, "expected": cluster.type_id, "given": type_id},
            ))
        return warnings


def _not_found(code: str, field_name: str, value: str) -> ConsistencyWarning:
    return ConsistencyWarning(
        code=code,
        message=f"{field_name} does not exist: {value}",
        details={field_name: value},
    )
