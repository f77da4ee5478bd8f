"""
灾害事件汇总服务

职责: 计算事件级四项派生金额并写回 disaster_event

汇总规则:
1. 修复费用 = Σ damages.pd_repair_cost_total
2. 重置费用 = Σ damages.td_replacement_cost_total
3. 恢复重建费用 = Σ disruption.response_cost
4. 恢复需求 = Σ 部门关联: damage_recovery_cost 非空取覆盖值，
   否则取同一 (记录, 部门) 下 damages.total_recovery 之和

修复/重置不走部门覆盖链路，只有恢复需求按部门覆盖值回退。

事件级人工填报: disaster_event.*_local_currency 某项非空时，该项直接取填报值，
不再汇总记录；四项都填报时完全不读取记录。
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError, InternalError
from src.core.ids import require_uuid
from .money import ZERO, to_decimal, decimal_sum, format_decimal
from .repository import ImpactRepository
from .schemas import DisasterEventTotals

logger = logging.getLogger(__name__)


class DisasterEventTotalsService:
    """事件汇总（覆盖值级联）服务"""

    def __init__(self, db: AsyncSession, repository: Optional[ImpactRepository] = None) -> None:
        self._repo = repository or ImpactRepository(db)

    async def calculate_totals(self, disaster_event_id: Any) -> DisasterEventTotals:
        """
        计算事件的四项汇总

        事件下没有记录时四项均为 "0"。存储失败时整体中止，不返回部分结果。
        """
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        repair, replacement, rehabilitation, recovery = await self._compute(event_id)
        return DisasterEventTotals(
            repair_cost=format_decimal(repair),
            replacement_cost=format_decimal(replacement),
            rehabilitation_cost=format_decimal(rehabilitation),
            recovery_cost=format_decimal(recovery),
        )

    async def update_totals(self, disaster_event_id: Any) -> DisasterEventTotals:
        """计算并写回 *_calc 字段，重复调用结果一致"""
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        repair, replacement, rehabilitation, recovery = await self._compute(event_id)

        try:
            updated = await self._repo.update_event_totals(
                event_id, repair, replacement, rehabilitation, recovery
            )
        except SQLAlchemyError as e:
            logger.exception(f"写回事件汇总失败: event_id={event_id}")
            raise InternalError("Failed to persist disaster event totals") from e

        if not updated:
            raise NotFoundError("DisasterEvent", str(event_id))

        return DisasterEventTotals(
            repair_cost=format_decimal(repair),
            replacement_cost=format_decimal(replacement),
            rehabilitation_cost=format_decimal(rehabilitation),
            recovery_cost=format_decimal(recovery),
        )

    async def update_totals_by_record_id(self, disaster_record_id: Any) -> Optional[DisasterEventTotals]:
        """
        按记录反查父事件后重算

        记录不存在抛 NotFoundError；记录未挂事件时不做任何处理，返回 None
        """
        record_id = require_uuid(disaster_record_id, "disaster_record_id")
        try:
            record = await self._repo.get_record(record_id)
        except SQLAlchemyError as e:
            logger.exception(f"查询灾情记录失败: record_id={record_id}")
            raise InternalError("Failed to load disaster record") from e

        if record is None:
            raise NotFoundError("DisasterRecord", str(record_id))
        if record.disaster_event_id is None:
            logger.debug(f"记录未关联灾害事件，跳过汇总: record_id={record_id}")
            return None

        return await self.update_totals(record.disaster_event_id)

    async def _compute(self, event_id: UUID) -> tuple[Decimal, Decimal, Decimal, Decimal]:
        try:
            event = await self._repo.get_event(event_id)
            overrides = _local_currency_overrides(event)
            if all(value is not None for value in overrides):
                logger.info(f"事件四项金额均为人工填报值，跳过记录汇总: event_id={event_id}")
                return tuple(to_decimal(value) for value in overrides)

            record_ids = await self._repo.list_record_ids_for_event(event_id)
            if not record_ids:
                logger.info(f"事件下无灾情记录，汇总为0: event_id={event_id}")
                return _apply_overrides(overrides, (ZERO, ZERO, ZERO, ZERO))

            damages = await self._repo.list_damages_for_records(record_ids)
            disruptions = await self._repo.list_disruptions_for_records(record_ids)
            relations = await self._repo.list_sector_relations_for_records(record_ids)
        except SQLAlchemyError as e:
            logger.exception(f"汇总计算读取失败: event_id={event_id}")
            raise InternalError("Failed to load disaster event impact data") from e

        repair = decimal_sum(d.pd_repair_cost_total for d in damages)
        replacement = decimal_sum(d.td_replacement_cost_total for d in damages)
        rehabilitation = decimal_sum(d.response_cost for d in disruptions)

        # (记录, 部门) -> Σ total_recovery
        recovery_by_pair: dict[tuple[UUID, int], Decimal] = defaultdict(lambda: ZERO)
        for d in damages:
            recovery_by_pair[(d.record_id, d.sector_id)] += to_decimal(d.total_recovery)

        recovery = ZERO
        for rel in relations:
            if rel.damage_recovery_cost is not None:
                recovery += to_decimal(rel.damage_recovery_cost)
            else:
                recovery += recovery_by_pair.get((rel.disaster_record_id, rel.sector_id), ZERO)

        logger.info(
            f"事件汇总完成: event_id={event_id}, records={len(record_ids)}, "
            f"repair={repair}, replacement={replacement}, "
            f"rehabilitation={rehabilitation}, recovery={recovery}"
        )
        return _apply_overrides(overrides, (repair, replacement, rehabilitation, recovery))


def _local_currency_overrides(event: Any) -> tuple[Any, Any, Any, Any]:
    """事件上人工填报的四项金额，事件不存在时全部为空"""
    if event is None:
        return None, None, None, None
    return (
        event.repair_costs_local_currency,
        event.replacement_costs_local_currency,
        event.rehabilitation_costs_local_currency,
        event.recovery_needs_local_currency,
    )


def _apply_overrides(
    overrides: tuple[Any, Any, Any, Any],
    computed: tuple[Decimal, Decimal, Decimal, Decimal],
) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """逐项取值: 填报值非空即优先，否则用记录汇总值"""
    return tuple(
        to_decimal(override) if override is not None else value
        for override, value in zip(overrides, computed)
    )
