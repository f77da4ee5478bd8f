"""
部门维度汇总服务

按调用方给定的部门集合，计算已发布事件的损坏/损失/恢复需求合计，
用于部门下钻分析（子部门饼图等）。

每条部门关联:
- 损坏: damage_cost 非空取覆盖值；否则 with_damage 时取 damages.total_repair_replacement 之和
- 损失: losses_cost 非空取覆盖值；否则 with_losses 时逐行计算公共/私营两侧
  （*_cost_total_override 为真取 *_cost_total，否则 单位数 × 单价）
- 恢复: damage_recovery_cost 非空取覆盖值；否则取 damages.total_recovery 之和

币种取查询顺序中第一个非空的 pd_recovery_cost_unit_currency，
没有则取配置的第一个币种。单币种假设，不做换算。
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import InternalError, InvalidArgumentError
from src.core.ids import require_uuid, require_int
from src.domains.geography.service import SpatialFootprintService
from .models import DisasterRecord, Damages, Losses
from .money import ZERO, to_decimal, decimal_sum, format_decimal
from .repository import ImpactRepository
from .schemas import MoneyTotal, SectorTotals

logger = logging.getLogger(__name__)


class SectorTotalsService:
    """部门汇总服务"""

    def __init__(
        self,
        db: AsyncSession,
        repository: Optional[ImpactRepository] = None,
        spatial_service: Optional[SpatialFootprintService] = None,
    ) -> None:
        self._db = db
        self._repo = repository or ImpactRepository(db)
        self._spatial_service = spatial_service

    async def sector_totals(
        self,
        disaster_event_id: Any,
        sector_ids: Optional[Sequence[Any]] = None,
        extra_conditions: Optional[Sequence[Any]] = None,
    ) -> SectorTotals:
        """
        计算部门汇总

        Args:
            disaster_event_id: 灾害事件ID
            sector_ids: 部门ID集合，为空表示不限部门
            extra_conditions: 附加的记录筛选条件（如空间足迹条件）
        """
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        sectors = self._normalize_sector_ids(sector_ids)

        try:
            return await self._compute(event_id, sectors, extra_conditions)
        except SQLAlchemyError as e:
            logger.exception(f"部门汇总读取失败: event_id={event_id}, sectors={sectors}")
            raise InternalError("Failed to load sector totals") from e

    async def sector_totals_by_division(
        self,
        disaster_event_id: Any,
        division_ids: Sequence[Any],
        sector_ids: Optional[Sequence[Any]] = None,
    ) -> SectorTotals:
        """只统计足迹触及任一给定区划的记录"""
        event_id = require_uuid(disaster_event_id, "disaster_event_id")
        if not division_ids:
            raise InvalidArgumentError("division_ids")

        condition = await self._get_spatial_service().any_division_condition(
            division_ids, DisasterRecord.spatial_footprint
        )
        return await self.sector_totals(event_id, sector_ids, extra_conditions=[condition])

    def _get_spatial_service(self) -> SpatialFootprintService:
        if self._spatial_service is None:
            self._spatial_service = SpatialFootprintService(self._db)
        return self._spatial_service

    @staticmethod
    def _normalize_sector_ids(sector_ids: Optional[Sequence[Any]]) -> list[int]:
        if not sector_ids:
            return []
        return [require_int(s, "sector_ids") for s in sector_ids]

    async def _compute(
        self,
        event_id: UUID,
        sector_ids: list[int],
        extra_conditions: Optional[Sequence[Any]],
    ) -> SectorTotals:
        relations = await self._repo.list_sector_relations_for_event(
            event_id, sector_ids, settings.published_status, extra_conditions
        )

        total_damages = ZERO
        total_losses = ZERO
        total_recovery = ZERO
        currency: Optional[str] = None

        # 每个 (记录, 部门) 只查询一次明细
        damages_by_pair: dict[tuple[UUID, int], Sequence[Damages]] = {}
        losses_by_pair: dict[tuple[UUID, int], Sequence[Losses]] = {}

        async def pair_damages(pair: tuple[UUID, int]) -> Sequence[Damages]:
            nonlocal currency
            if pair not in damages_by_pair:
                rows = await self._repo.list_damages_for_pair(*pair)
                damages_by_pair[pair] = rows
                if currency is None:
                    currency = next(
                        (d.pd_recovery_cost_unit_currency for d in rows if d.pd_recovery_cost_unit_currency),
                        None,
                    )
            return damages_by_pair[pair]

        async def pair_losses(pair: tuple[UUID, int]) -> Sequence[Losses]:
            if pair not in losses_by_pair:
                losses_by_pair[pair] = await self._repo.list_losses_for_pair(*pair)
            return losses_by_pair[pair]

        # 同一 (记录, 部门) 的重复关联只计一次明细
        seen_damage_pairs: set[tuple[UUID, int]] = set()
        seen_loss_pairs: set[tuple[UUID, int]] = set()
        seen_recovery_pairs: set[tuple[UUID, int]] = set()

        for rel in relations:
            pair = (rel.disaster_record_id, rel.sector_id)

            if rel.damage_cost is not None:
                total_damages += to_decimal(rel.damage_cost)
            elif rel.with_damage and pair not in seen_damage_pairs:
                seen_damage_pairs.add(pair)
                rows = await pair_damages(pair)
                total_damages += decimal_sum(d.total_repair_replacement for d in rows)

            if rel.losses_cost is not None:
                total_losses += to_decimal(rel.losses_cost)
            elif rel.with_losses and pair not in seen_loss_pairs:
                seen_loss_pairs.add(pair)
                for row in await pair_losses(pair):
                    total_losses += loss_row_total(row)

            if rel.damage_recovery_cost is not None:
                total_recovery += to_decimal(rel.damage_recovery_cost)
            elif pair not in seen_recovery_pairs:
                seen_recovery_pairs.add(pair)
                rows = await pair_damages(pair)
                total_recovery += decimal_sum(d.total_recovery for d in rows)

        currency = currency or settings.default_currency
        logger.info(
            f"部门汇总完成: event_id={event_id}, sectors={sector_ids or 'all'}, "
            f"relations={len(relations)}, damages={total_damages}, losses={total_losses}, "
            f"recovery={total_recovery}, currency={currency}"
        )
        return SectorTotals(
            damages=MoneyTotal(total=format_decimal(total_damages), currency=currency),
            losses=MoneyTotal(total=format_decimal(total_losses), currency=currency),
            recovery=MoneyTotal(total=format_decimal(total_recovery), currency=currency),
        )


def loss_row_total(row: Losses) -> Decimal:
    """单行损失 = 公共侧 + 私营侧"""
    if row.public_cost_total_override:
        public = to_decimal(row.public_cost_total)
    else:
        public = to_decimal(row.public_units) * to_decimal(row.public_cost_unit)

    if row.private_cost_total_override:
        private = to_decimal(row.private_cost_total)
    else:
        private = to_decimal(row.private_units) * to_decimal(row.private_cost_unit)

    return public + private
