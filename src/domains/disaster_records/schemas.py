"""
灾情记录影响明细数据模型（Pydantic Schemas）

对应SQL表: sector_disaster_records_relation, damages, losses, disruption
金额与数量字段不允许为负数
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator

from src.domains.disaster_events.schemas import DisasterEventTotals
from src.domains.geography.footprint import normalize_footprint_json


Money = Optional[Decimal]
Currency = Optional[str]


class FootprintMixin(BaseModel):
    """空间足迹字段，写入前规范化（解码嵌套JSON字符串，坐标改写为数值对）"""
    spatial_footprint: Optional[list[dict[str, Any]]] = Field(None, description="空间足迹数组")

    @field_validator("spatial_footprint", mode="before")
    @classmethod
    def normalize_footprint(cls, v: Any) -> Optional[list[dict[str, Any]]]:
        return normalize_footprint_json(v)


# ============================================================================
# 部门关联
# ============================================================================

class SectorRelationBase(BaseModel):
    with_damage: Optional[bool] = Field(None, description="是否有损坏")
    damage_cost: Money = Field(None, ge=0, description="损坏覆盖值，非空时不再读取明细")
    damage_cost_currency: Currency = Field(None, max_length=3)
    damage_recovery_cost: Money = Field(None, ge=0, description="恢复需求覆盖值")
    damage_recovery_cost_currency: Currency = Field(None, max_length=3)
    with_losses: Optional[bool] = Field(None, description="是否有损失")
    losses_cost: Money = Field(None, ge=0, description="损失覆盖值")
    losses_cost_currency: Currency = Field(None, max_length=3)
    with_disruption: Optional[bool] = None


class SectorRelationCreate(SectorRelationBase):
    sector_id: int = Field(..., description="部门ID")


class SectorRelationUpdate(SectorRelationBase):
    sector_id: Optional[int] = None


class SectorRelationResponse(SectorRelationCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    disaster_record_id: UUID


# ============================================================================
# 损坏明细
# ============================================================================

class DamagesBase(FootprintMixin):
    asset_id: Optional[UUID] = None
    unit: Optional[str] = Field(None, max_length=50)

    total_damage_amount: Money = Field(None, ge=0)
    total_damage_amount_override: bool = False
    total_repair_replacement: Money = Field(None, ge=0, description="修复+重置合计")
    total_repair_replacement_override: bool = False
    total_recovery: Money = Field(None, ge=0, description="恢复需求合计")
    total_recovery_override: bool = False

    pd_repair_cost_unit: Money = Field(None, ge=0)
    pd_repair_cost_unit_currency: Currency = Field(None, max_length=3)
    pd_repair_units: Money = Field(None, ge=0)
    pd_repair_cost_total: Money = Field(None, ge=0)
    pd_repair_cost_total_override: bool = False
    pd_recovery_cost_unit: Money = Field(None, ge=0)
    pd_recovery_cost_unit_currency: Currency = Field(None, max_length=3)
    pd_recovery_units: Money = Field(None, ge=0)
    pd_recovery_cost_total: Money = Field(None, ge=0)

    td_replacement_cost_unit: Money = Field(None, ge=0)
    td_replacement_cost_unit_currency: Currency = Field(None, max_length=3)
    td_replacement_units: Money = Field(None, ge=0)
    td_replacement_cost_total: Money = Field(None, ge=0)
    td_replacement_cost_total_override: bool = False
    td_recovery_cost_unit: Money = Field(None, ge=0)
    td_recovery_units: Money = Field(None, ge=0)
    td_recovery_cost_total: Money = Field(None, ge=0)


class DamagesCreate(DamagesBase):
    sector_id: int


class DamagesUpdate(DamagesBase):
    sector_id: Optional[int] = None


class DamagesResponse(DamagesCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_id: UUID


# ============================================================================
# 损失明细
# ============================================================================

class LossesBase(FootprintMixin):
    description: Optional[str] = None

    public_unit: Optional[str] = Field(None, max_length=50)
    public_units: Money = Field(None, ge=0)
    public_cost_unit: Money = Field(None, ge=0)
    public_cost_unit_currency: Currency = Field(None, max_length=3)
    public_cost_total: Money = Field(None, ge=0)
    public_cost_total_override: bool = False

    private_unit: Optional[str] = Field(None, max_length=50)
    private_units: Money = Field(None, ge=0)
    private_cost_unit: Money = Field(None, ge=0)
    private_cost_unit_currency: Currency = Field(None, max_length=3)
    private_cost_total: Money = Field(None, ge=0)
    private_cost_total_override: bool = False


class LossesCreate(LossesBase):
    sector_id: int


class LossesUpdate(LossesBase):
    sector_id: Optional[int] = None


class LossesResponse(LossesCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_id: UUID


# ============================================================================
# 服务中断
# ============================================================================

class DisruptionBase(FootprintMixin):
    sector_id: Optional[int] = None
    duration_days: Optional[int] = Field(None, ge=0)
    duration_hours: Optional[int] = Field(None, ge=0)
    users_affected: Optional[int] = Field(None, ge=0)
    people_affected: Optional[int] = Field(None, ge=0)
    response_cost: Money = Field(None, ge=0, description="响应费用，计入恢复重建合计")
    response_currency: Currency = Field(None, max_length=3)


class DisruptionCreate(DisruptionBase):
    pass


class DisruptionUpdate(DisruptionBase):
    pass


class DisruptionResponse(DisruptionBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_id: UUID


# ============================================================================
# 写操作结果
# ============================================================================

class RecordFootprintUpdate(FootprintMixin):
    """记录空间足迹更新"""


class ImpactWriteResult(BaseModel):
    """写操作结果，附带重算后的事件汇总（记录未挂事件时为空）"""
    disaster_record_id: UUID
    item_id: Optional[UUID] = None
    event_totals: Optional[DisasterEventTotals] = None
