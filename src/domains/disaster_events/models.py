"""
灾害影响ORM模型

对应SQL表:
- disaster_event: 灾害事件（汇总字段由汇总服务维护）
- disaster_records: 灾情记录
- sector: 行业部门
- sector_disaster_records_relation: 记录-部门关联（可带覆盖值）
- damages / losses / disruption: 资产级明细

金额字段统一使用 Numeric，读出为 Decimal，禁止使用浮点数累加。
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID
import uuid as uuid_lib

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, Numeric, ForeignKey
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID, JSONB

from src.core.database import Base


class DisasterEvent(Base):
    """
    灾害事件表 ORM 模型

    *_calc 字段是派生值：任何记录/部门关联/明细变更后由
    DisasterEventTotalsService 重新计算并写回，不允许人工编辑。
    *_local_currency 字段是人工填报的事件级金额，非空时优先于记录汇总。
    """
    __tablename__ = "disaster_event"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    hazardous_event_id: Optional[UUID] = Column(
        PG_UUID(as_uuid=True),
        comment="关联的致灾事件",
    )
    name_national: Optional[str] = Column(Text, comment="国家层面事件名称")
    approval_status: str = Column(String(50), nullable=False, default="draft")

    # ==================== 人工填报 ====================
    repair_costs_local_currency: Optional[Decimal] = Column(Numeric, comment="修复费用（填报）")
    replacement_costs_local_currency: Optional[Decimal] = Column(Numeric, comment="重置费用（填报）")
    rehabilitation_costs_local_currency: Optional[Decimal] = Column(Numeric, comment="恢复重建费用（填报）")
    recovery_needs_local_currency: Optional[Decimal] = Column(Numeric, comment="恢复需求（填报）")

    # ==================== 派生汇总 ====================
    repair_costs_calc: Optional[Decimal] = Column(Numeric, comment="修复费用合计")
    replacement_costs_calc: Optional[Decimal] = Column(Numeric, comment="重置费用合计")
    rehabilitation_costs_calc: Optional[Decimal] = Column(Numeric, comment="恢复重建(响应)费用合计")
    recovery_needs_calc: Optional[Decimal] = Column(Numeric, comment="恢复需求合计")

    created_at: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Optional[datetime] = Column(DateTime(timezone=True), onupdate=datetime.utcnow)


class DisasterRecord(Base):
    """
    灾情记录表 ORM 模型

    disaster_event_id 可为空：记录可以直接挂在致灾事件下
    """
    __tablename__ = "disaster_records"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    disaster_event_id: Optional[UUID] = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("disaster_event.id"),
        index=True,
    )
    hazardous_event_id: Optional[UUID] = Column(
        PG_UUID(as_uuid=True),
    )
    approval_status: str = Column(
        String(50),
        nullable=False,
        default="draft",
        comment="draft/waiting-for-validation/needs-revision/validated/published",
    )
    spatial_footprint: Optional[list[dict[str, Any]]] = Column(
        JSONB,
        comment="空间足迹数组: [{geojson, map_coords, geographic_level}]",
    )
    created_at: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Optional[datetime] = Column(DateTime(timezone=True), onupdate=datetime.utcnow)


class Sector(Base):
    """行业部门（树形）"""
    __tablename__ = "sector"

    id: int = Column(Integer, primary_key=True)
    parent_id: Optional[int] = Column(Integer, ForeignKey("sector.id"))
    sectorname: str = Column(Text, nullable=False)
    description: Optional[str] = Column(Text)


class SectorRelation(Base):
    """
    记录-部门关联表

    damage_cost / losses_cost / damage_recovery_cost 非空时为权威值，
    此时不再读取对应的资产级明细；为空时回退到 damages/losses 明细求和。
    """
    __tablename__ = "sector_disaster_records_relation"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    disaster_record_id: UUID = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("disaster_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sector_id: int = Column(Integer, ForeignKey("sector.id"), nullable=False)

    with_damage: Optional[bool] = Column(Boolean)
    damage_cost: Optional[Decimal] = Column(Numeric)
    damage_cost_currency: Optional[str] = Column(String(3))
    damage_recovery_cost: Optional[Decimal] = Column(Numeric)
    damage_recovery_cost_currency: Optional[str] = Column(String(3))

    with_losses: Optional[bool] = Column(Boolean)
    losses_cost: Optional[Decimal] = Column(Numeric)
    losses_cost_currency: Optional[str] = Column(String(3))

    with_disruption: Optional[bool] = Column(Boolean)


class Damages(Base):
    """
    资产损坏明细

    pd_* 为部分损坏（修复），td_* 为完全损毁（重置）。
    *_override 为真时对应 total 字段为权威值，不再由 单价×数量 推算。
    """
    __tablename__ = "damages"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    record_id: UUID = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("disaster_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sector_id: int = Column(Integer, ForeignKey("sector.id"), nullable=False)
    asset_id: Optional[UUID] = Column(PG_UUID(as_uuid=True))
    unit: Optional[str] = Column(String(50))

    total_damage_amount: Optional[Decimal] = Column(Numeric)
    total_damage_amount_override: bool = Column(Boolean, nullable=False, default=False)
    total_repair_replacement: Optional[Decimal] = Column(Numeric)
    total_repair_replacement_override: bool = Column(Boolean, nullable=False, default=False)
    total_recovery: Optional[Decimal] = Column(Numeric)
    total_recovery_override: bool = Column(Boolean, nullable=False, default=False)

    # 部分损坏
    pd_repair_cost_unit: Optional[Decimal] = Column(Numeric)
    pd_repair_cost_unit_currency: Optional[str] = Column(String(3))
    pd_repair_units: Optional[Decimal] = Column(Numeric)
    pd_repair_cost_total: Optional[Decimal] = Column(Numeric)
    pd_repair_cost_total_override: bool = Column(Boolean, nullable=False, default=False)
    pd_recovery_cost_unit: Optional[Decimal] = Column(Numeric)
    pd_recovery_cost_unit_currency: Optional[str] = Column(String(3))
    pd_recovery_units: Optional[Decimal] = Column(Numeric)
    pd_recovery_cost_total: Optional[Decimal] = Column(Numeric)

    # 完全损毁
    td_replacement_cost_unit: Optional[Decimal] = Column(Numeric)
    td_replacement_cost_unit_currency: Optional[str] = Column(String(3))
    td_replacement_units: Optional[Decimal] = Column(Numeric)
    td_replacement_cost_total: Optional[Decimal] = Column(Numeric)
    td_replacement_cost_total_override: bool = Column(Boolean, nullable=False, default=False)
    td_recovery_cost_unit: Optional[Decimal] = Column(Numeric)
    td_recovery_units: Optional[Decimal] = Column(Numeric)
    td_recovery_cost_total: Optional[Decimal] = Column(Numeric)

    spatial_footprint: Optional[list[dict[str, Any]]] = Column(JSONB)


class Losses(Base):
    """损失明细：公共/私营两侧各自带覆盖标记"""
    __tablename__ = "losses"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    record_id: UUID = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("disaster_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sector_id: int = Column(Integer, ForeignKey("sector.id"), nullable=False)
    description: Optional[str] = Column(Text)

    public_unit: Optional[str] = Column(String(50))
    public_units: Optional[Decimal] = Column(Numeric)
    public_cost_unit: Optional[Decimal] = Column(Numeric)
    public_cost_unit_currency: Optional[str] = Column(String(3))
    public_cost_total: Optional[Decimal] = Column(Numeric)
    public_cost_total_override: bool = Column(Boolean, nullable=False, default=False)

    private_unit: Optional[str] = Column(String(50))
    private_units: Optional[Decimal] = Column(Numeric)
    private_cost_unit: Optional[Decimal] = Column(Numeric)
    private_cost_unit_currency: Optional[str] = Column(String(3))
    private_cost_total: Optional[Decimal] = Column(Numeric)
    private_cost_total_override: bool = Column(Boolean, nullable=False, default=False)

    spatial_footprint: Optional[list[dict[str, Any]]] = Column(JSONB)


class Disruption(Base):
    """服务中断明细，response_cost 计入恢复重建合计"""
    __tablename__ = "disruption"

    id: UUID = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    record_id: UUID = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("disaster_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sector_id: Optional[int] = Column(Integer, ForeignKey("sector.id"))
    duration_days: Optional[int] = Column(Integer)
    duration_hours: Optional[int] = Column(Integer)
    users_affected: Optional[int] = Column(Integer)
    people_affected: Optional[int] = Column(Integer)
    response_cost: Optional[Decimal] = Column(Numeric)
    response_currency: Optional[str] = Column(String(3))

    spatial_footprint: Optional[list[dict[str, Any]]] = Column(JSONB)
