"""
灾害事件汇总数据模型（Pydantic Schemas）

金额一律以十进制字符串返回，避免JSON浮点精度损失
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DisasterEventTotals(BaseModel):
    """事件级四项派生汇总"""
    repair_cost: str = Field("0", description="修复费用合计（部分损坏）")
    replacement_cost: str = Field("0", description="重置费用合计（完全损毁）")
    rehabilitation_cost: str = Field("0", description="恢复重建费用合计（服务中断响应）")
    recovery_cost: str = Field("0", description="恢复需求合计（部门覆盖值优先）")


class DisasterEventTotalsResponse(DisasterEventTotals):
    """汇总结果（带事件ID）"""
    disaster_event_id: UUID


class MoneyTotal(BaseModel):
    """金额与币种"""
    total: str = Field("0", description="十进制字符串")
    currency: str = Field(..., description="ISO 4217 币种代码")


class SectorTotals(BaseModel):
    """部门维度的损坏/损失/恢复需求合计"""
    damages: MoneyTotal
    losses: MoneyTotal
    recovery: MoneyTotal


class SectorItem(BaseModel):
    """部门简要信息"""
    id: int
    sectorname: str
    parent_id: Optional[int] = None


class EventSectorsResponse(BaseModel):
    """事件涉及的部门列表"""
    disaster_event_id: UUID
    items: list[SectorItem]


class PublishedRecordCount(BaseModel):
    """事件下已发布记录数"""
    disaster_event_id: UUID
    count: int = Field(0, ge=0)
