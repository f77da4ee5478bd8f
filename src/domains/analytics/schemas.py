"""
灾情分析查询数据模型
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.domains.hazards.schemas import ConsistencyWarning, HazardFilter


class RecordSearchRequest(HazardFilter):
    """已发布记录检索: 致灾因子层级 + 时间范围 + 行政区划"""
    disaster_event_id: Optional[UUID] = Field(None, description="限定灾害事件")
    from_date: Optional[date] = Field(None, description="致灾事件时间范围起（含）")
    to_date: Optional[date] = Field(None, description="致灾事件时间范围止（含）")
    division_ids: list[int] = Field(default_factory=list, description="行政区划ID，任一命中即纳入")
    include_descendants: bool = Field(False, description="同时匹配所选区划的全部下级区划")
    page: int = Field(1, ge=1, description="页码")
    page_size: int = Field(50, ge=1, le=500, description="每页数量")

    @model_validator(mode="after")
    def check_date_range(self) -> "RecordSearchRequest":
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must not be later than to_date")
        return self


class RecordSearchResponse(BaseModel):
    """检索结果"""
    items: list[UUID] = Field(default_factory=list, description="记录ID")
    total: int = Field(0, ge=0)
    page: int
    page_size: int
    warnings: list[ConsistencyWarning] = Field(default_factory=list, description="致灾因子筛选告警")
