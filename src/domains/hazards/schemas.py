"""
致灾因子筛选数据模型
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class HazardFilter(BaseModel):
    """
    致灾因子层级筛选

    ID 去除首尾空白，空字符串视为未提供
    """
    hazard_type_id: Optional[str] = Field(None, description="致灾因子类型ID")
    hazard_cluster_id: Optional[str] = Field(None, description="致灾因子类簇ID")
    specific_hazard_id: Optional[str] = Field(None, description="具体致灾因子ID")

    @field_validator("hazard_type_id", "hazard_cluster_id", "specific_hazard_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    def is_empty(self) -> bool:
        return not (self.hazard_type_id or self.hazard_cluster_id or self.specific_hazard_id)


class ConsistencyWarning(BaseModel):
    """层级一致性告警（不阻断查询）"""
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


@dataclass
class HazardFilterResult:
    """筛选条件 + 告警"""
    conditions: list[Any]
    warnings: list[ConsistencyWarning] = field(default_factory=list)
    applied_level: Optional[str] = None  # hazard / cluster / type


class HazardFilterCheckResponse(BaseModel):
    """筛选检查结果（前端下拉联动校验）"""
    applied_level: Optional[str] = Field(None, description="实际生效的层级: hazard/cluster/type")
    applied_id: Optional[str] = None
    warnings: list[ConsistencyWarning] = Field(default_factory=list)
