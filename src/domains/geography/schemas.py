"""
空间足迹数据模型（Pydantic Schemas）
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class DivisionResponse(BaseModel):
    """行政区划简要信息"""
    id: int
    parent_id: Optional[int] = None
    name: dict[str, Any] = Field(default_factory=dict, description="多语言名称")
    level: Optional[int] = None


class FootprintMatchRequest(BaseModel):
    """足迹匹配预览请求"""
    division_id: int = Field(..., description="行政区划ID")
    spatial_footprint: Union[list[Any], str, None] = Field(
        None, description="足迹数组，元素可为对象或JSON字符串"
    )


class FootprintMatchResponse(BaseModel):
    """足迹匹配预览结果"""
    division_id: int
    matched: bool
    matched_rules: list[str] = Field(default_factory=list, description="命中的规则（诊断用）")
