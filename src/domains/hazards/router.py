"""
致灾因子筛选API路由

接口前缀: /hazards
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from .schemas import HazardFilter, HazardFilterCheckResponse
from .service import HazardFilterService


router = APIRouter(prefix="/hazards", tags=["hazards"])


def get_service(db: AsyncSession = Depends(get_db)) -> HazardFilterService:
    return HazardFilterService(db)


@router.get("/filter/check", response_model=HazardFilterCheckResponse)
async def check_hazard_filter(
    hazard_type_id: Optional[str] = Query(None, description="致灾因子类型ID"),
    hazard_cluster_id: Optional[str] = Query(None, description="致灾因子类簇ID"),
    specific_hazard_id: Optional[str] = Query(None, description="具体致灾因子ID"),
    service: HazardFilterService = Depends(get_service),
) -> HazardFilterCheckResponse:
    """
    检查层级筛选组合

    返回实际生效的层级和一致性告警，告警不影响筛选
    """
    filters = HazardFilter(
        hazard_type_id=hazard_type_id,
        hazard_cluster_id=hazard_cluster_id,
        specific_hazard_id=specific_hazard_id,
    )
    return await service.check(filters)
