"""
空间足迹API路由

接口前缀: /geography
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from .cache import get_division_cache
from .schemas import DivisionResponse, FootprintMatchRequest, FootprintMatchResponse
from .service import SpatialFootprintService


router = APIRouter(prefix="/geography", tags=["geography"])


def get_service(db: AsyncSession = Depends(get_db)) -> SpatialFootprintService:
    return SpatialFootprintService(db, cache=get_division_cache())


@router.get("/divisions/{division_id}", response_model=DivisionResponse)
async def get_division(
    division_id: int,
    service: SpatialFootprintService = Depends(get_service),
) -> DivisionResponse:
    """获取行政区划（经缓存）"""
    division = await service.get_division(division_id)
    return DivisionResponse(
        id=division.id,
        parent_id=division.parent_id,
        name=division.name,
        level=division.level,
    )


@router.post("/footprints/match", response_model=FootprintMatchResponse)
async def match_footprint(
    data: FootprintMatchRequest,
    service: SpatialFootprintService = Depends(get_service),
) -> FootprintMatchResponse:
    """
    足迹匹配预览

    返回区划是否被足迹触及，以及命中的规则列表（诊断用）
    """
    return await service.preview(data)


@router.delete("/divisions/cache", status_code=204)
async def clear_division_cache() -> None:
    """清空区划缓存（区划数据导入后调用）"""
    get_division_cache().clear()
