"""
灾情记录影响明细API路由

接口前缀: /disaster-records
每次写入后在同一事务内重算父事件汇总
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from .schemas import (
    SectorRelationCreate, SectorRelationUpdate,
    DamagesCreate, DamagesUpdate,
    LossesCreate, LossesUpdate,
    DisruptionCreate, DisruptionUpdate,
    RecordFootprintUpdate, ImpactWriteResult,
)
from .service import RecordImpactService


router = APIRouter(prefix="/disaster-records", tags=["disaster-records"])


def get_service(db: AsyncSession = Depends(get_db)) -> RecordImpactService:
    return RecordImpactService(db)


# ============================================================================
# 记录
# ============================================================================

@router.put("/{record_id}/spatial-footprint", response_model=ImpactWriteResult)
async def update_record_footprint(
    record_id: UUID,
    data: RecordFootprintUpdate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    """更新空间足迹，嵌套的JSON字符串在存储前解码"""
    return await service.update_record_footprint(record_id, data)


@router.delete("/{record_id}", response_model=ImpactWriteResult)
async def delete_record(
    record_id: UUID,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    """删除记录（明细级联删除）并重算父事件汇总"""
    return await service.delete_record(record_id)


# ============================================================================
# 部门关联
# ============================================================================

@router.post("/{record_id}/sectors", response_model=ImpactWriteResult, status_code=201)
async def create_sector_relation(
    record_id: UUID,
    data: SectorRelationCreate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    """
    关联部门

    damage_cost / losses_cost / damage_recovery_cost 非空时作为覆盖值，
    汇总时不再读取对应明细
    """
    return await service.create_sector_relation(record_id, data)


@router.patch("/sectors/{relation_id}", response_model=ImpactWriteResult)
async def update_sector_relation(
    relation_id: UUID,
    data: SectorRelationUpdate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.update_sector_relation(relation_id, data)


@router.delete("/sectors/{relation_id}", response_model=ImpactWriteResult)
async def delete_sector_relation(
    relation_id: UUID,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.delete_sector_relation(relation_id)


# ============================================================================
# 损坏明细
# ============================================================================

@router.post("/{record_id}/damages", response_model=ImpactWriteResult, status_code=201)
async def create_damages(
    record_id: UUID,
    data: DamagesCreate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.create_damages(record_id, data)


@router.patch("/damages/{damages_id}", response_model=ImpactWriteResult)
async def update_damages(
    damages_id: UUID,
    data: DamagesUpdate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.update_damages(damages_id, data)


@router.delete("/damages/{damages_id}", response_model=ImpactWriteResult)
async def delete_damages(
    damages_id: UUID,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.delete_damages(damages_id)


# ============================================================================
# 损失明细
# ============================================================================

@router.post("/{record_id}/losses", response_model=ImpactWriteResult, status_code=201)
async def create_losses(
    record_id: UUID,
    data: LossesCreate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.create_losses(record_id, data)


@router.patch("/losses/{losses_id}", response_model=ImpactWriteResult)
async def update_losses(
    losses_id: UUID,
    data: LossesUpdate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.update_losses(losses_id, data)


@router.delete("/losses/{losses_id}", response_model=ImpactWriteResult)
async def delete_losses(
    losses_id: UUID,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.delete_losses(losses_id)


# ============================================================================
# 服务中断
# ============================================================================

@router.post("/{record_id}/disruptions", response_model=ImpactWriteResult, status_code=201)
async def create_disruption(
    record_id: UUID,
    data: DisruptionCreate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.create_disruption(record_id, data)


@router.patch("/disruptions/{disruption_id}", response_model=ImpactWriteResult)
async def update_disruption(
    disruption_id: UUID,
    data: DisruptionUpdate,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.update_disruption(disruption_id, data)


@router.delete("/disruptions/{disruption_id}", response_model=ImpactWriteResult)
async def delete_disruption(
    disruption_id: UUID,
    service: RecordImpactService = Depends(get_service),
) -> ImpactWriteResult:
    return await service.delete_disruption(disruption_id)
