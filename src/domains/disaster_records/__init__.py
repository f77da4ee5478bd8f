"""
灾情记录影响明细写入模块

对应SQL表: disaster_records, sector_disaster_records_relation, damages, losses, disruption
"""

from .router import router
from .service import RecordImpactService
from .schemas import (
    SectorRelationCreate, SectorRelationUpdate, SectorRelationResponse,
    DamagesCreate, DamagesUpdate, DamagesResponse,
    LossesCreate, LossesUpdate, LossesResponse,
    DisruptionCreate, DisruptionUpdate, DisruptionResponse,
    RecordFootprintUpdate, ImpactWriteResult,
)

__all__ = [
    "router",
    "RecordImpactService",
    "SectorRelationCreate",
    "SectorRelationUpdate",
    "SectorRelationResponse",
    "DamagesCreate",
    "DamagesUpdate",
    "DamagesResponse",
    "LossesCreate",
    "LossesUpdate",
    "LossesResponse",
    "DisruptionCreate",
    "DisruptionUpdate",
    "DisruptionResponse",
    "RecordFootprintUpdate",
    "ImpactWriteResult",
]
