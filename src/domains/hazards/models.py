"""
致灾因子分类 ORM 模型

三级分类: hip_type（类型） -> hip_cluster（类簇） -> hip_hazard（具体致灾因子）
"""
from __future__ import annotations

import uuid as uuid_lib

from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID

from src.core.database import Base


class HazardType(Base):
    """致灾因子类型"""

    __tablename__ = "hip_type"

    id = Column(String(50), primary_key=True)
    name = Column(JSONB, nullable=False, default=dict)


class HazardCluster(Base):
    """致灾因子类簇"""

    __tablename__ = "hip_cluster"

    id = Column(String(50), primary_key=True)
    type_id = Column(String(50), ForeignKey("hip_type.id"), nullable=False, index=True)
    name = Column(JSONB, nullable=False, default=dict)


class SpecificHazard(Base):
    """具体致灾因子"""

    __tablename__ = "hip_hazard"

    id = Column(String(50), primary_key=True)
    code = Column(String(50), nullable=True)
    cluster_id = Column(String(50), ForeignKey("hip_cluster.id"), nullable=False, index=True)
    name = Column(JSONB, nullable=False, default=dict)
    description = Column(Text, nullable=True)


class HazardousEvent(Base):
    """致灾事件（灾害事件的触发源）"""

    __tablename__ = "hazardous_event"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    hip_type_id = Column(String(50), ForeignKey("hip_type.id"), nullable=True, index=True)
    hip_cluster_id = Column(String(50), ForeignKey("hip_cluster.id"), nullable=True, index=True)
    hip_hazard_id = Column(String(50), ForeignKey("hip_hazard.id"), nullable=True, index=True)
    approval_status = Column(String(50), nullable=False, default="draft")
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
