"""
行政区划 ORM 模型

对应SQL表: division（森林结构，根节点 level=1，逐级递增）
"""
from __future__ import annotations

from geoalchemy2 import Geometry
from sqlalchemy import Column, Integer, ForeignKey, Index
from sqlalchemy.dialects.postgresql import JSONB

from src.core.database import Base


class Division(Base):
    """行政区划表"""

    __tablename__ = "division"
    __table_args__ = (
        Index("division_parent_idx", "parent_id"),
    )

    id = Column(Integer, primary_key=True)
    parent_id = Column(Integer, ForeignKey("division.id"), nullable=True)
    # 多语言名称: {"en": "Tongatapu", "fr": ...}
    name = Column(JSONB, nullable=False, default=dict)
    level = Column(Integer, nullable=True)
    geom = Column(Geometry("MULTIPOLYGON", srid=4326), nullable=True)
