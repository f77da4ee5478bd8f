"""
空间足迹匹配器（进程内判定）

判断一个行政区划是否被足迹"触及"，六条规则任一命中即为命中:
1. geojson.properties.division_ids / division_id 包含区划ID
2. geojson.dts_info.division_ids 包含区划ID
3. geojson.dts_info.division_id 等于区划ID
4. geographic_level 等于区划英文名（忽略大小写与首尾空白）
5. map_coords 绘制图形与区划几何相交（点/圆/矩形/多边形/折线）
6. GeoJSON 点要素落在区划几何内

圆半径按 1度 ≈ 111320米 换算，平面近似，国家尺度可用。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from shapely.geometry import Point, LineString, Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from .footprint import (
    RULE_ORDER, MatchRule, Footprint,
    DivisionIdFootprint, NamedLevelFootprint, MarkerFootprint, CircleFootprint,
    RectangleFootprint, PolygonFootprint, LineFootprint, GeoJsonPointFootprint,
    LatLng,
)

logger = logging.getLogger(__name__)

METERS_PER_DEGREE = 111320.0


@dataclass(frozen=True)
class DivisionShape:
    """匹配所需的区划快照（ID、上级ID、多语言名称、几何）"""
    id: int
    name: dict[str, Any] = field(default_factory=dict)
    level: Optional[int] = None
    geometry: Optional[BaseGeometry] = None
    parent_id: Optional[int] = None

    @property
    def english_name(self) -> Optional[str]:
        value = (self.name or {}).get("en")
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()


class SpatialFootprintMatcher:
    """
    足迹匹配器

    matches() 按规则顺序求值，首个命中即返回；
    matched_rules() 对全部规则求值，仅用于诊断。
    """

    def matches(self, division: DivisionShape, footprints: Iterable[Footprint]) -> bool:
        grouped = self._group(footprints)
        for rule in RULE_ORDER:
            if any(self._check(division, fp) for fp in grouped.get(rule, ())):
                logger.debug(f"足迹命中: division_id={division.id}, rule={rule.value}")
                return True
        return False

    def matched_rules(self, division: DivisionShape, footprints: Iterable[Footprint]) -> set[MatchRule]:
        hits: set[MatchRule] = set()
        for fp in footprints:
            if fp.rule not in hits and self._check(division, fp):
                hits.add(fp.rule)
        return hits

    @staticmethod
    def _group(footprints: Iterable[Footprint]) -> dict[MatchRule, list[Footprint]]:
        grouped: dict[MatchRule, list[Footprint]] = {}
        for fp in footprints:
            grouped.setdefault(fp.rule, []).append(fp)
        return grouped

    def _check(self, division: DivisionShape, fp: Footprint) -> bool:
        if isinstance(fp, DivisionIdFootprint):
            return str(division.id) in fp.division_ids

        if isinstance(fp, NamedLevelFootprint):
            name = division.english_name
            return name is not None and name.casefold() == fp.name.strip().casefold()

        geometry = self._division_geometry(division)
        if geometry is None:
            return False

        if isinstance(fp, GeoJsonPointFootprint):
            return geometry.contains(Point(fp.lng, fp.lat))

        if isinstance(fp, MarkerFootprint):
            return any(geometry.contains(_point(p)) for p in fp.points)

        if isinstance(fp, CircleFootprint):
            center = _point(fp.center)
            if fp.radius_m <= 0:
                return geometry.contains(center)
            return center.buffer(fp.radius_m / METERS_PER_DEGREE).intersects(geometry)

        if isinstance(fp, RectangleFootprint):
            (lat1, lng1), (lat2, lng2) = fp.north_west, fp.south_east
            envelope = box(min(lng1, lng2), min(lat1, lat2), max(lng1, lng2), max(lat1, lat2))
            return envelope.intersects(geometry)

        if isinstance(fp, (PolygonFootprint, LineFootprint)):
            shape = _vertices_shape(fp.vertices, closed=isinstance(fp, PolygonFootprint))
            if shape is None:
                return False
            if isinstance(shape, Point):
                return geometry.contains(shape)
            return shape.intersects(geometry)

        return False

    @staticmethod
    def _division_geometry(division: DivisionShape) -> Optional[BaseGeometry]:
        geometry = division.geometry
        if geometry is None or geometry.is_empty:
            return None
        if not geometry.is_valid:
            geometry = make_valid(geometry)
        return geometry


def _point(lat_lng: LatLng) -> Point:
    lat, lng = lat_lng
    return Point(lng, lat)


def _vertices_shape(vertices: tuple[LatLng, ...], closed: bool) -> Optional[BaseGeometry]:
    """[lat, lng] 顶点 -> 多边形/折线/点，多边形顶点不足3个时退化"""
    coords = [(lng, lat) for lat, lng in vertices]
    if not coords:
        return None
    if len(coords) == 1:
        return Point(coords[0])
    if closed and len(coords) >= 3:
        polygon = Polygon(coords)
        return polygon if polygon.is_valid else make_valid(polygon)
    return LineString(coords)
