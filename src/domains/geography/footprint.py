"""
空间足迹解析

spatial_footprint 是一个松散的JSON数组，每个元素形如:
    {"geojson": {...}, "map_coords": {...}, "geographic_level": "..."}
其中 geojson / map_coords 本身也可能是JSON字符串。

这里在边界处一次性把每个元素规范化为有类型的足迹变体，
匹配器和查询条件只面对这些变体，不再到处探测字段。

坐标约定:
- map_coords 中的点是 [lat, lng]（前端地图控件的保存格式）
- GeoJSON 中的点是 [lng, lat]
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

logger = logging.getLogger(__name__)


class MatchRule(str, Enum):
    """足迹命中规则，按求值顺序排列"""
    PROPERTIES_DIVISION_IDS = "properties_division_ids"  # geojson.properties.division_ids / division_id
    DTS_INFO_DIVISION_IDS = "dts_info_division_ids"      # geojson.dts_info.division_ids
    DTS_INFO_DIVISION_ID = "dts_info_division_id"        # geojson.dts_info.division_id
    GEOGRAPHIC_LEVEL = "geographic_level"                # 区划英文名
    MAP_COORDS = "map_coords"                            # 地图绘制图形与区划几何相交
    GEOJSON_POINT = "geojson_point"                      # GeoJSON 点要素落在区划内


RULE_ORDER: tuple[MatchRule, ...] = tuple(MatchRule)

LatLng = tuple[float, float]


# ============================================================================
# 足迹变体
# ============================================================================

@dataclass(frozen=True)
class DivisionIdFootprint:
    """按区划ID声明的足迹，ID统一存为字符串"""
    rule: MatchRule
    division_ids: tuple[str, ...]


@dataclass(frozen=True)
class NamedLevelFootprint:
    rule: ClassVar[MatchRule] = MatchRule.GEOGRAPHIC_LEVEL
    name: str


@dataclass(frozen=True)
class MarkerFootprint:
    rule: ClassVar[MatchRule] = MatchRule.MAP_COORDS
    points: tuple[LatLng, ...]


@dataclass(frozen=True)
class CircleFootprint:
    """圆形，半径单位为米"""
    rule: ClassVar[MatchRule] = MatchRule.MAP_COORDS
    center: LatLng
    radius_m: float


@dataclass(frozen=True)
class RectangleFootprint:
    rule: ClassVar[MatchRule] = MatchRule.MAP_COORDS
    north_west: LatLng
    south_east: LatLng


@dataclass(frozen=True)
class PolygonFootprint:
    """顶点少于3个时匹配器按线/点处理"""
    rule: ClassVar[MatchRule] = MatchRule.MAP_COORDS
    vertices: tuple[LatLng, ...]


@dataclass(frozen=True)
class LineFootprint:
    rule: ClassVar[MatchRule] = MatchRule.MAP_COORDS
    vertices: tuple[LatLng, ...]


@dataclass(frozen=True)
class GeoJsonPointFootprint:
    rule: ClassVar[MatchRule] = MatchRule.GEOJSON_POINT
    lng: float
    lat: float


Footprint = Union[
    DivisionIdFootprint,
    NamedLevelFootprint,
    MarkerFootprint,
    CircleFootprint,
    RectangleFootprint,
    PolygonFootprint,
    LineFootprint,
    GeoJsonPointFootprint,
]


# ============================================================================
# 解析
# ============================================================================

def parse_footprint_entries(raw: Any) -> list[Footprint]:
    """
    规范化整个 spatial_footprint 数组

    None、非数组、无法解析的元素均跳过，不抛异常。
    既没有 geojson 也没有 map_coords 的元素只可能贡献区划名称。
    """
    raw = _load_json(raw)
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        logger.debug(f"spatial_footprint 不是数组，已忽略: type={type(raw).__name__}")
        return []

    footprints: list[Footprint] = []
    for entry in raw:
        footprints.extend(parse_footprint_entry(entry))
    return footprints


def normalize_footprint_json(raw: Any) -> Optional[list[dict[str, Any]]]:
    """
    写入前的存储规范化

    数据库侧的查询条件只识别一种形状，这里把匹配器能接受的各种写法统一改写:
    - 嵌套的JSON字符串解码为对象，非对象元素丢弃
    - map_coords 的坐标改写为数值 [lat, lng] 对（展开 Leaflet 多边形外环、
      {lat, lng} 对象、数字字符串），无法解析的 map_coords 整体去掉
    - GeoJSON 点要素坐标改写为数值 [lng, lat]，无效的点要素去掉
    - 区划ID去掉首尾空白，整数形式的ID存为整数

    规范化前后 parse_footprint_entries 的结果一致。
    """
    raw = _load_json(raw)
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return None

    entries: list[dict[str, Any]] = []
    for entry in raw:
        entry = _load_json(entry)
        if not isinstance(entry, dict):
            continue
        normalized = dict(entry)

        level = normalized.get("geographic_level")
        if level is not None and not isinstance(level, str):
            normalized.pop("geographic_level")

        if "geojson" in normalized:
            geojson = _load_json(normalized["geojson"])
            if isinstance(geojson, dict):
                normalized["geojson"] = _canonical_geojson(geojson)
            else:
                normalized.pop("geojson")

        if "map_coords" in normalized:
            map_coords = _load_json(normalized["map_coords"])
            canonical = _canonical_map_coords(map_coords) if isinstance(map_coords, dict) else None
            if canonical is not None:
                normalized["map_coords"] = canonical
            else:
                normalized.pop("map_coords")

        entries.append(normalized)
    return entries


def _canonical_map_coords(map_coords: dict[str, Any]) -> Optional[dict[str, Any]]:
    shape = _parse_map_coords(map_coords)
    if shape is None:
        return None

    canonical = {k: v for k, v in map_coords.items() if k not in ("coordinates", "center", "radius")}
    if isinstance(shape, MarkerFootprint):
        canonical["coordinates"] = [list(p) for p in shape.points]
    elif isinstance(shape, CircleFootprint):
        canonical["center"] = list(shape.center)
        canonical["radius"] = shape.radius_m
    elif isinstance(shape, RectangleFootprint):
        canonical["coordinates"] = [list(shape.north_west), list(shape.south_east)]
    elif isinstance(shape, (PolygonFootprint, LineFootprint)):
        canonical["coordinates"] = [list(v) for v in shape.vertices]
    return canonical


def _canonical_geojson(geojson: dict[str, Any]) -> dict[str, Any]:
    canonical = dict(geojson)

    for key in ("properties", "dts_info"):
        section = canonical.get(key)
        if isinstance(section, dict):
            section = dict(section)
            if isinstance(section.get("division_ids"), list):
                section["division_ids"] = [
                    _canonical_id(v) for v in section["division_ids"] if _id_scalar(v) is not None
                ]
            if "division_id" in section and _id_scalar(section["division_id"]) is not None:
                section["division_id"] = _canonical_id(section["division_id"])
            canonical[key] = section

    if canonical.get("type") == "Feature":
        geometry = _canonical_point_geometry(canonical.get("geometry"))
        if geometry is None:
            canonical.pop("geometry", None)
        else:
            canonical["geometry"] = geometry
    elif isinstance(canonical.get("features"), list):
        features = []
        for feature in canonical["features"]:
            if isinstance(feature, dict) and "geometry" in feature:
                geometry = _canonical_point_geometry(feature["geometry"])
                if geometry is None:
                    # 坐标无效的点要素
                    continue
                feature = {**feature, "geometry": geometry}
            features.append(feature)
        canonical["features"] = features

    return canonical


def _canonical_point_geometry(geometry: Any) -> Optional[Any]:
    """非点几何原样返回；点几何坐标改写为 [lng, lat]，无效返回 None"""
    if not isinstance(geometry, dict) or geometry.get("type") != "Point":
        return geometry
    point = _lng_lat(geometry.get("coordinates"))
    if point is None:
        return None
    return {**geometry, "coordinates": list(point)}


def _canonical_id(value: Any) -> Union[int, str]:
    """"007" 之类的写法保留为字符串，否则比较结果会变"""
    text = _id_scalar(value)
    try:
        number = int(text)
    except ValueError:
        return text
    return number if str(number) == text else text


def parse_footprint_entry(entry: Any) -> list[Footprint]:
    """单个足迹元素 -> 0..n 个变体"""
    entry = _load_json(entry)
    if not isinstance(entry, dict):
        return []

    footprints: list[Footprint] = []

    geojson = _load_json(entry.get("geojson"))
    if isinstance(geojson, dict):
        footprints.extend(_parse_geojson(geojson))

    level = entry.get("geographic_level")
    if isinstance(level, str) and level.strip():
        footprints.append(NamedLevelFootprint(name=level.strip()))

    map_coords = _load_json(entry.get("map_coords"))
    if isinstance(map_coords, dict):
        shape = _parse_map_coords(map_coords)
        if shape is not None:
            footprints.append(shape)

    return footprints


def _parse_geojson(geojson: dict[str, Any]) -> list[Footprint]:
    footprints: list[Footprint] = []

    properties = geojson.get("properties")
    if isinstance(properties, dict):
        ids = _id_list(properties.get("division_ids"))
        scalar = _id_scalar(properties.get("division_id"))
        if scalar is not None:
            ids.append(scalar)
        if ids:
            footprints.append(DivisionIdFootprint(MatchRule.PROPERTIES_DIVISION_IDS, tuple(ids)))

    dts_info = geojson.get("dts_info")
    if isinstance(dts_info, dict):
        ids = _id_list(dts_info.get("division_ids"))
        if ids:
            footprints.append(DivisionIdFootprint(MatchRule.DTS_INFO_DIVISION_IDS, tuple(ids)))
        scalar = _id_scalar(dts_info.get("division_id"))
        if scalar is not None:
            footprints.append(DivisionIdFootprint(MatchRule.DTS_INFO_DIVISION_ID, (scalar,)))

    features = geojson.get("features")
    if geojson.get("type") == "Feature":
        features = [geojson]
    if isinstance(features, list):
        for feature in features:
            if not isinstance(feature, dict):
                continue
            geometry = feature.get("geometry")
            if not isinstance(geometry, dict) or geometry.get("type") != "Point":
                continue
            point = _lng_lat(geometry.get("coordinates"))
            if point is not None:
                footprints.append(GeoJsonPointFootprint(lng=point[0], lat=point[1]))

    return footprints


def _parse_map_coords(map_coords: dict[str, Any]) -> Optional[Footprint]:
    mode = map_coords.get("mode")
    coords = map_coords.get("coordinates")

    if mode == "markers":
        points = _pair_list(coords)
        return MarkerFootprint(points=points) if points else None

    if mode == "circle":
        center = _pair(map_coords.get("center"))
        radius = _number(map_coords.get("radius"))
        if center is None or radius is None:
            return None
        return CircleFootprint(center=center, radius_m=radius)

    if mode == "rectangle":
        corners = _pair_list(coords)
        if len(corners) < 2:
            return None
        return RectangleFootprint(north_west=corners[0], south_east=corners[1])

    if mode == "polygon":
        # Leaflet 多边形可能保存为 [[...ring...]]
        if isinstance(coords, list) and coords and _pair(coords[0]) is None:
            coords = coords[0]
        vertices = _pair_list(coords)
        return PolygonFootprint(vertices=vertices) if vertices else None

    if mode == "lines":
        vertices = _pair_list(coords)
        return LineFootprint(vertices=vertices) if vertices else None

    logger.debug(f"未知的 map_coords 模式，已忽略: mode={mode}")
    return None


# ============================================================================
# 工具函数
# ============================================================================

def _load_json(value: Any) -> Any:
    """JSON字符串解码，失败返回 None"""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.debug(f"足迹字段不是合法JSON，已忽略: {text[:80]}")
            return None
    return value


def _id_scalar(value: Any) -> Optional[str]:
    """区划ID按字符串比较，5 与 "5" 等价"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


def _id_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    ids = []
    for item in value:
        text = _id_scalar(item)
        if text is not None:
            ids.append(text)
    return ids


def _number(value: Any) -> Optional[float]:
    """数值或数字字符串，NaN/无穷大视为无效"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _pair(value: Any) -> Optional[tuple[float, float]]:
    """map_coords 的点 -> (lat, lng)"""
    if isinstance(value, dict):
        lat, lng = _number(value.get("lat")), _number(value.get("lng"))
        return (lat, lng) if lat is not None and lng is not None else None
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    first, second = _number(value[0]), _number(value[1])
    if first is None or second is None:
        return None
    return first, second


def _lng_lat(value: Any) -> Optional[tuple[float, float]]:
    """GeoJSON 的点 -> (lng, lat)，{lat, lng} 对象按键名取值"""
    if isinstance(value, dict):
        lng, lat = _number(value.get("lng")), _number(value.get("lat"))
        return (lng, lat) if lng is not None and lat is not None else None
    return _pair(value)


def _pair_list(value: Any) -> tuple[tuple[float, float], ...]:
    if not isinstance(value, list):
        return ()
    pairs = []
    for item in value:
        pair = _pair(item)
        if pair is not None:
            pairs.append(pair)
    return tuple(pairs)
