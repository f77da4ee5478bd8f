"""
空间足迹查询条件（PostgreSQL/PostGIS）

与 matcher.py 的六条规则一一对应，批量筛选记录时由数据库直接求值:

    EXISTS (
        SELECT 1 FROM jsonb_array_elements(<footprint列>) AS elem
        JOIN division AS fp_div ON fp_div.id = :division_id
        CROSS JOIN LATERAL (<map_coords 有效顶点数组>) AS fp_pts
        WHERE <规则1> OR <规则2> ... OR <规则6>
    )

足迹中的 geojson / map_coords 需为 JSON 对象（写入时已规范化），
map_coords 坐标为 [lat, lng]，GeoJSON 坐标为 [lng, lat]。
所有 ::float8 转换都在 jsonb_typeof 守卫之后，坏数据只会不命中，不会让查询报错。
"""

from __future__ import annotations

import logging
from typing import Any, Union

from sqlalchemy import bindparam, text, Integer, String, or_, false
from sqlalchemy.sql.elements import ColumnElement, TextClause

from .matcher import DivisionShape, METERS_PER_DEGREE

logger = logging.getLogger(__name__)

ColumnRef = Union[str, Any]


def spatial_filter_condition(division: DivisionShape, column: ColumnRef) -> TextClause:
    """
    生成单个区划的足迹匹配条件

    Args:
        division: 区划（只用到 id 与英文名，几何由数据库关联 division 表取得）
        column: JSONB 足迹列，ORM 属性或 "table.column" 字符串
    """
    col = _column_sql(column)
    suffix = str(division.id).replace("-", "_")
    p_id = f"fp_division_id_{suffix}"
    p_key = f"fp_division_key_{suffix}"
    p_name = f"fp_division_name_{suffix}"

    name = division.english_name
    rules = [
        _id_array_rule("elem->'geojson'->'properties'->'division_ids'", p_key),
        f"elem->'geojson'->'properties'->>'division_id' = :{p_key}",
        _id_array_rule("elem->'geojson'->'dts_info'->'division_ids'", p_key),
        f"elem->'geojson'->'dts_info'->>'division_id' = :{p_key}",
    ]
    if name is not None:
        rules.append(f"lower(btrim(elem->>'geographic_level')) = lower(:{p_name})")
    rules.extend(_map_coords_rules())
    rules.extend(_geojson_point_rules())

    where = "\n            OR ".join(f"({rule})" for rule in rules)
    sql = f"""
        {col} IS NOT NULL
        AND jsonb_typeof({col}) = 'array'
        AND EXISTS (
            SELECT 1
            FROM jsonb_array_elements({_json_array(col)}) AS elem
            JOIN division AS fp_div ON fp_div.id = :{p_id}
            {_vertex_points_lateral()}
            WHERE jsonb_typeof(elem) = 'object' AND (
            {where}
            )
        )
    """

    params = [
        bindparam(p_id, division.id, type_=Integer),
        bindparam(p_key, str(division.id), type_=String),
    ]
    if name is not None:
        params.append(bindparam(p_name, name, type_=String))

    return text(sql).bindparams(*params)


def any_division_condition(divisions: list[DivisionShape], column: ColumnRef) -> ColumnElement:
    """多个区划的条件 OR 组合，空列表恒为假"""
    if not divisions:
        return false()
    return or_(*(spatial_filter_condition(d, column) for d in divisions))


# ============================================================================
# 规则片段
# ============================================================================

def _json_array(expr: str) -> str:
    """非数组时替换为空数组，避免 jsonb_array_elements 报错"""
    return f"CASE WHEN jsonb_typeof({expr}) = 'array' THEN {expr} ELSE '[]'::jsonb END"


def _id_array_rule(expr: str, p_key: str) -> str:
    return (
        f"EXISTS (SELECT 1 FROM jsonb_array_elements_text({_json_array(expr)}) AS did "
        f"WHERE did = :{p_key})"
    )


def _is_pair(expr: str) -> str:
    """两个数值组成的数组才允许转为点"""
    return (
        f"jsonb_typeof({expr}) = 'array' AND jsonb_typeof({expr}->0) = 'number' "
        f"AND jsonb_typeof({expr}->1) = 'number'"
    )


def _lat_lng_point(expr: str) -> str:
    """[lat, lng] -> 点，调用方须先用 _is_pair 守卫"""
    return f"ST_SetSRID(ST_MakePoint(({expr}->>1)::float8, ({expr}->>0)::float8), 4326)"


def _lng_lat_point(expr: str) -> str:
    return f"ST_SetSRID(ST_MakePoint(({expr}->>0)::float8, ({expr}->>1)::float8), 4326)"


def _vertex_points_lateral() -> str:
    """
    map_coords.coordinates 中的有效顶点，按原顺序组成点数组 fp_pts.pts

    非数值对的元素被跳过，与进程内解析的行为一致。
    """
    coords = "elem->'map_coords'->'coordinates'"
    return (
        f"CROSS JOIN LATERAL (SELECT ARRAY("
        f"SELECT CASE WHEN {_is_pair('pt')} THEN {_lat_lng_point('pt')} END "
        f"FROM jsonb_array_elements({_json_array(coords)}) WITH ORDINALITY AS v(pt, n) "
        f"WHERE {_is_pair('pt')} ORDER BY n) AS pts) AS fp_pts"
    )


def _map_coords_rules() -> list[str]:
    mode = "elem->'map_coords'->>'mode'"
    center = "elem->'map_coords'->'center'"
    radius_json = "elem->'map_coords'->'radius'"
    radius = "(elem->'map_coords'->>'radius')::float8"
    pts = "fp_pts.pts"
    count = f"cardinality({pts})"
    line = f"ST_MakeLine({pts})"
    corners = f"ST_MakeLine({pts}[1], {pts}[2])"

    markers = (
        f"{mode} = 'markers' AND EXISTS (SELECT 1 FROM unnest({pts}) AS mk(geom) "
        f"WHERE ST_Contains(fp_div.geom, mk.geom))"
    )
    circle = (
        f"{mode} = 'circle' AND CASE "
        f"WHEN {_is_pair(center)} AND jsonb_typeof({radius_json}) = 'number' THEN CASE "
        f"WHEN {radius} > 0 "
        f"THEN ST_Intersects(fp_div.geom, ST_Buffer({_lat_lng_point(center)}, {radius} / {METERS_PER_DEGREE})) "
        f"ELSE ST_Contains(fp_div.geom, {_lat_lng_point(center)}) END "
        f"ELSE false END"
    )
    rectangle = (
        f"{mode} = 'rectangle' AND CASE WHEN {count} >= 2 THEN ST_Intersects(fp_div.geom, ST_MakeEnvelope("
        f"ST_XMin({corners}), ST_YMin({corners}), ST_XMax({corners}), ST_YMax({corners}), 4326)) "
        f"ELSE false END"
    )
    polygon = (
        f"{mode} = 'polygon' AND CASE "
        f"WHEN {count} >= 3 THEN ST_Intersects(fp_div.geom, "
        f"ST_MakeValid(ST_MakePolygon(ST_AddPoint({line}, {pts}[1])))) "
        f"WHEN {count} = 2 THEN ST_Intersects(fp_div.geom, {line}) "
        f"WHEN {count} = 1 THEN ST_Contains(fp_div.geom, {pts}[1]) "
        f"ELSE false END"
    )
    lines = (
        f"{mode} = 'lines' AND CASE "
        f"WHEN {count} >= 2 THEN ST_Intersects(fp_div.geom, {line}) "
        f"WHEN {count} = 1 THEN ST_Contains(fp_div.geom, {pts}[1]) "
        f"ELSE false END"
    )
    return [markers, circle, rectangle, polygon, lines]


def _geojson_point_rules() -> list[str]:
    features = "elem->'geojson'->'features'"
    feature_coords = "feat->'geometry'->'coordinates'"
    single_coords = "elem->'geojson'->'geometry'->'coordinates'"
    collection = (
        "elem->'geojson'->>'type' IS DISTINCT FROM 'Feature' "
        f"AND EXISTS (SELECT 1 FROM jsonb_array_elements({_json_array(features)}) AS feat "
        f"WHERE feat->'geometry'->>'type' = 'Point' AND CASE WHEN {_is_pair(feature_coords)} "
        f"THEN ST_Contains(fp_div.geom, {_lng_lat_point(feature_coords)}) ELSE false END)"
    )
    single = (
        "elem->'geojson'->>'type' = 'Feature' "
        "AND elem->'geojson'->'geometry'->>'type' = 'Point' "
        f"AND CASE WHEN {_is_pair(single_coords)} "
        f"THEN ST_Contains(fp_div.geom, {_lng_lat_point(single_coords)}) ELSE false END"
    )
    return [collection, single]


def _column_sql(column: ColumnRef) -> str:
    """ORM 属性转为 table.column 形式"""
    if isinstance(column, str):
        return column
    expr = getattr(column, "expression", column)
    table = getattr(expr, "table", None)
    name = getattr(expr, "name", None)
    if table is None or name is None:
        raise TypeError(f"Unsupported footprint column: {column!r}")
    return f"{table.name}.{name}"
