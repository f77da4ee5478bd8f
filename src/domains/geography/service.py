"""
空间足迹业务服务层

职责: 区划读取（经缓存）、进程内匹配、数据库筛选条件
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement, TextClause

from src.core.exceptions import NotFoundError, InternalError
from src.core.ids import require_int
from .cache import DivisionCache, get_division_cache
from .conditions import ColumnRef, spatial_filter_condition, any_division_condition
from .footprint import MatchRule, RULE_ORDER, parse_footprint_entries
from .matcher import DivisionShape, SpatialFootprintMatcher
from .repository import DivisionRepository
from .schemas import FootprintMatchRequest, FootprintMatchResponse

logger = logging.getLogger(__name__)


class SpatialFootprintService:
    """空间足迹服务"""

    def __init__(
        self,
        db: AsyncSession,
        repository: Optional[DivisionRepository] = None,
        cache: Optional[DivisionCache] = None,
        matcher: Optional[SpatialFootprintMatcher] = None,
    ) -> None:
        self._repo = repository or DivisionRepository(db)
        self._cache = cache if cache is not None else get_division_cache()
        self._matcher = matcher or SpatialFootprintMatcher()

    async def get_division(self, division_id: Any) -> DivisionShape:
        """读穿缓存获取区划，不存在抛 NotFoundError"""
        key = require_int(division_id, "division_id")

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            division = await self._repo.get_shape(key)
        except SQLAlchemyError as e:
            logger.exception(f"读取行政区划失败: division_id={key}")
            raise InternalError("Failed to load division") from e

        if division is None:
            raise NotFoundError("Division", str(key))

        self._cache.put(division)
        return division

    async def spatial_matches(self, division_id: Any, entries: Any) -> bool:
        """区划是否被足迹触及（任一规则命中）"""
        division = await self.get_division(division_id)
        return self._matcher.matches(division, parse_footprint_entries(entries))

    async def matched_rules(self, division_id: Any, entries: Any) -> set[MatchRule]:
        """命中的全部规则，仅用于诊断"""
        division = await self.get_division(division_id)
        return self._matcher.matched_rules(division, parse_footprint_entries(entries))

    async def preview(self, data: FootprintMatchRequest) -> FootprintMatchResponse:
        division = await self.get_division(data.division_id)
        footprints = parse_footprint_entries(data.spatial_footprint)
        rules = self._matcher.matched_rules(division, footprints)
        return FootprintMatchResponse(
            division_id=division.id,
            matched=bool(rules),
            matched_rules=[rule.value for rule in RULE_ORDER if rule in rules],
        )

    async def spatial_filter_condition(self, division_id: Any, column: ColumnRef) -> TextClause:
        """单个区划的数据库筛选条件"""
        division = await self.get_division(division_id)
        return spatial_filter_condition(division, column)

    async def any_division_condition(
        self, division_ids: Sequence[Any], column: ColumnRef
    ) -> ColumnElement:
        """多个区划 OR 组合的筛选条件"""
        divisions = [await self.get_division(d) for d in division_ids]
        return any_division_condition(divisions, column)

    async def expand_division_ids(self, division_ids: Sequence[Any]) -> list[int]:
        """
        把区划ID展开为自身及全部下级区划

        用于"含下级区划"的记录检索，原样保留调用方给出的ID顺序，下级追加在后。
        """
        roots = [require_int(d, "division_ids") for d in division_ids]
        if not roots:
            return []

        try:
            descendants = await self._repo.list_descendant_ids(roots)
        except SQLAlchemyError as e:
            logger.exception(f"展开下级区划失败: division_ids={roots}")
            raise InternalError("Failed to expand division hierarchy") from e

        expanded = list(dict.fromkeys(roots))
        seen = set(expanded)
        expanded.extend(d for d in descendants if d not in seen)
        return expanded
