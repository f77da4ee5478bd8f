"""Unit tests for HazardFilterService."""
from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from src.domains.disaster_events.models import DisasterRecord
from src.domains.hazards.repository import HazardRepository
from src.domains.hazards.schemas import HazardFilter
from src.domains.hazards.service import HazardFilterService


class FakeHazardRepository:
    """MH-0001 (meteorological) > MH-CL-01 (convective) > MH-0004 (cyclone)"""

    def __init__(self) -> None:
        self.types = {"MH-0001", "GH-0001"}
        self.clusters = {
            "MH-CL-01": SimpleNamespace(id="MH-CL-01", type_id="MH-0001"),
            "GH-CL-01": SimpleNamespace(id="GH-CL-01", type_id="GH-0001"),
        }
        self.hazards = {"MH-0004": ("MH-CL-01", "MH-0001")}
        self.fail_with: Optional[Exception] = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get_type(self, type_id: str):
        self._maybe_fail()
        return SimpleNamespace(id=type_id) if type_id in self.types else None

    async def get_cluster(self, cluster_id: str):
        self._maybe_fail()
        return self.clusters.get(cluster_id)

    async def get_hazard_ancestry(self, hazard_id: str):
        self._maybe_fail()
        return self.hazards.get(hazard_id)


@pytest.fixture
def hazard_repo() -> FakeHazardRepository:
    return FakeHazardRepository()


@pytest.fixture
def hazard_service(hazard_repo) -> HazardFilterService:
    return HazardFilterService(None, repository=hazard_repo)


def _sql(clause) -> str:
    return str(clause.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.mark.asyncio
async def test_specific_hazard_alone_with_mismatch_warning(hazard_service) -> None:
    filters = HazardFilter(
        hazard_type_id="GH-0001", hazard_cluster_id="MH-CL-01", specific_hazard_id="MH-0004"
    )

    result = await hazard_service.apply_hazard_filter(filters)

    assert result.applied_level == "hazard"
    assert len(result.conditions) == 1
    assert _sql(result.conditions[0]) == "hazardous_event.hip_hazard_id = 'MH-0004'"
    assert [w.code for w in result.warnings] == ["HAZARD_TYPE_MISMATCH"]
    assert result.warnings[0].details["expected"] == "MH-0001"


@pytest.mark.asyncio
async def test_cluster_filter_when_no_specific_hazard(hazard_service) -> None:
    filters = HazardFilter(hazard_type_id="MH-0001", hazard_cluster_id="MH-CL-01")

    result = await hazard_service.apply_hazard_filter(filters)

    assert result.applied_level == "cluster"
    assert _sql(result.conditions[0]) == "hazardous_event.hip_cluster_id = 'MH-CL-01'"
    assert result.warnings == []


@pytest.mark.asyncio
async def test_cluster_outside_type_warns(hazard_service) -> None:
    filters = HazardFilter(hazard_type_id="MH-0001", hazard_cluster_id="GH-CL-01")

    result = await hazard_service.apply_hazard_filter(filters)

    assert [w.code for w in result.warnings] == ["HAZARD_TYPE_MISMATCH"]


@pytest.mark.asyncio
async def test_type_only_filter(hazard_service) -> None:
    result = await hazard_service.apply_hazard_filter(HazardFilter(hazard_type_id=" MH-0001 "))

    assert result.applied_level == "type"
    assert _sql(result.conditions[0]) == "hazardous_event.hip_type_id = 'MH-0001'"


@pytest.mark.asyncio
async def test_empty_filter_returns_base_conditions_unchanged(hazard_service) -> None:
    base = [DisasterRecord.approval_status == "published"]

    result = await hazard_service.apply_hazard_filter(HazardFilter(hazard_type_id="  "), base)

    assert result.conditions == base
    assert result.conditions is not base
    assert result.applied_level is None
    assert result.warnings == []


@pytest.mark.asyncio
async def test_base_conditions_come_first(hazard_service) -> None:
    base = [DisasterRecord.approval_status == "published"]

    result = await hazard_service.apply_hazard_filter(HazardFilter(hazard_type_id="MH-0001"), base)

    assert len(result.conditions) == 2
    assert result.conditions[0] is base[0]


@pytest.mark.asyncio
async def test_unknown_ids_warn_but_still_filter(hazard_service) -> None:
    filters = HazardFilter(hazard_type_id="XX-9999", hazard_cluster_id="XX-CL-99", specific_hazard_id="XX-0001")

    result = await hazard_service.apply_hazard_filter(filters)

    assert result.applied_level == "hazard"
    assert [w.code for w in result.warnings] == [
        "HAZARD_TYPE_NOT_FOUND",
        "HAZARD_CLUSTER_NOT_FOUND",
        "SPECIFIC_HAZARD_NOT_FOUND",
    ]


@pytest.mark.asyncio
async def test_lookup_failure_degrades_to_warning(hazard_service, hazard_repo) -> None:
    hazard_repo.fail_with = SQLAlchemyError("hazard taxonomy unavailable")

    result = await hazard_service.apply_hazard_filter(HazardFilter(hazard_cluster_id="MH-CL-01"))

    assert result.applied_level == "cluster"
    assert [w.code for w in result.warnings] == ["HAZARD_LOOKUP_FAILED"]


@pytest.mark.asyncio
async def test_record_query_joins_hazardous_event(hazard_service) -> None:
    stmt = select(DisasterRecord.id)

    filtered, warnings = await hazard_service.apply_to_record_query(
        stmt, HazardFilter(specific_hazard_id="MH-0004")
    )
    sql = _sql(filtered)

    assert warnings == []
    assert "JOIN disaster_event ON disaster_event.id = disaster_records.disaster_event_id" in sql
    assert "JOIN hazardous_event ON hazardous_event.id = disaster_event.hazardous_event_id" in sql
    assert "hazardous_event.hip_hazard_id = 'MH-0004'" in sql


@pytest.mark.asyncio
async def test_record_query_untouched_without_filter(hazard_service) -> None:
    stmt = select(DisasterRecord.id)

    filtered, warnings = await hazard_service.apply_to_record_query(stmt, None)

    assert filtered is stmt
    assert warnings == []


@pytest.mark.asyncio
async def test_check_reports_applied_id(hazard_service) -> None:
    response = await hazard_service.check(HazardFilter(hazard_type_id="MH-0001", hazard_cluster_id="MH-CL-01"))

    assert response.applied_level == "cluster"
    assert response.applied_id == "MH-CL-01"


# ============================================================================
# 时间范围
# ============================================================================

@pytest.mark.asyncio
async def test_date_range_alone_still_joins_hazardous_event(hazard_service) -> None:
    conditions = HazardFilterService.event_date_conditions(date(2023, 1, 1), date(2023, 12, 31))

    stmt, warnings = await hazard_service.apply_to_record_query(
        select(DisasterRecord.id), HazardFilter(), conditions
    )
    sql = _sql(stmt)

    assert "JOIN hazardous_event ON hazardous_event.id = disaster_event.hazardous_event_id" in sql
    assert "hazardous_event.start_date IS NULL OR date(hazardous_event.start_date) <= '2023-12-31'" in sql
    assert "hazardous_event.end_date IS NULL OR date(hazardous_event.end_date) >= '2023-01-01'" in sql
    assert warnings == []


def test_open_ended_date_range() -> None:
    assert HazardFilterService.event_date_conditions(None, None) == []

    only_from = HazardFilterService.event_date_conditions(date(2023, 6, 1), None)
    assert len(only_from) == 1
    assert "end_date" in _sql(only_from[0])


# ============================================================================
# 保存点
# ============================================================================

def _session_with_failing_lookup() -> MagicMock:
    db = MagicMock()
    db.execute = AsyncMock(side_effect=SQLAlchemyError('relation "hip_cluster" does not exist'))
    db.begin_nested.return_value.__aexit__.return_value = False
    return db


@pytest.mark.asyncio
async def test_repository_lookups_run_inside_savepoints() -> None:
    db = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    db.execute = AsyncMock(return_value=result)
    db.begin_nested.return_value.__aexit__.return_value = False

    assert await HazardRepository(db).get_cluster("MH-CL-01") is None
    db.begin_nested.assert_called_once_with()
    db.begin_nested.return_value.__aenter__.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_lookup_rolls_back_only_its_savepoint() -> None:
    db = _session_with_failing_lookup()
    service = HazardFilterService(db)

    result = await service.apply_hazard_filter(HazardFilter(hazard_cluster_id="MH-CL-01"))

    assert [w.code for w in result.warnings] == ["HAZARD_LOOKUP_FAILED"]
    exit_args = db.begin_nested.return_value.__aexit__.await_args.args
    assert exit_args[0] is SQLAlchemyError
    assert not db.rollback.called
