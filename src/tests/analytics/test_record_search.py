"""Record search query composition tests."""
from __future__ import annotations

import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError
from sqlalchemy import true
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import InternalError
from src.domains.analytics.schemas import RecordSearchRequest
from src.domains.analytics.service import RecordSearchService
from src.domains.hazards.service import HazardFilterService


class _EmptyHazardRepository:
    async def get_type(self, type_id):
        return SimpleNamespace(id=type_id)

    async def get_cluster(self, cluster_id):
        return None

    async def get_hazard_ancestry(self, hazard_id):
        return None


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.fixture
def spatial() -> AsyncMock:
    mock = AsyncMock()
    mock.any_division_condition.return_value = true()
    return mock


@pytest.fixture
def search_service(spatial) -> RecordSearchService:
    hazards = HazardFilterService(None, repository=_EmptyHazardRepository())
    return RecordSearchService(MagicMock(), hazard_service=hazards, spatial_service=spatial)


@pytest.mark.asyncio
async def test_published_only_without_filters(search_service, spatial) -> None:
    stmt, warnings = await search_service.build_query(RecordSearchRequest())
    sql = _sql(stmt)

    assert "disaster_records.approval_status = 'published'" in sql
    assert "hazardous_event" not in sql
    assert warnings == []
    spatial.any_division_condition.assert_not_awaited()


@pytest.mark.asyncio
async def test_event_hazard_and_division_filters_combine(search_service, spatial) -> None:
    event_id = uuid.uuid4()
    request = RecordSearchRequest(
        disaster_event_id=event_id, hazard_type_id="MH-0001", division_ids=[5, 9]
    )

    stmt, warnings = await search_service.build_query(request)
    compiled = stmt.compile(dialect=postgresql.dialect())
    sql = str(compiled)

    assert "disaster_records.disaster_event_id = %(disaster_event_id_1)s" in sql
    assert "hazardous_event.hip_type_id = %(hip_type_id_1)s" in sql
    assert compiled.params["disaster_event_id_1"] == event_id
    assert compiled.params["hip_type_id_1"] == "MH-0001"
    assert warnings == []
    assert spatial.any_division_condition.await_args.args[0] == [5, 9]


@pytest.mark.asyncio
async def test_unknown_cluster_is_reported_not_fatal(search_service) -> None:
    _, warnings = await search_service.build_query(RecordSearchRequest(hazard_cluster_id="XX"))

    assert [w.code for w in warnings] == ["HAZARD_CLUSTER_NOT_FOUND"]


@pytest.mark.asyncio
async def test_search_store_failure(search_service) -> None:
    search_service._db.execute = AsyncMock(side_effect=SQLAlchemyError("gone"))

    with pytest.raises(InternalError):
        await search_service.search(RecordSearchRequest())


@pytest.mark.asyncio
async def test_search_pages_results(search_service) -> None:
    ids = [uuid.uuid4(), uuid.uuid4()]
    count_result = MagicMock()
    count_result.scalar.return_value = 7
    page_result = MagicMock()
    page_result.scalars.return_value.all.return_value = ids
    search_service._db.execute = AsyncMock(side_effect=[count_result, page_result])

    response = await search_service.search(RecordSearchRequest(page=2, page_size=2))

    assert response.total == 7
    assert response.items == ids
    assert response.page == 2
    page_sql = _sql(search_service._db.execute.await_args_list[1].args[0])
    assert "LIMIT 2" in page_sql
    assert "OFFSET 2" in page_sql


@pytest.mark.asyncio
async def test_date_range_filters_on_hazardous_event_overlap(search_service) -> None:
    request = RecordSearchRequest(from_date=date(2023, 1, 1), to_date=date(2023, 3, 31))

    stmt, _ = await search_service.build_query(request)
    sql = _sql(stmt)

    assert "JOIN hazardous_event" in sql
    assert "date(hazardous_event.start_date) <= '2023-03-31'" in sql
    assert "date(hazardous_event.end_date) >= '2023-01-01'" in sql


def test_inverted_date_range_rejected() -> None:
    with pytest.raises(ValidationError):
        RecordSearchRequest(from_date=date(2024, 1, 2), to_date=date(2024, 1, 1))


@pytest.mark.asyncio
async def test_include_descendants_expands_divisions(search_service, spatial) -> None:
    spatial.expand_division_ids.return_value = [5, 51, 52]

    await search_service.build_query(RecordSearchRequest(division_ids=[5], include_descendants=True))

    spatial.expand_division_ids.assert_awaited_once_with([5])
    assert spatial.any_division_condition.await_args.args[0] == [5, 51, 52]


@pytest.mark.asyncio
async def test_divisions_not_expanded_by_default(search_service, spatial) -> None:
    await search_service.build_query(RecordSearchRequest(division_ids=[5]))

    spatial.expand_division_ids.assert_not_awaited()
    assert spatial.any_division_condition.await_args.args[0] == [5]


@pytest.mark.asyncio
async def test_search_runs_on_same_session_after_failed_hazard_lookup(spatial) -> None:
    """致灾因子查询失败只回滚保存点，随后的计数与分页查询照常执行"""
    count_result = MagicMock()
    count_result.scalar.return_value = 1
    page_result = MagicMock()
    page_result.scalars.return_value.all.return_value = [uuid.uuid4()]
    db = MagicMock()
    db.execute = AsyncMock(side_effect=[
        SQLAlchemyError('relation "hip_cluster" does not exist'),
        count_result,
        page_result,
    ])
    db.begin_nested.return_value.__aexit__.return_value = False
    service = RecordSearchService(db, hazard_service=HazardFilterService(db), spatial_service=spatial)

    response = await service.search(RecordSearchRequest(hazard_cluster_id="MH-CL-01"))

    assert [w.code for w in response.warnings] == ["HAZARD_LOOKUP_FAILED"]
    assert response.total == 1
    assert db.execute.await_count == 3
    db.begin_nested.assert_called_once_with()
    assert db.begin_nested.return_value.__aexit__.await_args.args[0] is SQLAlchemyError
