"""
RecordImpactService 单元测试

写入仓库与汇总仓库共用同一份内存数据，验证每次写入后父事件汇总被重算。
"""
from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import InternalError, InvalidArgumentError, NotFoundError
from src.domains.disaster_events.models import Damages, Disruption, Losses, SectorRelation
from src.domains.disaster_events.service import DisasterEventTotalsService
from src.domains.disaster_records.schemas import (
    DamagesCreate,
    DamagesUpdate,
    DisruptionCreate,
    LossesCreate,
    RecordFootprintUpdate,
    SectorRelationCreate,
    SectorRelationUpdate,
)
from src.domains.disaster_records.service import RecordImpactService


class FakeRecordImpactRepository:
    """写入落到 FakeImpactRepository 的列表里"""

    def __init__(self, store) -> None:
        self._store = store
        self._tables = {
            SectorRelation: store.relations,
            Damages: store.damages,
            Losses: store.losses,
            Disruption: store.disruptions,
        }
        self.fail_with: Optional[Exception] = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get_record(self, record_id):
        self._maybe_fail()
        return next((r for r in self._store.records if r.id == record_id), None)

    async def get(self, model, item_id):
        self._maybe_fail()
        return next((x for x in self._tables[model] if x.id == item_id), None)

    async def create(self, model, values: dict[str, Any]):
        self._maybe_fail()
        item = SimpleNamespace(id=uuid.uuid4(), **values)
        self._tables[model].append(item)
        return item

    async def update(self, item, values: dict[str, Any]):
        self._maybe_fail()
        for key, value in values.items():
            setattr(item, key, value)
        return item

    async def delete(self, item) -> None:
        self._maybe_fail()
        if item in self._store.records:
            self._store.records.remove(item)
            for rows in self._tables.values():
                rows[:] = [
                    x for x in rows
                    if getattr(x, "record_id", getattr(x, "disaster_record_id", None)) != item.id
                ]
            return
        for rows in self._tables.values():
            if item in rows:
                rows.remove(item)


@pytest.fixture
def record_repo(impact_repo) -> FakeRecordImpactRepository:
    return FakeRecordImpactRepository(impact_repo)


@pytest.fixture
def record_service(impact_repo, record_repo) -> RecordImpactService:
    totals = DisasterEventTotalsService(None, repository=impact_repo)
    return RecordImpactService(None, repository=record_repo, totals_service=totals)


@pytest.mark.asyncio
async def test_damages_create_recomputes_event_totals(record_service, impact_repo) -> None:
    event_id = impact_repo.add_event()
    record_id = impact_repo.add_record(event_id)

    result = await record_service.create_damages(
        record_id, DamagesCreate(sector_id=10, pd_repair_cost_total="250.5", total_recovery="40")
    )

    assert result.disaster_record_id == record_id
    assert result.event_totals.repair_cost == "250.5"
    assert impact_repo.events[event_id].repair_costs_calc == Decimal("250.5")


@pytest.mark.asyncio
async def test_relation_override_changes_recovery(record_service, impact_repo) -> None:
    event_id = impact_repo.add_event()
    record_id = impact_repo.add_record(event_id)
    impact_repo.add_damages(record_id, 10, total_recovery="40")

    first = await record_service.create_sector_relation(
        record_id, SectorRelationCreate(sector_id=10, with_damage=True)
    )
    second = await record_service.update_sector_relation(
        first.item_id, SectorRelationUpdate(damage_recovery_cost="100")
    )

    assert first.event_totals.recovery_cost == "40"
    assert second.event_totals.recovery_cost == "100"


@pytest.mark.asyncio
async def test_partial_update_only_touches_given_fields(record_service, impact_repo) -> None:
    event_id = impact_repo.add_event()
    record_id = impact_repo.add_record(event_id)
    created = await record_service.create_damages(
        record_id, DamagesCreate(sector_id=10, pd_repair_cost_total="10", td_replacement_cost_total="5")
    )

    result = await record_service.update_damages(created.item_id, DamagesUpdate(pd_repair_cost_total="12"))

    assert result.event_totals.repair_cost == "12"
    assert result.event_totals.replacement_cost == "5"
    assert impact_repo.damages[0].sector_id == 10


@pytest.mark.asyncio
async def test_delete_disruption_removes_rehabilitation_cost(record_service, impact_repo) -> None:
    event_id = impact_repo.add_event()
    record_id = impact_repo.add_record(event_id)
    created = await record_service.create_disruption(record_id, DisruptionCreate(response_cost="70"))
    assert created.event_totals.rehabilitation_cost == "70"

    result = await record_service.delete_disruption(created.item_id)

    assert result.event_totals.rehabilitation_cost == "0"
    assert impact_repo.disruptions == []


@pytest.mark.asyncio
async def test_losses_write_on_record_without_event(record_service, impact_repo) -> None:
    record_id = impact_repo.add_record(None)

    result = await record_service.create_losses(record_id, LossesCreate(sector_id=3, public_cost_total="9"))

    assert result.event_totals is None
    assert len(impact_repo.losses) == 1


@pytest.mark.asyncio
async def test_delete_record_recomputes_parent_event(record_service, impact_repo) -> None:
    event_id = impact_repo.add_event()
    keep = impact_repo.add_record(event_id)
    drop = impact_repo.add_record(event_id)
    impact_repo.add_damages(keep, 10, td_replacement_cost_total="3")
    impact_repo.add_damages(drop, 10, td_replacement_cost_total="4")

    result = await record_service.delete_record(drop)

    assert result.event_totals.replacement_cost == "3"
    assert impact_repo.events[event_id].replacement_costs_calc == Decimal("3")


@pytest.mark.asyncio
async def test_footprint_update_stores_normalized_json(record_service, impact_repo) -> None:
    record_id = impact_repo.add_record(None)

    await record_service.update_record_footprint(
        record_id,
        RecordFootprintUpdate(spatial_footprint='[{"geojson": "{\\"dts_info\\": {\\"division_id\\": 5}}"}]'),
    )

    assert impact_repo.records[0].spatial_footprint == [{"geojson": {"dts_info": {"division_id": 5}}}]


@pytest.mark.asyncio
async def test_footprint_update_stores_numeric_coordinates(record_service, impact_repo) -> None:
    record_id = impact_repo.add_record(None)

    await record_service.update_record_footprint(
        record_id,
        RecordFootprintUpdate(spatial_footprint=[
            {"map_coords": {"mode": "polygon", "coordinates": [[{"lat": "20.1", "lng": "10.1"}, ["20.1", "10.9"], [20.9, 10.5]]]}},
            {"map_coords": {"mode": "markers", "coordinates": [["x", "y"]]}},
        ]),
    )

    assert impact_repo.records[0].spatial_footprint == [
        {"map_coords": {"mode": "polygon", "coordinates": [[20.1, 10.1], [20.1, 10.9], [20.9, 10.5]]}},
        {},
    ]


@pytest.mark.asyncio
async def test_unknown_record_and_item(record_service) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await record_service.create_damages(uuid.uuid4(), DamagesCreate(sector_id=1))
    assert exc_info.value.error_code == "DISASTERRECORD_NOT_FOUND"

    with pytest.raises(NotFoundError) as exc_info:
        await record_service.delete_losses(uuid.uuid4())
    assert exc_info.value.error_code == "LOSSES_NOT_FOUND"


@pytest.mark.asyncio
async def test_malformed_ids(record_service) -> None:
    with pytest.raises(InvalidArgumentError):
        await record_service.delete_damages("not-a-uuid")
    with pytest.raises(InvalidArgumentError):
        await record_service.delete_record(None)


@pytest.mark.asyncio
async def test_store_failure_on_write(record_service, record_repo, impact_repo) -> None:
    record_id = impact_repo.add_record(impact_repo.add_event())
    record_repo.fail_with = SQLAlchemyError("disk full")

    with pytest.raises(InternalError):
        await record_service.create_disruption(record_id, DisruptionCreate(response_cost="1"))


def test_negative_amounts_rejected() -> None:
    with pytest.raises(ValidationError):
        DamagesCreate(sector_id=1, pd_repair_cost_total="-1")
    with pytest.raises(ValidationError):
        SectorRelationCreate(sector_id=1, damage_cost=-5)
    with pytest.raises(ValidationError):
        DisruptionCreate(response_cost="-0.01")
