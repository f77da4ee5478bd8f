"""
测试公共夹具

服务层都支持注入仓库，这里提供内存版的影响数据仓库，
行为与 ImpactRepository 的查询语义保持一致（排序、已发布过滤、with_damage/with_losses 过滤）。
"""
from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Optional, Sequence
from uuid import UUID

import pytest


_DAMAGES_DEFAULTS: dict[str, Any] = {
    "asset_id": None,
    "unit": None,
    "total_damage_amount": None,
    "total_damage_amount_override": False,
    "total_repair_replacement": None,
    "total_repair_replacement_override": False,
    "total_recovery": None,
    "total_recovery_override": False,
    "pd_repair_cost_unit": None,
    "pd_repair_cost_unit_currency": None,
    "pd_repair_units": None,
    "pd_repair_cost_total": None,
    "pd_repair_cost_total_override": False,
    "pd_recovery_cost_unit": None,
    "pd_recovery_cost_unit_currency": None,
    "pd_recovery_units": None,
    "pd_recovery_cost_total": None,
    "td_replacement_cost_unit": None,
    "td_replacement_cost_unit_currency": None,
    "td_replacement_units": None,
    "td_replacement_cost_total": None,
    "td_replacement_cost_total_override": False,
    "spatial_footprint": None,
}

_LOSSES_DEFAULTS: dict[str, Any] = {
    "description": None,
    "public_units": None,
    "public_cost_unit": None,
    "public_cost_unit_currency": None,
    "public_cost_total": None,
    "public_cost_total_override": False,
    "private_units": None,
    "private_cost_unit": None,
    "private_cost_unit_currency": None,
    "private_cost_total": None,
    "private_cost_total_override": False,
    "spatial_footprint": None,
}

_RELATION_DEFAULTS: dict[str, Any] = {
    "with_damage": None,
    "damage_cost": None,
    "damage_cost_currency": None,
    "damage_recovery_cost": None,
    "damage_recovery_cost_currency": None,
    "with_losses": None,
    "losses_cost": None,
    "losses_cost_currency": None,
    "with_disruption": None,
}


_TEXT_FIELDS = {"unit", "description", "public_unit", "private_unit"}


_EVENT_OVERRIDE_FIELDS = (
    "repair_costs_local_currency",
    "replacement_costs_local_currency",
    "rehabilitation_costs_local_currency",
    "recovery_needs_local_currency",
)


def _money(values: dict[str, Any]) -> dict[str, Any]:
    """测试里写字符串金额，转成数据库读出的 Decimal"""
    converted = {}
    for key, value in values.items():
        is_text = key in _TEXT_FIELDS or key.endswith("currency")
        if isinstance(value, (str, int)) and not isinstance(value, bool) and not is_text:
            value = Decimal(value)
        converted[key] = value
    return converted


class FakeImpactRepository:
    """内存版 ImpactRepository"""

    def __init__(self) -> None:
        self.events: dict[UUID, SimpleNamespace] = {}
        self.records: list[SimpleNamespace] = []
        self.sectors: dict[int, SimpleNamespace] = {}
        self.relations: list[SimpleNamespace] = []
        self.damages: list[SimpleNamespace] = []
        self.losses: list[SimpleNamespace] = []
        self.disruptions: list[SimpleNamespace] = []
        self.calls: list[tuple[str, tuple]] = []
        self.fail_with: Optional[Exception] = None

    # ==================== 构造数据 ====================

    def add_event(
        self,
        approval_status: str = "published",
        event_id: Optional[UUID] = None,
        **local_currency: Any,
    ) -> UUID:
        """local_currency: repair_costs_local_currency 等事件级填报金额，字符串写法"""
        eid = event_id or uuid.uuid4()
        overrides = {
            field: Decimal(local_currency[field]) if local_currency.get(field) is not None else None
            for field in _EVENT_OVERRIDE_FIELDS
        }
        self.events[eid] = SimpleNamespace(
            id=eid,
            approval_status=approval_status,
            **overrides,
            repair_costs_calc=None,
            replacement_costs_calc=None,
            rehabilitation_costs_calc=None,
            recovery_needs_calc=None,
        )
        return eid

    def add_record(
        self,
        event_id: Optional[UUID],
        approval_status: str = "published",
        record_id: Optional[UUID] = None,
    ) -> UUID:
        rid = record_id or uuid.uuid4()
        self.records.append(SimpleNamespace(
            id=rid, disaster_event_id=event_id, approval_status=approval_status, spatial_footprint=None,
        ))
        return rid

    def add_sector(self, sector_id: int, name: str, parent_id: Optional[int] = None) -> None:
        self.sectors[sector_id] = SimpleNamespace(id=sector_id, sectorname=name, parent_id=parent_id)

    def add_relation(self, record_id: UUID, sector_id: int, **values: Any) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(), disaster_record_id=record_id, sector_id=sector_id,
            **{**_RELATION_DEFAULTS, **_money(values)},
        )
        self.relations.append(row)
        return row

    def add_damages(self, record_id: UUID, sector_id: int, **values: Any) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(), record_id=record_id, sector_id=sector_id,
            **{**_DAMAGES_DEFAULTS, **_money(values)},
        )
        self.damages.append(row)
        return row

    def add_losses(self, record_id: UUID, sector_id: int, **values: Any) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(), record_id=record_id, sector_id=sector_id,
            **{**_LOSSES_DEFAULTS, **_money(values)},
        )
        self.losses.append(row)
        return row

    def add_disruption(self, record_id: UUID, response_cost: Any = None, sector_id: Optional[int] = None) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(), record_id=record_id, sector_id=sector_id,
            response_cost=Decimal(response_cost) if isinstance(response_cost, str) else response_cost,
            response_currency=None,
        )
        self.disruptions.append(row)
        return row

    # ==================== 仓库接口 ====================

    def _call(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    async def get_event(self, event_id: UUID):
        self._call("get_event", event_id)
        return self.events.get(event_id)

    async def get_record(self, record_id: UUID):
        self._call("get_record", record_id)
        return next((r for r in self.records if r.id == record_id), None)

    async def list_record_ids_for_event(self, event_id: UUID) -> list[UUID]:
        self._call("list_record_ids_for_event", event_id)
        return sorted((r.id for r in self.records if r.disaster_event_id == event_id), key=str)

    async def list_damages_for_records(self, record_ids: Sequence[UUID]):
        self._call("list_damages_for_records", tuple(record_ids))
        return [d for d in self.damages if d.record_id in set(record_ids)]

    async def list_disruptions_for_records(self, record_ids: Sequence[UUID]):
        self._call("list_disruptions_for_records", tuple(record_ids))
        return [d for d in self.disruptions if d.record_id in set(record_ids)]

    async def list_sector_relations_for_records(self, record_ids: Sequence[UUID]):
        self._call("list_sector_relations_for_records", tuple(record_ids))
        return [r for r in self.relations if r.disaster_record_id in set(record_ids)]

    async def list_sector_relations_for_event(
        self,
        event_id: UUID,
        sector_ids: Sequence[int],
        published_status: str,
        extra_conditions: Optional[Sequence[Any]] = None,
    ):
        self._call("list_sector_relations_for_event", event_id, tuple(sector_ids), published_status)
        event = self.events.get(event_id)
        if event is None or event.approval_status != published_status:
            return []
        published = {
            r.id for r in self.records
            if r.disaster_event_id == event_id and r.approval_status == published_status
        }
        rows = [
            rel for rel in self.relations
            if rel.disaster_record_id in published
            and (not sector_ids or rel.sector_id in sector_ids)
            and (rel.with_damage or rel.with_losses)
        ]
        # 与数据库一致: 按 (记录ID, 关联ID) 排序
        return sorted(rows, key=lambda rel: (str(rel.disaster_record_id), str(rel.id)))

    async def list_damages_for_pair(self, record_id: UUID, sector_id: int):
        self._call("list_damages_for_pair", record_id, sector_id)
        return [d for d in self.damages if d.record_id == record_id and d.sector_id == sector_id]

    async def list_losses_for_pair(self, record_id: UUID, sector_id: int):
        self._call("list_losses_for_pair", record_id, sector_id)
        return [x for x in self.losses if x.record_id == record_id and x.sector_id == sector_id]

    async def list_event_sectors(self, event_id: UUID, published_status: str):
        self._call("list_event_sectors", event_id, published_status)
        published = {
            r.id for r in self.records
            if r.disaster_event_id == event_id and r.approval_status == published_status
        }
        ids = {rel.sector_id for rel in self.relations if rel.disaster_record_id in published}
        return sorted((self.sectors[i] for i in ids if i in self.sectors), key=lambda s: (s.sectorname, s.id))

    async def count_published_records(self, event_id: UUID, published_status: str) -> int:
        self._call("count_published_records", event_id, published_status)
        return sum(
            1 for r in self.records
            if r.disaster_event_id == event_id and r.approval_status == published_status
        )

    async def update_event_totals(self, event_id, repair, replacement, rehabilitation, recovery) -> bool:
        self._call("update_event_totals", event_id)
        event = self.events.get(event_id)
        if event is None:
            return False
        event.repair_costs_calc = repair
        event.replacement_costs_calc = replacement
        event.rehabilitation_costs_calc = rehabilitation
        event.recovery_needs_calc = recovery
        return True

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def impact_repo() -> FakeImpactRepository:
    return FakeImpactRepository()
