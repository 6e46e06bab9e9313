"""
Per-tenant organization hierarchy snapshot.

The hierarchy is loaded fresh for every authorization decision; nothing here
is cached between requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .types import QueryRunner, parse_positive_int

logger = logging.getLogger(__name__)


_GROUPS_SQL = "SELECT id FROM group_companies WHERE tenant_id = :tenant_id"
_LEGAL_ENTITIES_SQL = """
    SELECT id, group_company_id, country_id
    FROM legal_entities
    WHERE tenant_id = :tenant_id
"""
_OPERATING_UNITS_SQL = """
    SELECT id, legal_entity_id
    FROM operating_units
    WHERE tenant_id = :tenant_id
"""


@dataclass(frozen=True)
class LegalEntityRef:
    id: int
    group_id: int
    country_id: int


@dataclass(frozen=True)
class OrgHierarchy:
    group_ids: frozenset[int] = frozenset()
    country_ids: frozenset[int] = frozenset()
    legal_entity_ids: frozenset[int] = frozenset()
    operating_unit_ids: frozenset[int] = frozenset()

    entity_by_id: Mapping[int, LegalEntityRef] = field(default_factory=dict)
    legal_entity_ids_by_group_id: Mapping[int, frozenset[int]] = field(default_factory=dict)
    legal_entity_ids_by_country_id: Mapping[int, frozenset[int]] = field(default_factory=dict)
    operating_unit_ids_by_legal_entity_id: Mapping[int, frozenset[int]] = field(default_factory=dict)

    def legal_entities_of_group(self, group_id: int) -> frozenset[int]:
        return self.legal_entity_ids_by_group_id.get(group_id, frozenset())

    def legal_entities_of_country(self, country_id: int) -> frozenset[int]:
        return self.legal_entity_ids_by_country_id.get(country_id, frozenset())

    def operating_units_of(self, legal_entity_id: int) -> frozenset[int]:
        return self.operating_unit_ids_by_legal_entity_id.get(legal_entity_id, frozenset())


def build_hierarchy(
    group_rows: Iterable[Mapping[str, Any]],
    entity_rows: Iterable[Mapping[str, Any]],
    unit_rows: Iterable[Mapping[str, Any]],
) -> OrgHierarchy:
    """
    Build an `OrgHierarchy` from raw rows.

    Rows with a missing or non-positive id / foreign key are skipped. Legal
    entities also contribute their group and country to the hierarchy-wide sets.
    """

    group_ids: set[int] = set()
    country_ids: set[int] = set()
    legal_entity_ids: set[int] = set()
    operating_unit_ids: set[int] = set()

    entity_by_id: dict[int, LegalEntityRef] = {}
    by_group: dict[int, set[int]] = {}
    by_country: dict[int, set[int]] = {}
    units_by_entity: dict[int, set[int]] = {}

    for row in group_rows:
        group_id = parse_positive_int(row.get("id"))
        if group_id:
            group_ids.add(group_id)

    for row in entity_rows:
        entity_id = parse_positive_int(row.get("id"))
        group_id = parse_positive_int(row.get("group_company_id"))
        country_id = parse_positive_int(row.get("country_id"))
        if not entity_id or not group_id or not country_id:
            continue

        legal_entity_ids.add(entity_id)
        group_ids.add(group_id)
        country_ids.add(country_id)
        entity_by_id[entity_id] = LegalEntityRef(id=entity_id, group_id=group_id, country_id=country_id)
        by_group.setdefault(group_id, set()).add(entity_id)
        by_country.setdefault(country_id, set()).add(entity_id)

    for row in unit_rows:
        unit_id = parse_positive_int(row.get("id"))
        entity_id = parse_positive_int(row.get("legal_entity_id"))
        if not unit_id or not entity_id:
            continue

        operating_unit_ids.add(unit_id)
        units_by_entity.setdefault(entity_id, set()).add(unit_id)

    return OrgHierarchy(
        group_ids=frozenset(group_ids),
        country_ids=frozenset(country_ids),
        legal_entity_ids=frozenset(legal_entity_ids),
        operating_unit_ids=frozenset(operating_unit_ids),
        entity_by_id=entity_by_id,
        legal_entity_ids_by_group_id={k: frozenset(v) for k, v in by_group.items()},
        legal_entity_ids_by_country_id={k: frozenset(v) for k, v in by_country.items()},
        operating_unit_ids_by_legal_entity_id={k: frozenset(v) for k, v in units_by_entity.items()},
    )


async def load_hierarchy(query: QueryRunner, tenant_id: int) -> OrgHierarchy:
    """Load the tenant hierarchy; the three reads are issued concurrently."""

    params = {"tenant_id": tenant_id}
    group_rows, entity_rows, unit_rows = await asyncio.gather(
        query(_GROUPS_SQL, params),
        query(_LEGAL_ENTITIES_SQL, params),
        query(_OPERATING_UNITS_SQL, params),
    )

    hierarchy = build_hierarchy(group_rows, entity_rows, unit_rows)
    logger.debug(
        "Loaded hierarchy tenant=%s groups=%d countries=%d legal_entities=%d operating_units=%d",
        tenant_id,
        len(hierarchy.group_ids),
        len(hierarchy.country_ids),
        len(hierarchy.legal_entity_ids),
        len(hierarchy.operating_unit_ids),
    )
    return hierarchy
