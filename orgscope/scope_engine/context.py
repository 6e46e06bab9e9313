"""
Scope context builder.

Combines parsed grant rows with the tenant hierarchy into the set of scopes a
principal can reach. The algorithm runs in a fixed order:

1. parse rows into allow / deny
2. a TENANT deny short-circuits to an empty context
3. seed from the whole hierarchy when TENANT is allowed
4. merge explicit allows
5. expand groups / countries to legal entities, legal entities to operating units
6. remove denies, cascading from groups / countries / legal entities downwards
7. back-fill the group and country of every surviving legal entity
8. derive the coarse `tenant_wide` flag

This module performs no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .hierarchy import OrgHierarchy
from .rows import parse_scope_rows
from .types import ScopeRow


@dataclass(frozen=True)
class ScopeContext:
    tenant_id: int
    tenant_wide: bool = False
    groups: frozenset[int] = frozenset()
    countries: frozenset[int] = frozenset()
    legal_entities: frozenset[int] = frozenset()
    operating_units: frozenset[int] = frozenset()
    source_rows: int = 0

    def is_empty(self) -> bool:
        return not (self.groups or self.countries or self.legal_entities or self.operating_units)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict (ids sorted)."""
        return {
            "tenant_id": self.tenant_id,
            "tenant_wide": self.tenant_wide,
            "source_rows": self.source_rows,
            "groups": sorted(self.groups),
            "countries": sorted(self.countries),
            "legal_entities": sorted(self.legal_entities),
            "operating_units": sorted(self.operating_units),
        }


def _remove_legal_entities(
    entity_ids: Iterable[int],
    hierarchy: OrgHierarchy,
    legal_entities: set[int],
    operating_units: set[int],
) -> None:
    for entity_id in entity_ids:
        legal_entities.discard(entity_id)
        operating_units.difference_update(hierarchy.operating_units_of(entity_id))


def build_scope_context(
    tenant_id: int,
    scope_rows: Iterable[ScopeRow | Mapping[str, Any]],
    hierarchy: OrgHierarchy,
) -> ScopeContext:
    rows = list(scope_rows)
    parsed = parse_scope_rows(rows)
    allow, deny = parsed.allow, parsed.deny

    if deny.tenant:
        return ScopeContext(tenant_id=tenant_id, tenant_wide=False, source_rows=len(rows))

    groups: set[int] = set()
    countries: set[int] = set()
    legal_entities: set[int] = set()
    operating_units: set[int] = set()

    if allow.tenant:
        groups.update(hierarchy.group_ids)
        countries.update(hierarchy.country_ids)
        legal_entities.update(hierarchy.legal_entity_ids)
        operating_units.update(hierarchy.operating_unit_ids)

    groups.update(allow.groups)
    countries.update(allow.countries)
    legal_entities.update(allow.legal_entities)
    operating_units.update(allow.operating_units)

    # Expand downwards.
    for group_id in allow.groups:
        legal_entities.update(hierarchy.legal_entities_of_group(group_id))
    for country_id in allow.countries:
        legal_entities.update(hierarchy.legal_entities_of_country(country_id))
    for entity_id in legal_entities:
        operating_units.update(hierarchy.operating_units_of(entity_id))

    # Deny pass: direct removals first, then cascades.
    groups.difference_update(deny.groups)
    countries.difference_update(deny.countries)
    legal_entities.difference_update(deny.legal_entities)
    operating_units.difference_update(deny.operating_units)

    for group_id in deny.groups:
        _remove_legal_entities(hierarchy.legal_entities_of_group(group_id), hierarchy, legal_entities, operating_units)
    for country_id in deny.countries:
        _remove_legal_entities(
            hierarchy.legal_entities_of_country(country_id), hierarchy, legal_entities, operating_units
        )
    _remove_legal_entities(deny.legal_entities, hierarchy, legal_entities, operating_units)

    # Ancestor back-fill for surviving legal entities only.
    for entity_id in legal_entities:
        entity = hierarchy.entity_by_id.get(entity_id)
        if entity is not None:
            groups.add(entity.group_id)
            countries.add(entity.country_id)

    tenant_wide = allow.tenant and not deny.tenant and not deny.has_narrow_entries()

    return ScopeContext(
        tenant_id=tenant_id,
        tenant_wide=tenant_wide,
        groups=frozenset(groups),
        countries=frozenset(countries),
        legal_entities=frozenset(legal_entities),
        operating_units=frozenset(operating_units),
        source_rows=len(rows),
    )
