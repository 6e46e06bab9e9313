"""Split raw scope rows into allow / deny grant sets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .types import Effect, ScopeRow, ScopeType, VALID_EFFECTS, VALID_SCOPE_TYPES, parse_positive_int


@dataclass
class ScopeGrantSet:
    tenant: bool = False
    groups: set[int] = field(default_factory=set)
    countries: set[int] = field(default_factory=set)
    legal_entities: set[int] = field(default_factory=set)
    operating_units: set[int] = field(default_factory=set)

    def has_narrow_entries(self) -> bool:
        return bool(self.groups or self.countries or self.legal_entities or self.operating_units)


@dataclass
class ParsedScopeRows:
    allow: ScopeGrantSet = field(default_factory=ScopeGrantSet)
    deny: ScopeGrantSet = field(default_factory=ScopeGrantSet)


def _coerce(row: ScopeRow | Mapping[str, Any]) -> ScopeRow:
    if isinstance(row, ScopeRow):
        return row
    return ScopeRow.from_mapping(row)


def parse_scope_rows(rows: Iterable[ScopeRow | Mapping[str, Any]]) -> ParsedScopeRows:
    """
    Parse rows into allow / deny structures.

    Rows with an unknown effect or scope type, or a non-positive scope id, are
    skipped; this never raises.
    """

    parsed = ParsedScopeRows()

    for raw in rows:
        row = _coerce(raw)
        effect = str(row.effect or "").upper()
        scope_type = str(row.scope_type or "").upper()
        scope_id = parse_positive_int(row.scope_id)
        if effect not in VALID_EFFECTS or scope_type not in VALID_SCOPE_TYPES or not scope_id:
            continue

        target = parsed.allow if effect == Effect.ALLOW.value else parsed.deny

        if scope_type == ScopeType.TENANT.value:
            target.tenant = True
        elif scope_type == ScopeType.GROUP.value:
            target.groups.add(scope_id)
        elif scope_type == ScopeType.COUNTRY.value:
            target.countries.add(scope_id)
        elif scope_type == ScopeType.LEGAL_ENTITY.value:
            target.legal_entities.add(scope_id)
        else:
            target.operating_units.add(scope_id)

    return parsed
