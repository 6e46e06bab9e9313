"""Value types shared by the scope engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class ScopeType(str, Enum):
    """Organization scope levels, ordered by containment."""

    TENANT = "TENANT"
    GROUP = "GROUP"
    COUNTRY = "COUNTRY"
    LEGAL_ENTITY = "LEGAL_ENTITY"
    OPERATING_UNIT = "OPERATING_UNIT"


class Effect(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


VALID_SCOPE_TYPES: frozenset[str] = frozenset(t.value for t in ScopeType)
VALID_EFFECTS: frozenset[str] = frozenset(e.value for e in Effect)

# Lower-case labels used by route code -> ScopeContext attribute.
SCOPE_KIND_TO_ATTR: dict[str, str] = {
    "group": "groups",
    "country": "countries",
    "legal_entity": "legal_entities",
    "operating_unit": "operating_units",
}

SCOPE_TYPE_TO_ATTR: dict[ScopeType, str] = {
    ScopeType.GROUP: "groups",
    ScopeType.COUNTRY: "countries",
    ScopeType.LEGAL_ENTITY: "legal_entities",
    ScopeType.OPERATING_UNIT: "operating_units",
}


def parse_positive_int(value: Any) -> int | None:
    """Return `value` as a positive int, or None if it is not one."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            return None
        parsed = int(text)
        return parsed if parsed > 0 else None
    return None


@dataclass(frozen=True)
class ScopeRow:
    """
    One grant row: (effect, scope type, scope id).

    Values are kept as read; validation happens in `parse_scope_rows` so that
    malformed rows are skipped rather than rejected.
    """

    effect: str
    scope_type: str
    scope_id: Any

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> ScopeRow:
        return cls(
            effect=row.get("effect"),
            scope_type=row.get("scope_type"),
            scope_id=row.get("scope_id"),
        )


@dataclass(frozen=True)
class RequestedScope:
    """The specific scope a request targets."""

    scope_type: ScopeType
    scope_id: int

    def to_dict(self) -> dict[str, object]:
        return {"scope_type": self.scope_type.value, "scope_id": self.scope_id}


class QueryRunner(Protocol):
    """Read-only query interface consumed by the engine."""

    async def __call__(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]: ...
