"""Tests for point checks and resolver-scope normalization."""

from __future__ import annotations

import pytest

from orgscope.scope_engine import (
    AuthorizationDecision,
    BadRequestError,
    ForbiddenError,
    RequestedScope,
    ScopeContext,
    ScopeType,
    assert_scope_access,
    build_scope_context,
    get_scope_context,
    has_scope_access,
    is_scope_allowed,
    normalize_scope,
)

from conftest import E1, E2, G1, TENANT_ID, U1, U3


@pytest.fixture
def scenario_context(hierarchy):
    return build_scope_context(
        TENANT_ID,
        [
            {"effect": "ALLOW", "scope_type": "GROUP", "scope_id": G1},
            {"effect": "DENY", "scope_type": "LEGAL_ENTITY", "scope_id": E2},
        ],
        hierarchy,
    )


def test_denied_legal_entity_is_not_allowed(scenario_context):
    assert not is_scope_allowed(scenario_context, RequestedScope(ScopeType.LEGAL_ENTITY, E2))
    assert is_scope_allowed(scenario_context, RequestedScope(ScopeType.LEGAL_ENTITY, E1))


def test_requested_scope_checks_matching_set(scenario_context):
    assert is_scope_allowed(scenario_context, RequestedScope(ScopeType.GROUP, G1))
    assert is_scope_allowed(scenario_context, RequestedScope(ScopeType.OPERATING_UNIT, U1))
    assert not is_scope_allowed(scenario_context, RequestedScope(ScopeType.OPERATING_UNIT, U3))


def test_tenant_scope_requires_tenant_wide(scenario_context):
    assert not is_scope_allowed(scenario_context, RequestedScope(ScopeType.TENANT, TENANT_ID))
    wide = ScopeContext(tenant_id=TENANT_ID, tenant_wide=True)
    assert is_scope_allowed(wide, RequestedScope(ScopeType.TENANT, TENANT_ID))


def test_no_requested_scope_means_any_access(scenario_context):
    assert is_scope_allowed(scenario_context, None)
    assert not is_scope_allowed(ScopeContext(tenant_id=TENANT_ID), None)
    assert is_scope_allowed(ScopeContext(tenant_id=TENANT_ID, tenant_wide=True), None)


def test_has_scope_access_by_kind(scenario_context):
    assert has_scope_access(scenario_context, "legal_entity", E1)
    assert has_scope_access(scenario_context, "LEGAL_ENTITY", str(E1))
    assert not has_scope_access(scenario_context, "legal_entity", E2)
    assert not has_scope_access(scenario_context, "region", E1)
    assert not has_scope_access(scenario_context, "legal_entity", 0)
    assert not has_scope_access(None, "legal_entity", E1)


def test_has_scope_access_tenant_wide_grants_everything():
    wide = ScopeContext(tenant_id=TENANT_ID, tenant_wide=True)
    assert has_scope_access(wide, "operating_unit", 999)


def test_has_scope_access_uses_decision_data_context(scenario_context):
    decision = AuthorizationDecision(
        permission_code="org.tree.read",
        tenant_id=TENANT_ID,
        requested_scope=None,
        source="data_scopes",
        permission_scope_context=ScopeContext(tenant_id=TENANT_ID, tenant_wide=True),
        scope_context=scenario_context,
    )

    assert get_scope_context(decision) is scenario_context
    assert not has_scope_access(decision, "legal_entity", E2)


def test_assert_scope_access_raises_forbidden_with_label(scenario_context):
    assert_scope_access(scenario_context, "legal_entity", E1, "legalEntityId")

    with pytest.raises(ForbiddenError) as exc_info:
        assert_scope_access(scenario_context, "legal_entity", E2, "legalEntityId")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Access denied for legalEntityId"


def test_normalize_scope_accepts_mapping_and_dataclass():
    assert normalize_scope(None, TENANT_ID) is None
    assert normalize_scope({"scope_type": "legal_entity", "scope_id": "12"}, TENANT_ID) == RequestedScope(
        ScopeType.LEGAL_ENTITY, 12
    )
    assert normalize_scope({"scopeType": "GROUP", "scopeId": 3}, TENANT_ID) == RequestedScope(ScopeType.GROUP, 3)
    scope = RequestedScope(ScopeType.OPERATING_UNIT, 4)
    assert normalize_scope(scope, TENANT_ID) == scope


def test_normalize_scope_rejects_invalid_type_and_id():
    with pytest.raises(BadRequestError) as exc_info:
        normalize_scope({"scope_type": "REGION", "scope_id": 1}, TENANT_ID)
    assert exc_info.value.status_code == 400

    with pytest.raises(BadRequestError):
        normalize_scope({"scope_type": "GROUP", "scope_id": 0}, TENANT_ID)
    with pytest.raises(BadRequestError):
        normalize_scope({"scope_type": "GROUP", "scope_id": "abc"}, TENANT_ID)


def test_normalize_scope_tenant_must_match():
    assert normalize_scope({"scope_type": "TENANT", "scope_id": TENANT_ID}, TENANT_ID) == RequestedScope(
        ScopeType.TENANT, TENANT_ID
    )
    with pytest.raises(ForbiddenError):
        normalize_scope({"scope_type": "TENANT", "scope_id": TENANT_ID + 1}, TENANT_ID)


@pytest.mark.parametrize("raw", [("LEGAL_ENTITY", 1), "LEGAL_ENTITY:1", 7, object()])
def test_normalize_scope_rejects_non_mapping_results(raw):
    with pytest.raises(BadRequestError) as exc_info:
        normalize_scope(raw, TENANT_ID)
    assert exc_info.value.status_code == 400
