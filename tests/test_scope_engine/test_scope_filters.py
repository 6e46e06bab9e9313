"""Tests for the SQL and ORM scope filters."""

from __future__ import annotations

import pytest
from sqlalchemy import column
from sqlalchemy.sql.elements import False_, True_

from orgscope.db.filters import scope_clause
from orgscope.scope_engine import BadRequestError, ScopeContext, build_scope_filter

CTX = ScopeContext(
    tenant_id=1,
    groups=frozenset({3, 1}),
    legal_entities=frozenset({30, 10, 20}),
)


def test_missing_context_matches_nothing():
    params: dict = {}
    assert build_scope_filter(None, "group", "id", params) == "1=0"
    assert params == {}


def test_tenant_wide_matches_everything():
    params: dict = {"tenant_id": 1}
    ctx = ScopeContext(tenant_id=1, tenant_wide=True, legal_entities=frozenset({1, 2}))
    assert build_scope_filter(ctx, "legal_entity", "id", params) == "1=1"
    assert params == {"tenant_id": 1}


def test_empty_set_matches_nothing():
    params: dict = {}
    assert build_scope_filter(CTX, "operating_unit", "ou.id", params) == "1=0"
    assert params == {}


def test_in_clause_binds_one_param_per_id():
    params: dict = {"tenant_id": 1}
    fragment = build_scope_filter(CTX, "legal_entity", "le.id", params)

    assert fragment == "le.id IN (:scope_1, :scope_2, :scope_3)"
    assert params == {"tenant_id": 1, "scope_1": 10, "scope_2": 20, "scope_3": 30}


def test_multiple_filters_share_params_without_collisions():
    params: dict = {}
    first = build_scope_filter(CTX, "group", "g.id", params)
    second = build_scope_filter(CTX, "legal_entity", "le.id", params)

    assert first == "g.id IN (:scope_0, :scope_1)"
    assert second == "le.id IN (:scope_2, :scope_3, :scope_4)"
    assert len(params) == len(CTX.groups) + len(CTX.legal_entities)


def test_existing_param_names_are_skipped():
    params: dict = {"scope_0": "taken"}
    fragment = build_scope_filter(CTX, "group", "id", params)
    assert fragment == "id IN (:scope_1, :scope_2)"
    assert params["scope_0"] == "taken"


def test_unknown_scope_kind_is_bad_request():
    with pytest.raises(BadRequestError):
        build_scope_filter(CTX, "region", "id", {})


def test_scope_clause_variants():
    col = column("id")

    assert isinstance(scope_clause(None, "legal_entity", col), False_)
    assert isinstance(scope_clause(ScopeContext(tenant_id=1), "legal_entity", col), False_)
    assert isinstance(scope_clause(ScopeContext(tenant_id=1, tenant_wide=True), "legal_entity", col), True_)

    clause = scope_clause(CTX, "legal_entity", col)
    assert str(clause.compile(compile_kwargs={"literal_binds": True})) == "id IN (10, 20, 30)"

    with pytest.raises(BadRequestError):
        scope_clause(CTX, "region", col)
