"""
Tests for the Policy Catalog.

Validates:
- Default membership catalog contents
- Immutability and default entries for unknown fields
- Load-time validation of misconfigured catalogs
- JSON catalog loading
"""

from __future__ import annotations

import json

import pytest

from member_policy.fields.catalog import (
    ADMIN_ONLY_FIELDS,
    TSHIRT_FIELDS,
    CatalogError,
    PolicyCatalog,
    catalog_from_dict,
    load_catalog,
)
from member_policy.fields.conditions import ConditionRegistry
from member_policy.fields.schema import (
    ConditionSpec,
    LockReason,
    PermissionLevel,
    PolicyEntry,
)


class TestDefaultCatalog:
    def setup_method(self):
        self.catalog = PolicyCatalog.default()

    def test_admin_only_fields(self):
        assert set(self.catalog.admin_only_fields()) == set(ADMIN_ONLY_FIELDS)
        assert "status" in self.catalog.admin_only_fields()

    def test_lockable_fields(self):
        lockable = set(self.catalog.lockable_fields())
        assert lockable == {"senatorId", "introducerName", *TSHIRT_FIELDS}

    def test_senator_id_conditions_in_order(self):
        entry = self.catalog.lookup("senatorId")
        assert [c.reason for c in entry.conditions] == [
            LockReason.SENATOR_ID_VERIFIED,
            LockReason.ADMIN_LOCKED,
        ]

    def test_unknown_field(self):
        assert self.catalog.lookup("name") is None
        assert "name" not in self.catalog
        entry = self.catalog.entry_for("name")
        assert entry.baseline == PermissionLevel.READ_WRITE
        assert entry.conditions == ()

    def test_groups(self):
        assert "clothing_info" in self.catalog.groups
        assert "shirtSize" in self.catalog.group("clothing_info").fields
        assert self.catalog.group("missing") is None

    def test_entries_are_read_only(self):
        entry = self.catalog.lookup("status")
        with pytest.raises(Exception):
            entry.baseline = PermissionLevel.READ_WRITE
        with pytest.raises(TypeError):
            self.catalog._entries["status"] = entry

    def test_len(self):
        assert len(self.catalog) == len(self.catalog.fields())


class TestCatalogValidation:
    def test_undefined_predicate_rejected(self):
        entry = PolicyEntry(
            field_id="senatorId",
            conditions=(ConditionSpec(reason=LockReason.SENATOR_ID_VERIFIED, predicate="nope"),),
        )
        with pytest.raises(CatalogError, match="undefined predicate"):
            PolicyCatalog([entry])

    def test_predicate_checked_against_given_registry(self):
        entry = PolicyEntry(
            field_id="senatorId",
            conditions=(
                ConditionSpec(
                    reason=LockReason.SENATOR_ID_VERIFIED, predicate="senator_id_verified"
                ),
            ),
        )
        with pytest.raises(CatalogError):
            PolicyCatalog([entry], registry=ConditionRegistry())

    def test_duplicate_field_rejected(self):
        with pytest.raises(CatalogError, match="Duplicate"):
            PolicyCatalog([PolicyEntry(field_id="name"), PolicyEntry(field_id="name")])

    def test_locked_baseline_rejected(self):
        with pytest.raises(CatalogError, match="LOCKED"):
            PolicyCatalog([PolicyEntry(field_id="x", baseline=PermissionLevel.LOCKED)])

    def test_admin_only_with_conditions_rejected(self):
        entry = PolicyEntry(
            field_id="status",
            baseline=PermissionLevel.ADMIN_ONLY,
            conditions=(ConditionSpec(reason=LockReason.ADMIN_LOCKED, predicate="admin_locked"),),
        )
        with pytest.raises(CatalogError, match="admin-only"):
            PolicyCatalog([entry])

    def test_repeated_lock_reason_rejected(self):
        condition = ConditionSpec(reason=LockReason.ADMIN_LOCKED, predicate="admin_locked")
        with pytest.raises(CatalogError, match="more than once"):
            PolicyCatalog([PolicyEntry(field_id="x", conditions=(condition, condition))])


class TestJsonCatalog:
    DOCUMENT = {
        "fields": [
            {"field": "status", "baseline": "admin_only"},
            {
                "field": "senatorId",
                "conditions": [
                    {"reason": "senator_id_verified", "predicate": "senator_id_verified"}
                ],
            },
        ],
        "groups": [{"key": "membership", "label": "Membership", "fields": ["status", "senatorId"]}],
    }

    def test_from_dict(self):
        catalog = catalog_from_dict(self.DOCUMENT)
        assert catalog.lookup("status").baseline == PermissionLevel.ADMIN_ONLY
        assert catalog.lookup("senatorId").baseline == PermissionLevel.READ_WRITE
        assert catalog.group("membership").fields == ("status", "senatorId")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(self.DOCUMENT), encoding="utf-8")
        catalog = load_catalog(path)
        assert set(catalog.fields()) == {"status", "senatorId"}

    def test_unknown_baseline_rejected(self):
        with pytest.raises(CatalogError):
            catalog_from_dict({"fields": [{"field": "x", "baseline": "sometimes"}]})

    def test_unknown_lock_reason_rejected(self):
        document = {"fields": [{"field": "x", "conditions": [{"reason": "because", "predicate": "admin_locked"}]}]}
        with pytest.raises(CatalogError):
            catalog_from_dict(document)

    def test_non_string_group_member_rejected(self):
        document = {"groups": [{"key": "g", "label": "G", "fields": [1, 2]}]}
        with pytest.raises(CatalogError):
            catalog_from_dict(document)

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError, match="not valid JSON"):
            load_catalog(path)

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(CatalogError):
            load_catalog(path)
