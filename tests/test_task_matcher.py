"""
Tests for the Task Policy Matcher.

Validates:
- Account-type and membership-category targeting
- Disabled policies are never matched
- Requirements are surfaced unmodified
- Invalid stored policies are skipped, never raised
"""

from __future__ import annotations

import json

import pytest

from member_policy.tasks.matcher import (
    TaskPolicyMatcher,
    describe_requirement,
    load_task_policies,
    parse_policies,
)
from member_policy.tasks.schema import (
    CommitteeRoleRequirement,
    CountedRequirement,
    MembershipCategory,
    MembershipTaskPolicy,
    TargetType,
)


def _policy(policy_id, target_type, values, enabled=True, requirements=None):
    return {
        "id": policy_id,
        "name": f"Policy {policy_id}",
        "isEnabled": enabled,
        "target": {"type": target_type, "values": values},
        "requirements": requirements
        if requirements is not None
        else [{"type": "event_participation", "anyType": True, "minCount": 3}],
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-02T00:00:00Z",
    }


class TestTaskPolicyMatcher:
    def setup_method(self):
        self.matcher = TaskPolicyMatcher()

    def test_guest_does_not_match_member_policy(self):
        policies = [_policy("p1", "accountType", ["member"])]
        assert self.matcher.match("guest", "active", policies) == []

    def test_account_type_match(self):
        policies = [_policy("p1", "accountType", ["member", "moderator"])]
        matched = self.matcher.match("member", "active", policies)
        assert [p.id for p in matched] == ["p1"]

    def test_membership_category_match(self):
        policies = [
            _policy("p1", "membershipCategory", ["associate"]),
            _policy("p2", "membershipCategory", ["active"]),
        ]
        matched = self.matcher.match("member", "associate", policies)
        assert [p.id for p in matched] == ["p1"]

    def test_disabled_policies_skipped(self):
        policies = [
            _policy("p1", "accountType", ["member"], enabled=False),
            _policy("p2", "accountType", ["member"]),
        ]
        assert [p.id for p in self.matcher.match("member", "active", policies)] == ["p2"]

    def test_input_order_preserved(self):
        policies = [
            _policy("b", "membershipCategory", ["active"]),
            _policy("a", "accountType", ["member"]),
        ]
        assert [p.id for p in self.matcher.match("member", "active", policies)] == ["b", "a"]

    @pytest.mark.parametrize("account_type,category", [(None, "active"), ("member", None), ("", "")])
    def test_unresolved_member_matches_nothing(self, account_type, category):
        policies = [_policy("p1", "accountType", ["member"])]
        assert self.matcher.match(account_type, category, policies) == []

    def test_no_policies(self):
        assert self.matcher.match("member", "active", []) == []
        assert self.matcher.match("member", "active", None) == []

    @pytest.mark.parametrize(
        "policies",
        [5, 3.5, True, object(), "policies", b"policies", {"id": "p1"}],
    )
    def test_non_list_policies_match_nothing(self, policies):
        assert self.matcher.match("member", "active", policies) == []

    def test_requirements_surfaced_unmodified(self):
        requirements = [
            {"type": "course_completion", "anyType": False, "specificTypes": "JCI 101, Leadership", "minCount": 2},
            {"type": "committee_role", "minCount": 1},
            {"type": "event_participation", "anyType": True, "minCount": 5},
        ]
        policies = [_policy("p1", "accountType", ["member"], requirements=requirements)]
        [matched] = self.matcher.match("member", "active", policies)
        assert [r.type for r in matched.requirements] == [
            "course_completion",
            "committee_role",
            "event_participation",
        ]
        course = matched.requirements[0]
        assert isinstance(course, CountedRequirement)
        assert course.any_type is False
        assert course.min_count == 2
        assert course.specific_type_list == ["JCI 101", "Leadership"]
        assert isinstance(matched.requirements[1], CommitteeRoleRequirement)

    def test_accepts_parsed_policies(self):
        policy = MembershipTaskPolicy.model_validate(_policy("p1", "accountType", ["member"]))
        assert self.matcher.match("member", "active", [policy]) == [policy]

    def test_invalid_policies_skipped(self):
        policies = [
            {"id": "broken", "name": "no target"},
            _policy("bad-req", "accountType", ["member"], requirements=[{"type": "committee_role", "minCount": 0}]),
            "not a policy",
            _policy("ok", "accountType", ["member"]),
        ]
        assert [p.id for p in self.matcher.match("member", "active", policies)] == ["ok"]


class TestPolicyParsing:
    def test_camel_case_fields(self):
        [policy] = parse_policies([_policy("p1", "membershipCategory", ["student"])])
        assert policy.is_enabled is True
        assert policy.target.type == TargetType.MEMBERSHIP_CATEGORY
        assert policy.created_at == "2025-01-01T00:00:00Z"

    def test_unknown_requirement_type_rejected(self):
        raw = _policy("p1", "accountType", ["member"], requirements=[{"type": "donation", "minCount": 1}])
        assert parse_policies([raw]) == []

    def test_target_values_checked_against_categories(self):
        assert parse_policies([_policy("p1", "membershipCategory", ["platinum"])]) == []
        assert parse_policies([_policy("p2", "accountType", ["superuser"])]) == []
        # categories and account types are separate vocabularies
        assert parse_policies([_policy("p3", "membershipCategory", ["member"])]) == []
        valid = [value.value for value in MembershipCategory]
        [policy] = parse_policies([_policy("p4", "membershipCategory", valid)])
        assert policy.target.values == valid

    def test_unknown_target_type_rejected(self):
        assert parse_policies([_policy("p1", "position", ["president"])]) == []

    def test_load_list_file(self, tmp_path):
        path = tmp_path / "policies.json"
        path.write_text(json.dumps([_policy("p1", "accountType", ["member"])]), encoding="utf-8")
        assert [p.id for p in load_task_policies(path)] == ["p1"]

    def test_load_wrapped_file(self, tmp_path):
        path = tmp_path / "policies.json"
        path.write_text(
            json.dumps({"policies": [_policy("p1", "accountType", ["member"])]}), encoding="utf-8"
        )
        assert len(load_task_policies(path)) == 1

    def test_load_rejects_scalar(self, tmp_path):
        path = tmp_path / "policies.json"
        path.write_text("42", encoding="utf-8")
        with pytest.raises(ValueError):
            load_task_policies(path)


class TestDescribeRequirement:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (
                {"type": "event_participation", "anyType": True, "minCount": 3},
                "Attend at least 3 events of any type",
            ),
            (
                {"type": "course_completion", "anyType": False, "specificTypes": "JCI 101", "minCount": 1},
                "Complete at least 1 courses of these types (JCI 101)",
            ),
            (
                {"type": "event_participation", "anyType": False, "minCount": 2},
                "Attend at least 2 events of these types (to be specified)",
            ),
            (
                {"type": "committee_role", "minCount": 1},
                "Serve on an organising committee or as chair at least 1 times",
            ),
        ],
    )
    def test_descriptions(self, raw, expected):
        policy = MembershipTaskPolicy.model_validate(
            _policy("p1", "accountType", ["member"], requirements=[raw])
        )
        assert describe_requirement(policy.requirements[0]) == expected
