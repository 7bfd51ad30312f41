"""
Task Policy Matcher — selects the membership task policies that apply to a member.

Selection only: a policy applies when it is enabled and its target values
contain the member's account type (for account-type targets) or membership
category (for membership-category targets). Requirements are returned as
declared; measuring a member's progress against them happens elsewhere.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from member_policy.tasks.schema import (
    CommitteeRoleRequirement,
    CountedRequirement,
    MembershipTaskPolicy,
    TargetType,
)

logger = logging.getLogger(__name__)


def parse_policies(raw: Iterable[Any]) -> list[MembershipTaskPolicy]:
    """
    Validate stored policy documents.

    Documents that fail validation are skipped and logged, so one bad policy
    does not hide the others.
    """
    policies: list[MembershipTaskPolicy] = []
    for item in raw:
        if isinstance(item, MembershipTaskPolicy):
            policies.append(item)
            continue
        try:
            policies.append(MembershipTaskPolicy.model_validate(item))
        except ValidationError as exc:
            policy_id = item.get("id") if isinstance(item, Mapping) else None
            logger.warning("Skipping invalid task policy %s: %s", policy_id, exc)
    return policies


def load_task_policies(path: str | Path) -> list[MembershipTaskPolicy]:
    """Load task policies from a JSON file holding a list or {"policies": [...]}."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        data = data.get("policies", [])
    if not isinstance(data, list):
        raise ValueError(f"Task policy file {path} must contain a list of policies")
    return parse_policies(data)


class TaskPolicyMatcher:
    """Matches a member's account type and membership category to task policies."""

    def match(
        self,
        account_type: str | None,
        membership_category: str | None,
        policies: Iterable[MembershipTaskPolicy | Mapping[str, Any]] | None,
    ) -> list[MembershipTaskPolicy]:
        """
        Return the enabled policies targeting this member, in input order.

        Both values must be known; a member whose account type or membership
        category is still unresolved matches nothing.
        """
        if not account_type or not membership_category:
            return []
        if policies is None:
            return []
        if isinstance(policies, (str, bytes, Mapping)) or not isinstance(policies, Iterable):
            logger.warning("Task policies must be a list, got %s", type(policies).__name__)
            return []

        matched = []
        for policy in parse_policies(policies):
            if not policy.is_enabled:
                continue
            if policy.target.type == TargetType.ACCOUNT_TYPE:
                value = account_type
            else:
                value = membership_category
            if value in policy.target.values:
                matched.append(policy)

        logger.debug(
            "Matched %d task policies for %s/%s", len(matched), account_type, membership_category
        )
        return matched


def describe_requirement(requirement: CountedRequirement | CommitteeRoleRequirement) -> str:
    """Human-readable requirement text for task listings."""
    if isinstance(requirement, CommitteeRoleRequirement):
        return f"Serve on an organising committee or as chair at least {requirement.min_count} times"

    noun = "events" if requirement.type == "event_participation" else "courses"
    verb = "Attend" if requirement.type == "event_participation" else "Complete"
    if requirement.any_type:
        return f"{verb} at least {requirement.min_count} {noun} of any type"
    types = requirement.specific_types or "to be specified"
    return f"{verb} at least {requirement.min_count} {noun} of these types ({types})"
