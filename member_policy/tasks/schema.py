"""
Task Policy Schema — Pydantic models for membership task policies.

A task policy targets members by account type or by membership category and
lists the requirements they are expected to meet (event participation,
course completion, committee roles). Stored policy documents use camelCase
keys; the models accept both the stored keys and the Python field names.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from member_policy.fields.schema import Role


class MembershipCategory(str, enum.Enum):
    """Membership categories a task policy may target."""

    ACTIVE = "active"
    ASSOCIATE = "associate"
    HONORARY = "honorary"
    AFFILIATE = "affiliate"
    VISITOR = "visitor"
    ALUMNI = "alumni"
    CORPORATE = "corporate"
    STUDENT = "student"


class TargetType(str, enum.Enum):
    ACCOUNT_TYPE = "accountType"
    MEMBERSHIP_CATEGORY = "membershipCategory"


class _StoredModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CountedRequirement(_StoredModel):
    """Attend events or complete courses, of any type or of specific types."""

    type: Literal["event_participation", "course_completion"]
    any_type: bool = Field(default=True, alias="anyType")
    specific_types: str | None = Field(
        default=None,
        alias="specificTypes",
        description="Comma separated list of event or course types",
    )
    min_count: int = Field(ge=1, alias="minCount")

    @property
    def specific_type_list(self) -> list[str]:
        if not self.specific_types:
            return []
        return [t.strip() for t in self.specific_types.split(",") if t.strip()]


class CommitteeRoleRequirement(_StoredModel):
    """Serve on an organising committee (or as chair) a minimum number of times."""

    type: Literal["committee_role"]
    min_count: int = Field(ge=1, alias="minCount")


TaskRequirement = Annotated[
    Union[CountedRequirement, CommitteeRoleRequirement],
    Field(discriminator="type"),
]


class TaskTarget(_StoredModel):
    """Account types or membership categories a policy applies to."""

    type: TargetType
    values: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _known_values(self) -> TaskTarget:
        if self.type == TargetType.ACCOUNT_TYPE:
            allowed = {role.value for role in Role}
        else:
            allowed = {category.value for category in MembershipCategory}
        unknown = [value for value in self.values if value not in allowed]
        if unknown:
            raise ValueError(f"Unknown {self.type.value} target values: {unknown}")
        return self


class MembershipTaskPolicy(_StoredModel):
    """An enable-able rule associating a target category with required tasks."""

    id: str
    name: str
    description: str | None = None
    is_enabled: bool = Field(default=False, alias="isEnabled")
    target: TaskTarget
    requirements: list[TaskRequirement] = Field(default_factory=list)
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")
