"""
Policy Catalog — static, declarative table of field permission policies.

The catalog is the single source of truth for which member fields are
admin-only, which are read-only, and which lock once the record reaches a
certain state. It is built once at startup, validated against the condition
registry, and never modified afterwards.

Catalogs can also be loaded from JSON:

    {
      "fields": [
        {"field": "status", "baseline": "admin_only"},
        {"field": "senatorId", "baseline": "read_write",
         "conditions": [{"reason": "senator_id_verified", "predicate": "senator_id_verified"}]}
      ],
      "groups": [{"key": "jci_membership", "label": "Membership", "fields": ["status"]}]
    }
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, Field, ValidationError

from member_policy.fields.conditions import ConditionRegistry
from member_policy.fields.schema import (
    ConditionSpec,
    FieldGroup,
    LockReason,
    PermissionLevel,
    PolicyEntry,
)

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Raised when a policy catalog is misconfigured."""


# ════════════════════════════════════════════════════════════════
# Default Membership Catalog
# ════════════════════════════════════════════════════════════════

ADMIN_ONLY_FIELDS = (
    "status",
    "level",
    "memberId",
    "accountType",
    "whatsappGroup",
    "tshirtReceivingStatus",
    "jciPosition",
    "positionStartDate",
    "positionEndDate",
)

TSHIRT_FIELDS = ("nameToBeEmbroidered", "shirtSize", "jacketSize", "cutting")

_ADMIN_LOCK = ConditionSpec(reason=LockReason.ADMIN_LOCKED, predicate="admin_locked")


def _lockable(field_id: str, reason: LockReason, description: str) -> PolicyEntry:
    return PolicyEntry(
        field_id=field_id,
        baseline=PermissionLevel.READ_WRITE,
        conditions=(ConditionSpec(reason=reason, predicate=reason.value), _ADMIN_LOCK),
        description=description,
    )


DEFAULT_POLICY_ENTRIES: tuple[PolicyEntry, ...] = (
    *(
        PolicyEntry(
            field_id=field_id,
            baseline=PermissionLevel.ADMIN_ONLY,
            description="Membership administration field",
        )
        for field_id in ADMIN_ONLY_FIELDS
    ),
    PolicyEntry(
        field_id="nricOrPassport",
        baseline=PermissionLevel.READ_ONLY,
        description="Identity document captured at onboarding",
    ),
    _lockable("senatorId", LockReason.SENATOR_ID_VERIFIED, "Locked once the senator ID is verified"),
    _lockable(
        "introducerName",
        LockReason.INTRODUCER_CONFIRMED,
        "Locked once the introducer has confirmed",
    ),
    *(
        _lockable(field_id, LockReason.TSHIRT_REQUESTED, "Locked once the T-shirt is requested")
        for field_id in TSHIRT_FIELDS
    ),
)

DEFAULT_FIELD_GROUPS: tuple[FieldGroup, ...] = (
    FieldGroup(
        key="personal_identity",
        label="Personal identity",
        fields=("name", "fullNameNric", "gender", "race", "birthDate", "nricOrPassport", "address"),
    ),
    FieldGroup(key="contact", label="Contact", fields=("email", "phone", "whatsappGroup")),
    FieldGroup(key="personal_interests", label="Interests", fields=("hobbies",)),
    FieldGroup(key="files", label="Files", fields=("profilePhotoUrl",)),
    FieldGroup(
        key="company_info",
        label="Company",
        fields=(
            "company",
            "departmentAndPosition",
            "industryDetail",
            "categories",
            "ownIndustry",
            "companyIntro",
            "acceptInternationalBusiness",
            "interestedIndustries",
        ),
    ),
    FieldGroup(key="social_network", label="Social network", fields=("linkedin", "companyWebsite")),
    FieldGroup(
        key="jci_membership",
        label="Membership",
        fields=(
            "accountType",
            "status",
            "level",
            "senatorId",
            "memberId",
            "introducerName",
            "jciEventInterests",
            "jciBenefitsExpectation",
            "activeMemberHow",
            "fiveYearsVision",
        ),
    ),
    FieldGroup(
        key="clothing_info",
        label="Clothing",
        fields=(*TSHIRT_FIELDS, "tshirtReceivingStatus"),
    ),
    FieldGroup(
        key="jci_position",
        label="Position",
        fields=("jciPosition", "positionStartDate", "positionEndDate"),
    ),
)


# ════════════════════════════════════════════════════════════════
# Catalog
# ════════════════════════════════════════════════════════════════


class PolicyCatalog:
    """
    Immutable lookup table of field policies.

    Construction validates every entry against the condition registry so a
    catalog that references an undefined predicate never reaches evaluation.
    """

    def __init__(
        self,
        entries: Iterable[PolicyEntry],
        registry: ConditionRegistry | None = None,
        groups: Iterable[FieldGroup] = (),
    ) -> None:
        self.registry = registry or ConditionRegistry.default()
        table: dict[str, PolicyEntry] = {}
        for entry in entries:
            self._validate_entry(entry)
            if entry.field_id in table:
                raise CatalogError(f"Duplicate policy for field: {entry.field_id}")
            table[entry.field_id] = entry
        self._entries = MappingProxyType(table)

        group_table: dict[str, FieldGroup] = {}
        for group in groups:
            if group.key in group_table:
                raise CatalogError(f"Duplicate field group: {group.key}")
            group_table[group.key] = group
        self._groups = MappingProxyType(group_table)

        logger.info(
            "Policy catalog loaded: %d fields, %d groups", len(self._entries), len(self._groups)
        )

    def _validate_entry(self, entry: PolicyEntry) -> None:
        if entry.baseline == PermissionLevel.LOCKED:
            raise CatalogError(
                f"Field {entry.field_id} declares a LOCKED baseline; "
                f"locking must come from a condition"
            )
        if entry.baseline == PermissionLevel.ADMIN_ONLY and entry.conditions:
            # A member would see ADMIN_ONLY where an admin sees LOCKED.
            raise CatalogError(
                f"Field {entry.field_id} is admin-only and cannot also declare lock conditions"
            )
        seen: set[LockReason] = set()
        for condition in entry.conditions:
            if condition.predicate not in self.registry:
                raise CatalogError(
                    f"Field {entry.field_id} references undefined predicate "
                    f"'{condition.predicate}'"
                )
            if condition.reason in seen:
                raise CatalogError(
                    f"Field {entry.field_id} declares lock reason "
                    f"'{condition.reason.value}' more than once"
                )
            seen.add(condition.reason)

    @classmethod
    def default(cls, registry: ConditionRegistry | None = None) -> PolicyCatalog:
        """The membership profile catalog."""
        return cls(DEFAULT_POLICY_ENTRIES, registry=registry, groups=DEFAULT_FIELD_GROUPS)

    def lookup(self, field_id: str) -> PolicyEntry | None:
        return self._entries.get(field_id)

    def entry_for(self, field_id: str) -> PolicyEntry:
        """The catalogued entry, or an unrestricted default for unknown fields."""
        entry = self._entries.get(field_id)
        if entry is None:
            return PolicyEntry(field_id=field_id)
        return entry

    def fields(self) -> list[str]:
        return list(self._entries)

    def admin_only_fields(self) -> list[str]:
        return [
            f for f, e in self._entries.items() if e.baseline == PermissionLevel.ADMIN_ONLY
        ]

    def lockable_fields(self) -> list[str]:
        return [f for f, e in self._entries.items() if e.conditions]

    @property
    def groups(self) -> Mapping[str, FieldGroup]:
        return self._groups

    def group(self, key: str) -> FieldGroup | None:
        return self._groups.get(key)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ════════════════════════════════════════════════════════════════
# JSON Loading
# ════════════════════════════════════════════════════════════════


class _FieldDocument(BaseModel):
    field: str
    baseline: PermissionLevel = PermissionLevel.READ_WRITE
    conditions: list[ConditionSpec] = Field(default_factory=list)
    description: str = ""


class _CatalogDocument(BaseModel):
    fields: list[_FieldDocument] = Field(default_factory=list)
    groups: list[FieldGroup] = Field(default_factory=list)


def catalog_from_dict(
    data: Mapping, registry: ConditionRegistry | None = None
) -> PolicyCatalog:
    """Build a validated catalog from a parsed JSON document."""
    try:
        document = _CatalogDocument.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(f"Invalid catalog document: {exc}") from exc

    entries = [
        PolicyEntry(
            field_id=doc.field,
            baseline=doc.baseline,
            conditions=tuple(doc.conditions),
            description=doc.description,
        )
        for doc in document.fields
    ]
    return PolicyCatalog(entries, registry=registry, groups=document.groups)


def load_catalog(path: str | Path, registry: ConditionRegistry | None = None) -> PolicyCatalog:
    """
    Load a policy catalog from a JSON file.

    Raises:
        CatalogError: if the file is not valid JSON or the catalog is misconfigured.
        OSError: if the file cannot be read.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise CatalogError(f"Catalog {path} must be a JSON object")
    return catalog_from_dict(data, registry=registry)
