"""
Field Policy Schema — Pydantic models and enumerations for field permissions.

These are the canonical data structures shared by the policy catalog, the
condition evaluator and the permission resolver:

- Role: viewer privilege, totally ordered guest < member < moderator < admin < developer
- PermissionLevel: how editable a field is, from most to least permissive
- LockReason: why a field is currently locked
- PolicyEntry: static policy for one field (baseline + ordered lock conditions)
- PermissionResult: the decision returned for one (field, role, record) call
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════
# Enumerations
# ════════════════════════════════════════════════════════════════


class Role(str, enum.Enum):
    """Account type of the viewer, ordered by privilege."""

    GUEST = "guest"
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    DEVELOPER = "developer"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    @property
    def is_admin(self) -> bool:
        """Admin and developer accounts may edit admin-only fields."""
        return self in (Role.ADMIN, Role.DEVELOPER)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Any) -> Role:
        """
        Resolve a caller-supplied role value.

        Only the exact role values are accepted. Anything else, including
        differently cased or padded strings, resolves to GUEST.
        """
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        logger.warning("Unrecognised role %r, treating as guest", value)
        return cls.GUEST


_ROLE_ORDER = [Role.GUEST, Role.MEMBER, Role.MODERATOR, Role.ADMIN, Role.DEVELOPER]


class PermissionLevel(str, enum.Enum):
    """Field permission levels, most permissive first."""

    READ_WRITE = "read_write"
    READ_ONLY = "read_only"
    ADMIN_ONLY = "admin_only"
    LOCKED = "locked"

    @property
    def restrictiveness(self) -> int:
        """0 for READ_WRITE up to 3 for LOCKED."""
        return list(PermissionLevel).index(self)


class LockReason(str, enum.Enum):
    """Why a field is locked for the current record."""

    SENATOR_ID_VERIFIED = "senator_id_verified"
    INTRODUCER_CONFIRMED = "introducer_confirmed"
    TSHIRT_REQUESTED = "tshirt_requested"
    ADMIN_LOCKED = "admin_locked"
    EVALUATION_FAILED = "evaluation_failed"  # fail-closed marker


LOCK_REASON_MESSAGES: dict[LockReason, str] = {
    LockReason.SENATOR_ID_VERIFIED: "Senator ID has been verified",
    LockReason.INTRODUCER_CONFIRMED: "Introducer has been confirmed",
    LockReason.TSHIRT_REQUESTED: "T-shirt already requested, sizes can no longer change",
    LockReason.ADMIN_LOCKED: "Field locked by an administrator",
    LockReason.EVALUATION_FAILED: "Permission could not be determined, field locked",
}

ADMIN_ONLY_MESSAGE = "admin-only field"
READ_ONLY_MESSAGE = "read-only field"


# ════════════════════════════════════════════════════════════════
# Policy Models
# ════════════════════════════════════════════════════════════════


class ConditionSpec(BaseModel):
    """A lock condition declared on a field: the reason it reports and the predicate name."""

    model_config = ConfigDict(frozen=True)

    reason: LockReason
    predicate: str = Field(description="Name of a registered record predicate")


class PolicyEntry(BaseModel):
    """
    Static permission policy for a single field.

    Conditions are evaluated in declaration order; the first satisfied one
    locks the field.
    """

    model_config = ConfigDict(frozen=True)

    field_id: str
    baseline: PermissionLevel = PermissionLevel.READ_WRITE
    conditions: tuple[ConditionSpec, ...] = ()
    description: str = ""


class FieldGroup(BaseModel):
    """A named group of fields, mirroring a section of the profile form."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    fields: tuple[str, ...] = ()


# ════════════════════════════════════════════════════════════════
# Evaluation Results
# ════════════════════════════════════════════════════════════════


class ConditionOutcome(BaseModel):
    """Result of evaluating one named condition against a record."""

    model_config = ConfigDict(frozen=True)

    satisfied: bool
    reason: LockReason | None = None
    message: str | None = None


class PermissionResult(BaseModel):
    """Decision for one field, one role and one record snapshot."""

    model_config = ConfigDict(frozen=True)

    field_id: str
    editable: bool
    permission: PermissionLevel
    lock_reason: LockReason | None = None
    message: str | None = None

    @property
    def is_locked(self) -> bool:
        return self.permission == PermissionLevel.LOCKED
