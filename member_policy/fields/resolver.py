"""
Permission Resolver — the single authority on whether a field may be edited.

Every profile form and member page asks this resolver instead of branching on
the viewer's role. A decision combines three inputs:

- ROLE GATE: admin-only fields are closed to anyone below admin, checked first
- DATA LOCK: a satisfied lock condition closes the field for every role,
  developer included
- BASELINE: otherwise the field's catalogued level applies

Resolution never raises. Anything the resolver cannot evaluate cleanly ends
in the most restrictive result, LOCKED with EVALUATION_FAILED.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from member_policy.fields.catalog import PolicyCatalog
from member_policy.fields.conditions import ConditionEvaluator, RecordView
from member_policy.fields.schema import (
    ADMIN_ONLY_MESSAGE,
    LOCK_REASON_MESSAGES,
    READ_ONLY_MESSAGE,
    LockReason,
    PermissionLevel,
    PermissionResult,
    Role,
)

logger = logging.getLogger(__name__)


def can_administer(role: Any) -> bool:
    """Whether the role may edit admin-only fields."""
    return Role.parse(role).is_admin


class PermissionResolver:
    """
    Resolves field permissions against an injected policy catalog.

    Stateless between calls: the same (field, role, record) always yields the
    same result, and one resolver may be shared across threads.
    """

    def __init__(
        self,
        catalog: PolicyCatalog,
        evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self.catalog = catalog
        self.evaluator = evaluator or ConditionEvaluator(catalog.registry)

    def resolve(self, field_id: Any, role: Any, record: Mapping[str, Any] | None) -> PermissionResult:
        """
        Decide whether ``role`` may edit ``field_id`` on ``record``.

        Args:
            field_id: Field identifier; non-strings are resolved by their str().
            role: A Role or role string; unrecognised values act as guest.
            record: Member record snapshot, or None.

        Returns:
            PermissionResult, never an exception.
        """
        field_id = field_id if isinstance(field_id, str) else str(field_id)
        try:
            result = self._resolve(field_id, Role.parse(role), record)
        except Exception:
            logger.exception("Permission resolution failed for field %s", field_id)
            result = self._failed(field_id)
        logger.debug(
            "Field %s for %s: %s (editable=%s, reason=%s)",
            field_id,
            role,
            result.permission.value,
            result.editable,
            result.lock_reason.value if result.lock_reason else None,
        )
        return result

    def _resolve(self, field_id: str, role: Role, record: Any) -> PermissionResult:
        entry = self.catalog.lookup(field_id)
        if entry is None:
            return PermissionResult(
                field_id=field_id, editable=True, permission=PermissionLevel.READ_WRITE
            )

        # Role gate before any data lock
        if entry.baseline == PermissionLevel.ADMIN_ONLY and not role.is_admin:
            return PermissionResult(
                field_id=field_id,
                editable=False,
                permission=PermissionLevel.ADMIN_ONLY,
                message=ADMIN_ONLY_MESSAGE,
            )

        # Only a lock condition needs the record; without one the baseline stands
        if entry.conditions and record is not None and not isinstance(record, Mapping):
            logger.warning(
                "Record for field %s is a %s, not a mapping", field_id, type(record).__name__
            )
            return self._failed(field_id)

        outcome = self.evaluator.first_satisfied(entry.conditions, RecordView(record), field_id)
        if outcome is not None:
            return PermissionResult(
                field_id=field_id,
                editable=False,
                permission=PermissionLevel.LOCKED,
                lock_reason=outcome.reason,
                message=outcome.message,
            )

        if entry.baseline == PermissionLevel.READ_ONLY:
            return PermissionResult(
                field_id=field_id,
                editable=False,
                permission=PermissionLevel.READ_ONLY,
                message=READ_ONLY_MESSAGE,
            )

        # READ_WRITE, or ADMIN_ONLY for an admin role
        return PermissionResult(field_id=field_id, editable=True, permission=entry.baseline)

    @staticmethod
    def _failed(field_id: str) -> PermissionResult:
        return PermissionResult(
            field_id=field_id,
            editable=False,
            permission=PermissionLevel.LOCKED,
            lock_reason=LockReason.EVALUATION_FAILED,
            message=LOCK_REASON_MESSAGES[LockReason.EVALUATION_FAILED],
        )

    # ── Batch and convenience queries ─────────────────────────

    def resolve_many(
        self, field_ids: Iterable[str], role: Any, record: Mapping[str, Any] | None
    ) -> dict[str, PermissionResult]:
        return {field_id: self.resolve(field_id, role, record) for field_id in field_ids}

    def resolve_group(
        self, group_key: str, role: Any, record: Mapping[str, Any] | None
    ) -> dict[str, PermissionResult]:
        """Resolve every field of a profile section. Unknown groups resolve to {}."""
        group = self.catalog.group(group_key)
        if group is None:
            return {}
        return self.resolve_many(group.fields, role, record)

    def editable_fields(
        self, field_ids: Iterable[str], role: Any, record: Mapping[str, Any] | None
    ) -> list[str]:
        return [f for f in field_ids if self.resolve(f, role, record).editable]

    def is_locked(self, field_id: str, record: Mapping[str, Any] | None) -> bool:
        """Whether a data lock applies, independent of the viewer's role."""
        return self.resolve(field_id, Role.DEVELOPER, record).is_locked

    def lock_reason(self, field_id: str, record: Mapping[str, Any] | None) -> LockReason | None:
        return self.resolve(field_id, Role.DEVELOPER, record).lock_reason
