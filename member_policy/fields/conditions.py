"""
Condition Evaluator — named record predicates that lock fields.

Each lock condition is a pure predicate over a read-only view of the member
record. Predicates never raise on missing or malformed data: anything they
cannot read simply does not satisfy the condition.

Stored member documents keep most attributes under a nested ``profile``
mapping, while callers frequently pass flattened snapshots. RecordView reads
the top level first and falls back to ``profile``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from member_policy.fields.schema import (
    LOCK_REASON_MESSAGES,
    ConditionOutcome,
    ConditionSpec,
    LockReason,
)

logger = logging.getLogger(__name__)

_MISSING = object()

Predicate = Callable[["RecordView", str], bool]


class RecordView:
    """Read-only key lookup over a record snapshot with defined absent-key semantics."""

    __slots__ = ("_data",)

    def __init__(self, record: Mapping[str, Any] | None) -> None:
        self._data = record if isinstance(record, Mapping) else {}

    def get(self, key: str, default: Any = None) -> Any:
        value = self._data.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
        profile = self._data.get("profile")
        if isinstance(profile, Mapping):
            value = profile.get(key, _MISSING)
            if value is not _MISSING and value is not None:
                return value
        return default

    def flag(self, key: str) -> bool:
        """True only for a real boolean True or the string 'true'."""
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return False

    def text(self, *keys: str) -> str | None:
        """First string value among ``keys``, stripped."""
        for key in keys:
            value = self.get(key)
            if isinstance(value, str):
                return value.strip()
        return None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key, _MISSING) is not _MISSING


# ════════════════════════════════════════════════════════════════
# Built-in Predicates
# ════════════════════════════════════════════════════════════════


def senator_id_verified(record: RecordView, field_id: str) -> bool:
    return record.flag("senatorVerified")


def introducer_confirmed(record: RecordView, field_id: str) -> bool:
    return record.flag("introducerConfirmed")


def tshirt_requested(record: RecordView, field_id: str) -> bool:
    status = record.text("tshirtReceivingStatus", "tshirtStatus")
    return status is not None and status.lower() == "requested"


def admin_locked(record: RecordView, field_id: str) -> bool:
    """The field is listed in the record's ``lockedFields``."""
    locked = record.get("lockedFields")
    if not isinstance(locked, (list, tuple, set, frozenset)):
        return False
    return any(item == field_id for item in locked)


class ConditionRegistry:
    """Name → predicate lookup. Populated at startup, read-only afterwards."""

    def __init__(self, predicates: Mapping[str, Predicate] | None = None) -> None:
        self._predicates: dict[str, Predicate] = dict(predicates or {})

    @classmethod
    def default(cls) -> ConditionRegistry:
        return cls(DEFAULT_PREDICATES)

    def register(self, name: str, predicate: Predicate) -> None:
        if name in self._predicates:
            raise ValueError(f"Predicate already registered: {name}")
        self._predicates[name] = predicate

    def get(self, name: str) -> Predicate | None:
        return self._predicates.get(name)

    def names(self) -> list[str]:
        return sorted(self._predicates)

    def __contains__(self, name: object) -> bool:
        return name in self._predicates


DEFAULT_PREDICATES: dict[str, Predicate] = {
    "senator_id_verified": senator_id_verified,
    "introducer_confirmed": introducer_confirmed,
    "tshirt_requested": tshirt_requested,
    "admin_locked": admin_locked,
}


class ConditionEvaluator:
    """Evaluates declared lock conditions against a record snapshot."""

    def __init__(self, registry: ConditionRegistry | None = None) -> None:
        self.registry = registry or ConditionRegistry.default()

    def evaluate(
        self,
        condition: ConditionSpec | str,
        record: Mapping[str, Any] | RecordView | None,
        field_id: str = "",
    ) -> ConditionOutcome:
        """
        Evaluate one condition.

        ``condition`` is a declared ConditionSpec or a condition name. A name
        must be a LockReason value; its predicate is registered under the same
        name. Unknown names and unregistered predicates never satisfy. A
        predicate that raises is treated as satisfied with EVALUATION_FAILED so
        the field fails closed.
        """
        if isinstance(condition, str):
            try:
                reason = LockReason(condition)
            except ValueError:
                logger.warning("Unknown condition %s on field %s", condition, field_id)
                return ConditionOutcome(satisfied=False)
            condition = ConditionSpec(reason=reason, predicate=condition)

        view = record if isinstance(record, RecordView) else RecordView(record)
        predicate = self.registry.get(condition.predicate)
        if predicate is None:
            logger.warning("Unknown predicate %s on field %s", condition.predicate, field_id)
            return ConditionOutcome(satisfied=False)

        try:
            satisfied = bool(predicate(view, field_id))
        except Exception:
            logger.exception(
                "Predicate %s failed for field %s (reason %s)",
                condition.predicate,
                field_id,
                condition.reason.value,
            )
            return ConditionOutcome(
                satisfied=True,
                reason=LockReason.EVALUATION_FAILED,
                message=LOCK_REASON_MESSAGES[LockReason.EVALUATION_FAILED],
            )

        if not satisfied:
            return ConditionOutcome(satisfied=False)
        return ConditionOutcome(
            satisfied=True,
            reason=condition.reason,
            message=LOCK_REASON_MESSAGES.get(condition.reason),
        )

    def first_satisfied(
        self,
        conditions: Iterable[ConditionSpec],
        record: Mapping[str, Any] | RecordView | None,
        field_id: str = "",
    ) -> ConditionOutcome | None:
        """Walk conditions in declaration order; the first satisfied one wins."""
        view = record if isinstance(record, RecordView) else RecordView(record)
        for condition in conditions:
            outcome = self.evaluate(condition, view, field_id)
            if outcome.satisfied:
                return outcome
        return None
