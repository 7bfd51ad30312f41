"""Decision Presenter — turns a PermissionResult into display metadata for the UI layer."""

from __future__ import annotations

from dataclasses import dataclass

from member_policy.fields.schema import (
    ADMIN_ONLY_MESSAGE,
    READ_ONLY_MESSAGE,
    PermissionLevel,
    PermissionResult,
)

_DEFAULT_MESSAGES = {
    PermissionLevel.READ_ONLY: READ_ONLY_MESSAGE,
    PermissionLevel.LOCKED: "field locked",
    PermissionLevel.ADMIN_ONLY: ADMIN_ONLY_MESSAGE,
}

_ICONS = {
    PermissionLevel.READ_ONLY: "eye",
    PermissionLevel.LOCKED: "lock",
    PermissionLevel.ADMIN_ONLY: "lock",
}

_TONES = {
    PermissionLevel.READ_ONLY: "info",
    PermissionLevel.LOCKED: "warning",
    PermissionLevel.ADMIN_ONLY: "error",
}


@dataclass(frozen=True)
class Presentation:
    """What a form should show next to a field. All None when the field is editable."""

    icon: str | None = None
    tone: str | None = None
    message: str | None = None

    @property
    def visible(self) -> bool:
        return self.message is not None


def present(result: PermissionResult) -> Presentation:
    if result.editable:
        return Presentation()
    return Presentation(
        icon=_ICONS.get(result.permission),
        tone=_TONES.get(result.permission, "info"),
        message=result.message or _DEFAULT_MESSAGES.get(result.permission, ""),
    )
