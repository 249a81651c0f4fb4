"""
Raid Warden - Records and Result Types
======================================

Stored records (channel snapshots, member role backups) and the
transient result values returned by quarantine, reconcile and the raid
response steps.

DESIGN:
    Stored records round-trip through JSON with camelCase keys so the
    blobs in the snapshot store match the documented wire format.
    Response paths report outcomes as values instead of raising, each
    failure tagged with one ErrorKind.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Error Taxonomy
# =============================================================================

class ErrorKind(str, Enum):
    """How a failed operation should be treated by its caller."""

    REFUSED_BY_POLICY = "RefusedByPolicy"        # Never retried
    EXTERNAL_CALL_FAILED = "ExternalCallFailed"  # Logged, reported to alert channel
    NOT_FOUND = "NotFound"                       # Reported, treated as a no-op
    DELIVERY_FAILED = "DeliveryFailed"           # Operator DM failed, swallowed


class QuarantineReason(str, Enum):
    """Reason codes carried by QuarantineOutcome."""

    OK = "Ok"
    MEMBER_ABSENT = "MemberAbsent"
    BOT_ACCOUNT = "BotAccount"
    GUILD_OWNER = "GuildOwner"
    PROTECTED = "Protected"
    ROLE_UNAVAILABLE = "RoleUnavailable"
    BACKUP_FAILED = "BackupFailed"
    ROLE_ASSIGN_FAILED = "RoleAssignFailed"
    NO_BACKUP = "NoBackup"
    MEMBER_NOT_FOUND = "MemberNotFound"
    RESTORE_FAILED = "RestoreFailed"

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """Taxonomy bucket for this reason, None for OK."""
        return _REASON_KINDS.get(self)


_REASON_KINDS = {
    QuarantineReason.MEMBER_ABSENT: ErrorKind.REFUSED_BY_POLICY,
    QuarantineReason.BOT_ACCOUNT: ErrorKind.REFUSED_BY_POLICY,
    QuarantineReason.GUILD_OWNER: ErrorKind.REFUSED_BY_POLICY,
    QuarantineReason.PROTECTED: ErrorKind.REFUSED_BY_POLICY,
    QuarantineReason.ROLE_UNAVAILABLE: ErrorKind.EXTERNAL_CALL_FAILED,
    QuarantineReason.BACKUP_FAILED: ErrorKind.EXTERNAL_CALL_FAILED,
    QuarantineReason.ROLE_ASSIGN_FAILED: ErrorKind.EXTERNAL_CALL_FAILED,
    QuarantineReason.RESTORE_FAILED: ErrorKind.EXTERNAL_CALL_FAILED,
    QuarantineReason.NO_BACKUP: ErrorKind.NOT_FOUND,
    QuarantineReason.MEMBER_NOT_FOUND: ErrorKind.NOT_FOUND,
}


# =============================================================================
# Guild Channel Snapshot
# =============================================================================

@dataclass
class PermissionOverwriteRecord:
    """One channel permission overwrite as captured at snapshot time."""

    principal_id: int
    allow_mask: int
    deny_mask: int
    principal_kind: str  # "role" or "member"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principalId": str(self.principal_id),
            "allowMask": str(self.allow_mask),
            "denyMask": str(self.deny_mask),
            "principalKind": self.principal_kind,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PermissionOverwriteRecord":
        return cls(
            principal_id=int(data["principalId"]),
            allow_mask=int(data.get("allowMask", 0)),
            deny_mask=int(data.get("denyMask", 0)),
            principal_kind=data.get("principalKind", "role"),
        )


@dataclass
class ChannelRecord:
    """A channel as captured at snapshot time."""

    id: int
    name: str
    kind: str
    parent_id: Optional[int] = None
    position: int = 0
    permission_overwrites: List[PermissionOverwriteRecord] = field(default_factory=list)

    @property
    def identity(self) -> tuple:
        """Reconciliation identity: (name, kind)."""
        return (self.name, self.kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "kind": self.kind,
            "parentId": str(self.parent_id) if self.parent_id is not None else None,
            "position": self.position,
            "permissionOverwrites": [o.to_dict() for o in self.permission_overwrites],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelRecord":
        parent = data.get("parentId")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            kind=data["kind"],
            parent_id=int(parent) if parent is not None else None,
            position=int(data.get("position", 0)),
            permission_overwrites=[
                PermissionOverwriteRecord.from_dict(o)
                for o in data.get("permissionOverwrites", [])
            ],
        )


@dataclass
class GuildChannelSnapshot:
    """Point-in-time channel topology of one guild."""

    taken_at: int  # ms since epoch
    guild_id: int
    channels: List[ChannelRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "takenAt": self.taken_at,
            "guildId": str(self.guild_id),
            "channels": [c.to_dict() for c in self.channels],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuildChannelSnapshot":
        return cls(
            taken_at=int(data.get("takenAt", 0)),
            guild_id=int(data["guildId"]),
            channels=[ChannelRecord.from_dict(c) for c in data.get("channels", [])],
        )


# =============================================================================
# Member Role Backup
# =============================================================================

@dataclass
class MemberRoleBackup:
    """
    Roles a member held right before being quarantined.

    restored_at is set once the roles have been given back; the record is
    kept so a retried restore applies the same set again.
    """

    taken_at: int  # ms since epoch
    roles: List[int] = field(default_factory=list)
    restored_at: Optional[int] = None

    @property
    def is_restored(self) -> bool:
        return self.restored_at is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "takenAt": self.taken_at,
            "roles": [str(r) for r in self.roles],
        }
        if self.restored_at is not None:
            data["restoredAt"] = self.restored_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemberRoleBackup":
        restored_at = data.get("restoredAt")
        return cls(
            taken_at=int(data.get("takenAt", 0)),
            roles=[int(r) for r in data.get("roles", [])],
            restored_at=int(restored_at) if restored_at is not None else None,
        )


# =============================================================================
# Result Values
# =============================================================================

@dataclass
class QuarantineOutcome:
    """Result of quarantine() and restore_roles()."""

    ok: bool
    reason: QuarantineReason
    previous_roles: Optional[List[int]] = None
    detail: Optional[str] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return None if self.ok else self.reason.error_kind

    @classmethod
    def refused(cls, reason: QuarantineReason) -> "QuarantineOutcome":
        return cls(ok=False, reason=reason)


@dataclass
class ReconcileResult:
    """Result of a channel reconciliation pass."""

    recreated: int = 0
    missing: List[str] = field(default_factory=list)
    has_backup: bool = True


@dataclass
class StepResult:
    """Outcome of one isolated raid response step."""

    step: str
    ok: bool
    error_kind: Optional[ErrorKind] = None
    detail: Optional[str] = None


__all__ = [
    "ErrorKind",
    "QuarantineReason",
    "PermissionOverwriteRecord",
    "ChannelRecord",
    "GuildChannelSnapshot",
    "MemberRoleBackup",
    "QuarantineOutcome",
    "ReconcileResult",
    "StepResult",
]
