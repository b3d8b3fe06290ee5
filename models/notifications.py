from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel


class NotificationKind(str, Enum):
    INVITE = "invite"
    UPDATE = "update"


class NotificationPreferences(BaseModel):
    """Per-user push preferences; a missing document or field means enabled."""

    pushEnabled: bool = True
    pushInvites: bool = True
    pushUpdates: bool = True

    def allows(self, kind: NotificationKind) -> bool:
        if not self.pushEnabled:
            return False
        if kind == NotificationKind.INVITE:
            return self.pushInvites
        if kind == NotificationKind.UPDATE:
            return self.pushUpdates
        return True


@dataclass
class PushMessage:
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)


@dataclass
class TokenOutcome:
    token: str
    success: bool
    error: str = ""


@dataclass
class SendResult:
    # ok is False when the bulk call itself failed; per-token outcomes are then empty.
    ok: bool
    outcomes: List[TokenOutcome] = field(default_factory=list)
    error_type: str = ""
    message: str = ""

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed_tokens(self) -> List[str]:
        return [o.token for o in self.outcomes if not o.success]


@dataclass(frozen=True)
class InvitationTask:
    invitation_id: str
    to_user_id: str
    item_name: str = ""
    item_id: str = ""
    item_type: str = ""


@dataclass(frozen=True)
class MembershipTask:
    list_id: str
    list_name: str
    added_ids: Tuple[str, ...]
    recipients: Tuple[str, ...]


@dataclass(frozen=True)
class ShoplistItemTask:
    item_id: str
    item_path: str
    shoplist_path: str
    text: str = ""
    created_by: str = ""
