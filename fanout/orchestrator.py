from __future__ import annotations

import asyncio
import logging
from typing import Optional

from messaging.dispatcher import PushDispatcher
from models.notifications import NotificationKind, PushMessage
from ops.metrics import Timer
from ops.structured_logger import token_hint
from repos.invitation_repo import InvitationRepository
from repos.preferences_repo import PreferencesRepository
from repos.token_repo import TokenRepository

log = logging.getLogger("listappi.fanout")

OUTCOME_SENT = "sent"
OUTCOME_DISABLED = "disabled"
OUTCOME_NO_TOKENS = "no_tokens"
OUTCOME_SEND_FAILED = "send_failed"


class FanoutOrchestrator:
    """
    Delivers one notification to one recipient.

    Preference and token read errors propagate to the caller; the caller's
    task wrapper logs them. Nothing here retries.
    """

    def __init__(
        self,
        preferences: Optional[PreferencesRepository] = None,
        tokens: Optional[TokenRepository] = None,
        invitations: Optional[InvitationRepository] = None,
        dispatcher: Optional[PushDispatcher] = None,
    ):
        self.preferences = preferences or PreferencesRepository()
        self.tokens = tokens or TokenRepository()
        self.invitations = invitations or InvitationRepository()
        self.dispatcher = dispatcher or PushDispatcher()

    async def notify(
        self,
        recipient_id: str,
        kind: NotificationKind,
        message: PushMessage,
        invitation_id: Optional[str] = None,
    ) -> str:
        t = Timer()
        ctx = {"recipient_id": recipient_id, "kind": kind.value, "invitation_id": invitation_id}

        prefs = await asyncio.to_thread(self.preferences.get, recipient_id)
        if not prefs.allows(kind):
            log.info("push_disabled_by_settings", extra={"extra": {"event": "push_disabled_by_settings", **ctx}})
            return OUTCOME_DISABLED

        tokens = await asyncio.to_thread(self.tokens.list_tokens, recipient_id)
        if not tokens:
            log.info("push_no_tokens", extra={"extra": {"event": "push_no_tokens", **ctx}})
            return OUTCOME_NO_TOKENS

        result = await asyncio.to_thread(self.dispatcher.send, tokens, message)
        if not result.ok:
            return OUTCOME_SEND_FAILED

        failed = result.failed_tokens
        if failed:
            await self.cleanup_tokens(failed)

        if kind == NotificationKind.INVITE and invitation_id:
            await asyncio.to_thread(self.invitations.mark_notified, invitation_id)

        log.info(
            "push_fanout_sent",
            extra={
                "extra": {
                    "event": "push_fanout_sent",
                    **ctx,
                    "tokens": len(tokens),
                    "failed": len(failed),
                    "duration_ms": t.ms(),
                }
            },
        )
        return OUTCOME_SENT

    async def cleanup_tokens(self, failed_tokens) -> int:
        counts = await asyncio.gather(
            *(asyncio.to_thread(self.tokens.delete_by_token, token) for token in failed_tokens),
            return_exceptions=True,
        )
        deleted = 0
        for token, count in zip(failed_tokens, counts):
            if isinstance(count, Exception):
                log.warning(
                    "token_cleanup_failed",
                    extra={
                        "extra": {
                            "event": "token_cleanup_failed",
                            "token": token_hint(token),
                            "error_type": type(count).__name__,
                            "message": str(count),
                        }
                    },
                )
                continue
            deleted += count
        log.info("token_cleanup", extra={"extra": {"event": "token_cleanup", "failed_tokens": len(failed_tokens), "deleted": deleted}})
        return deleted
