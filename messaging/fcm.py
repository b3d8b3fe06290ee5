from __future__ import annotations

import logging
from typing import List, Optional

import firebase_admin
from firebase_admin import messaging

from config.settings import settings
from models.notifications import PushMessage, SendResult, TokenOutcome

log = logging.getLogger("listappi.fcm")


def build_multicast(tokens: List[str], message: PushMessage, default_title: Optional[str] = None,
                    channel_id: Optional[str] = None) -> messaging.MulticastMessage:
    title = message.title or default_title or settings.PUSH_DEFAULT_TITLE
    body = message.body or ""
    # FCM data payloads must be string -> string.
    data = {str(k): "" if v is None else str(v) for k, v in (message.data or {}).items()}
    data.update({"title": title, "body": body})

    return messaging.MulticastMessage(
        tokens=list(tokens),
        notification=messaging.Notification(title=title, body=body),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(
                channel_id=channel_id or settings.ANDROID_CHANNEL_ID,
                title=title,
                body=body,
            ),
        ),
        apns=messaging.APNSConfig(headers={"apns-priority": "10"}),
        data=data,
    )


class FcmClient:
    """Bulk sender over Firebase Cloud Messaging. Raises on transport errors."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    def send_multicast(self, tokens: List[str], message: PushMessage) -> SendResult:
        batch = messaging.send_each_for_multicast(build_multicast(tokens, message), app=self.app)
        outcomes = []
        for token, resp in zip(tokens, batch.responses):
            err = "" if resp.success else (type(resp.exception).__name__ if resp.exception else "unknown")
            outcomes.append(TokenOutcome(token=token, success=bool(resp.success), error=err))
        return SendResult(ok=True, outcomes=outcomes)
