from __future__ import annotations

import logging
import os
import time
from typing import Iterable, List, Optional

from messaging.fcm import FcmClient
from models.notifications import PushMessage, SendResult
from ops.structured_logger import token_hint

log = logging.getLogger("listappi.dispatcher")


class PushDispatcher:
    """One bulk delivery per call; reports per-token outcomes, never retries."""

    def __init__(self, fcm: Optional[FcmClient] = None):
        self.fcm = fcm

    def send(self, tokens: Iterable[str], message: PushMessage) -> SendResult:
        token_list: List[str] = list(dict.fromkeys(t for t in tokens if t))
        if not token_list:
            raise ValueError("send() requires at least one token")

        rev = os.getenv("K_REVISION") or ""
        t0 = time.time()
        log.info(
            "push_send_attempt",
            extra={"extra": {"event": "push_send_attempt", "channel": "fcm", "tokens": len(token_list), "revision": rev}},
        )
        try:
            if not self.fcm:
                self.fcm = FcmClient()
            result = self.fcm.send_multicast(token_list, message)
        except Exception as e:
            dt_ms = int((time.time() - t0) * 1000)
            log.error(
                "push_send_exception",
                extra={
                    "extra": {
                        "event": "push_send_exception",
                        "channel": "fcm",
                        "tokens": len(token_list),
                        "error_type": type(e).__name__,
                        "message": str(e),
                        "latency_ms": dt_ms,
                        "revision": rev,
                    }
                },
                exc_info=True,
            )
            return SendResult(ok=False, error_type=type(e).__name__, message=str(e))

        dt_ms = int((time.time() - t0) * 1000)
        failed = result.failed_tokens
        log.info(
            "push_send_result",
            extra={
                "extra": {
                    "event": "push_send_result",
                    "channel": "fcm",
                    "success_count": result.success_count,
                    "failure_count": len(failed),
                    "latency_ms": dt_ms,
                    "revision": rev,
                }
            },
        )
        if failed:
            log.warning(
                "push_send_partial_failure",
                extra={"extra": {"event": "push_send_partial_failure", "failed": [token_hint(t) for t in failed], "revision": rev}},
            )
        return result
