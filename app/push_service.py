from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.routers.health import router as health_router
from app.supervisor import SupervisedWatcher, WatcherSupervisor
from config.settings import settings
from fanout.orchestrator import FanoutOrchestrator
from messaging.dispatcher import PushDispatcher
from messaging.fcm import FcmClient
from ops.structured_logger import setup_logging
from repos.invitation_repo import InvitationRepository
from repos.preferences_repo import PreferencesRepository
from repos.recipe_repo import RecipeRepository
from repos.shoplist_repo import ShoplistRepository
from repos.token_repo import TokenRepository
from storage.firestore_client import MissingCredentialsError, get_firebase_app, get_firestore_client, load_service_account
from watchers.firestore_feed import FirestoreChangeFeed
from watchers.invitations import InvitationWatcher
from watchers.membership import MenuWatcher, RecipeCollectionWatcher
from watchers.shoplist_items import ShoplistItemWatcher

log = logging.getLogger("listappi.push")


def build_supervisor() -> WatcherSupervisor:
    db = get_firestore_client()
    orchestrator = FanoutOrchestrator(
        preferences=PreferencesRepository(db),
        tokens=TokenRepository(db),
        invitations=InvitationRepository(db),
        dispatcher=PushDispatcher(FcmClient(get_firebase_app())),
    )
    recipes = RecipeRepository(db)
    watchers = [
        InvitationWatcher(orchestrator),
        MenuWatcher(orchestrator, recipes=recipes),
        RecipeCollectionWatcher(orchestrator, recipes=recipes),
        ShoplistItemWatcher(orchestrator, shoplists=ShoplistRepository(db)),
    ]
    return WatcherSupervisor(
        [SupervisedWatcher(w, FirestoreChangeFeed(w.collection, group=w.group, db=db)) for w in watchers],
        retry_delay_s=settings.WATCHER_RETRY_DELAY_S,
        liveness_interval_s=settings.WATCHER_LIVENESS_INTERVAL_S,
    )


def create_app(supervisor: Optional[WatcherSupervisor] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sup = supervisor or build_supervisor()
        app.state.supervisor = sup
        await sup.start()
        log.info("push_server_listening", extra={"extra": {"event": "push_server_listening", "port": settings.PORT}})
        try:
            yield
        finally:
            await sup.stop()

    app = FastAPI(title="ListAppi Push", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.error(
            "internal_unhandled_exception",
            extra={
                "extra": {
                    "event": "internal_unhandled_exception",
                    "error_type": type(exc).__name__,
                    "message": str(exc),
                    "path": request.url.path,
                    "method": request.method,
                }
            },
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal_unhandled_exception", "revision": os.getenv("K_REVISION") or ""},
        )

    app.include_router(health_router, tags=["health"])
    return app


def main() -> None:
    setup_logging(settings.LOG_LEVEL)
    try:
        load_service_account()
    except MissingCredentialsError as e:
        log.error("missing_credentials", extra={"extra": {"event": "missing_credentials", "message": str(e)}})
        sys.exit(1)

    uvicorn.run(create_app(), host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
