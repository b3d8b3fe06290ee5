from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials
from google.cloud import firestore
from google.oauth2 import service_account

from config.settings import settings


class MissingCredentialsError(RuntimeError):
    """FIREBASE_SERVICE_ACCOUNT_JSON is absent or not a valid service account blob."""


def load_service_account(raw: Optional[str] = None) -> Dict[str, Any]:
    raw = settings.FIREBASE_SERVICE_ACCOUNT_JSON if raw is None else raw
    if not (raw or "").strip():
        raise MissingCredentialsError("Missing FIREBASE_SERVICE_ACCOUNT_JSON env var")
    try:
        info = json.loads(raw)
    except ValueError as e:
        raise MissingCredentialsError(f"FIREBASE_SERVICE_ACCOUNT_JSON is not valid JSON: {e}") from e
    if not isinstance(info, dict):
        raise MissingCredentialsError("FIREBASE_SERVICE_ACCOUNT_JSON must be a JSON object")
    return info


@lru_cache(maxsize=1)
def get_firebase_app() -> firebase_admin.App:
    info = load_service_account()
    options = {"projectId": settings.FIRESTORE_PROJECT_ID} if settings.FIRESTORE_PROJECT_ID else None
    return firebase_admin.initialize_app(credentials.Certificate(info), options)


@lru_cache(maxsize=1)
def get_firestore_client() -> firestore.Client:
    info = load_service_account()
    creds = service_account.Credentials.from_service_account_info(info)
    project = settings.FIRESTORE_PROJECT_ID or info.get("project_id")
    return firestore.Client(project=project, credentials=creds)
