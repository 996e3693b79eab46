"""
Firebase initialization and helpers
"""

from __future__ import annotations

import json
import logging
from typing import Any
import base64
import os

import firebase_admin
from firebase_admin import credentials, firestore

from allocator.core.config import Settings

logger = logging.getLogger(__name__)


def load_firebase_credentials(settings: Settings) -> dict[str, Any] | None:
    """Read service-account info from whichever credential setting is present"""
    if settings.FIREBASE_CREDENTIALS_JSON:
        return json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    if settings.FIREBASE_CREDENTIALS_B64:
        decoded = base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8")
        return json.loads(decoded)
    if settings.FIREBASE_CREDENTIALS_FILE and os.path.exists(settings.FIREBASE_CREDENTIALS_FILE):
        with open(settings.FIREBASE_CREDENTIALS_FILE, "r", encoding="utf-8") as f:
            return json.load(f)
    return None


def build_firestore_client(settings: Settings):
    """Initialize Firebase and return a Firestore client.

    Called once from the application lifespan; the client is then handed
    to each request's repository. Expects credentials via one of:
    FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_B64, FIREBASE_CREDENTIALS_FILE.
    Against the emulator (FIRESTORE_EMULATOR_HOST) no credentials are needed.
    """
    if not firebase_admin._apps:
        info = load_firebase_credentials(settings)
        if info:
            firebase_admin.initialize_app(credentials.Certificate(info))
        elif os.getenv("FIRESTORE_EMULATOR_HOST"):
            firebase_admin.initialize_app(options={"projectId": os.getenv("GCLOUD_PROJECT", "demo-allocator")})
        else:
            raise RuntimeError(
                "Firebase credentials not provided. Set FIREBASE_CREDENTIALS_FILE, "
                "FIREBASE_CREDENTIALS_JSON, or FIREBASE_CREDENTIALS_B64"
            )
        logger.info("Firebase app initialized")

    return firestore.client()
