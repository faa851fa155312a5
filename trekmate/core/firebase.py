"""Firebase Admin integration for verifying client ID tokens."""

import asyncio
import logging
from typing import Any

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from trekmate.core.config import settings

logger = logging.getLogger(__name__)

_firebase_app: firebase_admin.App | None = None


class FirebaseAuthError(Exception):
    """Firebase ID token could not be verified."""
    pass


def get_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin app once per process."""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    else:
        # Token verification only needs the project id and Google's public keys
        cred = credentials.ApplicationDefault()

    _firebase_app = firebase_admin.initialize_app(cred, options)
    logger.info("Firebase Admin initialized")
    return _firebase_app


async def verify_id_token(id_token: str) -> dict[str, Any]:
    """Verify a Firebase ID token and return its decoded claims.

    The Admin SDK is synchronous and may fetch signing keys over HTTP, so the
    call is moved off the event loop.
    """
    app = get_firebase_app()
    try:
        return await asyncio.to_thread(firebase_auth.verify_id_token, id_token, app)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError) as e:
        raise FirebaseAuthError(str(e)) from e
    except firebase_auth.CertificateFetchError as e:
        logger.error(f"Could not fetch Firebase signing certificates: {e}")
        raise FirebaseAuthError("Unable to verify token right now") from e
