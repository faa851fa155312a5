"""Authentication endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import or_, select

from trekmate.api.deps import DbSession
from trekmate.core.config import settings
from trekmate.core.firebase import FirebaseAuthError, verify_id_token
from trekmate.core.security import create_access_token
from trekmate.models.user import User
from trekmate.schemas.auth import AuthResponse, FirebaseTokenExchange, UserInfo

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/firebase", response_model=AuthResponse)
async def firebase_exchange(payload: FirebaseTokenExchange, db: DbSession) -> AuthResponse:
    """Exchange a Firebase ID token for an API access token.

    The user is created on first sign-in and their Firebase profile fields
    are refreshed on every later one.
    """
    try:
        claims = await verify_id_token(payload.id_token)
    except FirebaseAuthError as e:
        logger.warning(f"Firebase token rejected: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Firebase token",
        ) from e

    firebase_uid = claims.get("uid") or claims.get("sub")
    email = claims.get("email")
    if not firebase_uid or not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Firebase account has no email address",
        )

    full_name = payload.full_name or claims.get("name") or email.split("@")[0]
    photo_url = payload.photo_url or claims.get("picture") or ""

    # Match on uid first; an email match re-links a recreated Firebase account
    result = await db.execute(
        select(User)
        .where(or_(User.firebase_uid == firebase_uid, User.email == email))
        .order_by((User.firebase_uid == firebase_uid).desc())
        .limit(1)
    )
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            firebase_uid=firebase_uid,
            email=email,
            full_name=full_name,
            photo_url=photo_url,
        )
        db.add(user)
        await db.flush()
        logger.info(f"Created user {user.id} for {email}")
    else:
        user.firebase_uid = firebase_uid
        user.email = email
        if payload.full_name or not user.full_name:
            user.full_name = full_name
        if photo_url:
            user.photo_url = photo_url
        await db.flush()

    access_token = create_access_token(str(user.id))

    return AuthResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserInfo(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            photo_url=user.photo_url or "",
        ),
    )
