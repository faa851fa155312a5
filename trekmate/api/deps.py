"""API dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from trekmate.core.database import get_db
from trekmate.core.security import get_access_subject
from trekmate.models.user import User
from trekmate.services.errors import ServiceError
from trekmate.services.llm_gateway import LLMGateway, get_llm_gateway
from trekmate.services.sms import SmsGateway, get_sms_gateway

security = HTTPBearer()

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> User:
    """Resolve the bearer token to a user."""
    subject = get_access_subject(credentials.credentials)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = UUID(subject)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
LLM = Annotated[LLMGateway, Depends(get_llm_gateway)]
Sms = Annotated[SmsGateway | None, Depends(get_sms_gateway)]


def http_error(exc: ServiceError) -> HTTPException:
    """Map a service-layer error to the matching HTTP response."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
