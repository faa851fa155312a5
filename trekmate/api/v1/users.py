"""User endpoints."""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from trekmate.api.deps import CurrentUser, DbSession
from trekmate.models.user import User
from trekmate.schemas.user import UserResponse, UserUpdate

router = APIRouter()

# Columns that cannot be cleared
REQUIRED_FIELDS = {"full_name", "photo_url", "bio", "experience_level"}


@router.get("/me", response_model=UserResponse)
async def get_current_user(current_user: CurrentUser) -> UserResponse:
    """Get current authenticated user."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_current_user(
    update: UserUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> UserResponse:
    """Update profile and emergency contact fields."""
    changes = update.model_dump(exclude_unset=True)

    username = changes.get("username")
    if username and username != current_user.username:
        taken = await db.execute(
            select(User.id).where(User.username == username, User.id != current_user.id)
        )
        if taken.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already taken",
            )

    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        if field == "experience_level":
            value = value.value
        setattr(current_user, field, value)

    await db.flush()
    return UserResponse.model_validate(current_user)
