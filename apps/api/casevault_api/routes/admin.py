"""Admin routes for user management."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from casevault_api.auth.api_key import hash_password, issue_api_key, require_admin
from casevault_api.db.session import get_db
from casevault_api.models import APIKey, User
from casevault_api.models.user import USER_ROLES

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class UserCreate(BaseModel):
    """User creation request."""

    email: str
    first_name: str
    last_name: str
    role: str = Field(..., description="investigator, client or admin")
    password: str = Field(..., min_length=8)


class UserCreateResponse(BaseModel):
    """User creation response, including the one-time API key."""

    id: int
    email: str
    role: str
    api_key: str
    created_at: datetime


class APIKeyRotateRequest(BaseModel):
    """API key rotation request."""

    label: Optional[str] = None


@router.post("/users", response_model=UserCreateResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
):
    """Create a user and issue their first API key."""
    if user_data.role not in USER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid role: {user_data.role}. Allowed: {list(USER_ROLES)}",
        )

    email = user_data.email.strip().lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email '{email}' already exists",
        )

    user = User(
        email=email,
        first_name=user_data.first_name.strip(),
        last_name=user_data.last_name.strip(),
        role=user_data.role,
        password_hash=hash_password(user_data.password),
        is_active=True,
    )
    db.add(user)
    db.flush()

    raw_key = issue_api_key(db, user, label="Initial API Key")
    db.commit()
    db.refresh(user)

    return UserCreateResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        api_key=raw_key,
        created_at=user.created_at,
    )


@router.post("/users/{user_id}/rotate-api-key", status_code=status.HTTP_200_OK)
def rotate_api_key(
    user_id: int,
    request: APIKeyRotateRequest,
    db: Session = Depends(get_db),
):
    """Revoke a user's API keys and issue a new one."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )

    rotated_at = datetime.utcnow()
    db.query(APIKey).filter(
        APIKey.user_id == user_id,
        APIKey.is_active == True,  # noqa: E712
    ).update({"is_active": False, "revoked_at": rotated_at})

    raw_key = issue_api_key(db, user, label=request.label or "Rotated API Key")
    db.commit()

    return {
        "message": "API key rotated successfully",
        "user_id": user_id,
        "api_key": raw_key,
        "rotated_at": rotated_at,
    }
