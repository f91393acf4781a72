"""API key authentication with prefix+digest lookup, and password hashing."""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from casevault_api.db.session import get_db
from casevault_api.models import APIKey, User
from casevault_api.models.user import ROLE_INVESTIGATOR
from casevault_api.settings import get_settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)
admin_token_header = APIKeyHeader(name="x-admin-token", auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
settings = get_settings()

KEY_PREFIX_LENGTH = 12


def _bcrypt_input(secret: str) -> str:
    # Bcrypt has a 72-byte limit, truncate if necessary
    secret_bytes = secret.encode("utf-8")
    if len(secret_bytes) > 72:
        secret = secret_bytes[:72].decode("utf-8", errors="ignore")
    return secret


def hash_password(password: str) -> str:
    """Hash a user password with bcrypt."""
    return pwd_context.hash(_bcrypt_input(password))


def compute_key_prefix(raw_key: str) -> str:
    """Compute the indexed lookup prefix of an API key."""
    return raw_key[:KEY_PREFIX_LENGTH]


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    secret = settings.secret_key.encode()
    return hmac.new(secret, raw_key.encode(), hashlib.sha256).hexdigest()


def generate_api_key() -> str:
    """Generate a new raw API key."""
    return f"cv_{secrets.token_urlsafe(32)}"


def issue_api_key(db: Session, user: User, label: Optional[str] = None) -> str:
    """Create and store a new API key for a user. Returns the raw key (shown once)."""
    raw_key = generate_api_key()
    db.add(
        APIKey(
            user_id=user.id,
            prefix=compute_key_prefix(raw_key),
            digest=compute_key_digest(raw_key),
            label=label or "Default API Key",
            is_active=True,
        )
    )
    db.flush()
    return raw_key


def get_user_by_api_key(db: Session, api_key: str) -> Optional[User]:
    """Get user by API key using prefix+digest lookup."""
    if not api_key or len(api_key) < KEY_PREFIX_LENGTH:
        return None

    prefix = compute_key_prefix(api_key)
    digest = compute_key_digest(api_key)

    candidates = (
        db.query(APIKey)
        .filter(
            APIKey.prefix == prefix,
            APIKey.is_active == True,  # noqa: E712
            APIKey.revoked_at.is_(None),
        )
        .all()
    )

    for api_key_obj in candidates:
        # Constant-time comparison of digest
        if hmac.compare_digest(api_key_obj.digest, digest):
            api_key_obj.last_used_at = datetime.utcnow()
            db.commit()
            return db.query(User).filter(User.id == api_key_obj.user_id).first()

    return None


def get_current_user(
    request: Request,
    x_api_key: Optional[str] = Security(api_key_header),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from API key."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide x-api-key header.",
        )

    user = get_user_by_api_key(db, x_api_key)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked API key.",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled.",
        )

    request.state.user_id = user.id
    logger.info(
        "Authenticated request",
        extra={
            "user_id": user.id,
            "correlation_id": getattr(request.state, "correlation_id", None),
            "path": request.url.path,
        },
    )
    return user


def require_investigator(user: User = Depends(get_current_user)) -> User:
    """Only investigators may change case state."""
    if user.role != ROLE_INVESTIGATOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Investigator role required.",
        )
    return user


def require_admin(x_admin_token: Optional[str] = Security(admin_token_header)):
    """Check the admin token header."""
    if not x_admin_token or not hmac.compare_digest(
        x_admin_token.encode(), settings.admin_token.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token.",
        )
