import hashlib
import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, joinedload

from . import config
from .database import get_db
from .models import Organization, User

logger = logging.getLogger(__name__)

# Missing credentials are rejected with 401 in the dependencies below
security = HTTPBearer(auto_error=False)


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest stored in User.api_key_hash"""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two secrets without leaking timing information"""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the API key in the Authorization header"""

    if not credentials or not credentials.credentials:
        logger.warning("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = (
        db.query(User)
        .options(joinedload(User.organization))
        .filter(User.api_key_hash == hash_api_key(credentials.credentials))
        .first()
    )
    if not user:
        logger.warning("⚠️ Authentication failed: unknown API key")
        raise HTTPException(
            status_code=401, detail="Invalid API key", headers={"WWW-Authenticate": "Bearer"}
        )

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_organization(user: User = Depends(get_current_user)) -> Organization:
    """Resolve the organization every subscription query is scoped to"""
    if not user.organization_id or not user.organization:
        logger.warning(f"⚠️ User {user.id} has no organization")
        raise HTTPException(status_code=404, detail="Organization not found")
    return user.organization


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Guard for the scheduled alert processing endpoint"""
    if not config.CRON_SECRET:
        logger.error("❌ CRON_SECRET not configured - refusing to process alerts")
        raise HTTPException(status_code=503, detail="Alert processing not configured")

    if not credentials or not constant_time_compare(credentials.credentials, config.CRON_SECRET):
        logger.warning("⚠️ Rejected alert processing request with invalid cron secret")
        raise HTTPException(status_code=401, detail="Unauthorized")
