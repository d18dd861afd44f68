import logging
from typing import Optional

import httpx
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .domain.users.repository import UserRepository
from .models import User

logger = logging.getLogger(__name__)

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def fetch_google_profile(access_token: str) -> dict:
    """
    Resolve a Google access token to the signed-in profile.

    The OAuth sign-in happens on the frontend; the resulting access token is
    the bearer credential for every advisor request.
    """
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Error verifying Google token: {str(e)}")
        raise HTTPException(status_code=503, detail="Identity provider unavailable") from e

    if response.status_code != 200:
        logger.warning(f"Google token rejected: HTTP {response.status_code}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    profile = response.json()
    if not profile.get("email"):
        raise HTTPException(status_code=401, detail="Token has no email scope")
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Authenticated advisor; created on first sign-in"""
    profile = await fetch_google_profile(credentials.credentials)
    user = UserRepository.get_or_create_user(
        db,
        email=profile["email"],
        name=profile.get("name"),
        image=profile.get("picture"),
    )
    logger.debug(f"Authenticated user: {user.email}")
    return user


async def get_optional_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[str]:
    """Caller-supplied bearer credential on public endpoints, if any"""
    if credentials is None:
        return None
    return credentials.credentials
