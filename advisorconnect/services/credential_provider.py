"""
Google credential storage and refresh

Tokens obtained by the frontend's OAuth sign-in are stored encrypted and
refreshed here when they are about to expire.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, SIDE_EFFECT_TIMEOUT_SECONDS, TOKEN_ENCRYPTION_KEY
from ..domain.bookings.side_effects import BearerCredential
from ..errors import CredentialRefreshError, NotFoundError
from ..models import GoogleCredential, User
from ..shared.time_format import utcnow

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"

# Refresh tokens that expire within this window
EXPIRY_MARGIN = timedelta(minutes=5)


class GoogleCredentialProvider:
    """Issues valid bearer tokens for a user, refreshing them when needed"""

    def __init__(
        self,
        db: Session,
        http_client: Optional[httpx.AsyncClient] = None,
        client_id: Optional[str] = GOOGLE_CLIENT_ID,
        client_secret: Optional[str] = GOOGLE_CLIENT_SECRET,
        encryption_key: str = TOKEN_ENCRYPTION_KEY,
        timeout: float = SIDE_EFFECT_TIMEOUT_SECONDS,
    ):
        self.db = db
        self.http_client = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.cipher_suite = Fernet(encryption_key.encode())
        self.timeout = timeout

    @asynccontextmanager
    async def _client(self):
        if self.http_client is not None:
            yield self.http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    def encrypt(self, value: str) -> str:
        return self.cipher_suite.encrypt(value.encode()).decode()

    def decrypt(self, value: str) -> str:
        return self.cipher_suite.decrypt(value.encode()).decode()

    def get_credential(self, user: User) -> Optional[GoogleCredential]:
        return self.db.query(GoogleCredential).filter(GoogleCredential.user_id == user.id).first()

    def store_credential(
        self,
        user: User,
        access_token: str,
        expires_in: int,
        refresh_token: Optional[str] = None,
        google_user_email: Optional[str] = None,
        calendar_id: Optional[str] = None,
    ) -> GoogleCredential:
        """Save or replace the user's tokens (a missing refresh token keeps the old one)"""
        credential = self.get_credential(user)
        token_expires_at = utcnow() + timedelta(seconds=expires_in)

        if credential:
            credential.access_token = self.encrypt(access_token)
            if refresh_token:
                credential.refresh_token = self.encrypt(refresh_token)
            credential.token_expires_at = token_expires_at
            credential.google_user_email = google_user_email or credential.google_user_email
            credential.google_calendar_id = calendar_id or credential.google_calendar_id
        else:
            credential = GoogleCredential(
                user_id=user.id,
                access_token=self.encrypt(access_token),
                refresh_token=self.encrypt(refresh_token) if refresh_token else None,
                token_expires_at=token_expires_at,
                google_user_email=google_user_email or user.email,
                google_calendar_id=calendar_id or "primary",
                auto_sync_enabled=True,
            )
            self.db.add(credential)

        self.db.commit()
        self.db.refresh(credential)
        logger.info(f"Google credential stored for user: {user.email}")
        return credential

    async def get_bearer_credential(self, user: User) -> BearerCredential:
        """
        Return a valid access token for `user`.

        Raises:
            CredentialRefreshError: If nothing is stored, sync is disabled,
                or the refresh request fails
        """
        credential = self.get_credential(user)
        if not credential or not credential.auto_sync_enabled:
            raise CredentialRefreshError("Google Calendar not connected")

        try:
            if credential.token_expires_at > utcnow() + EXPIRY_MARGIN:
                return BearerCredential(
                    token=self.decrypt(credential.access_token),
                    expires_at=credential.token_expires_at,
                )
            if not credential.refresh_token:
                raise CredentialRefreshError("Access token expired and no refresh token stored")
            refresh_token = self.decrypt(credential.refresh_token)
        except InvalidToken as e:
            raise CredentialRefreshError("Stored Google credential could not be decrypted") from e

        logger.info(f"Google token expired for {user.email}, refreshing...")
        try:
            async with self._client() as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
        except httpx.HTTPError as e:
            raise CredentialRefreshError(f"Token refresh request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Token refresh failed: {response.text}")
            raise CredentialRefreshError("Token refresh was rejected")

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        if not new_access_token:
            raise CredentialRefreshError("No access token in refresh response")

        updated = self.store_credential(
            user,
            access_token=new_access_token,
            expires_in=int(tokens.get("expires_in", 3600)),
            refresh_token=tokens.get("refresh_token"),
        )
        logger.info("Google token refreshed successfully")
        return BearerCredential(token=new_access_token, expires_at=updated.token_expires_at)

    async def revoke(self, user: User) -> None:
        """Revoke the stored token with Google and delete it locally"""
        credential = self.get_credential(user)
        if not credential:
            raise NotFoundError("Google Calendar not connected")

        try:
            access_token = self.decrypt(credential.access_token)
            async with self._client() as client:
                await client.post(GOOGLE_REVOKE_URL, params={"token": access_token})
        except (InvalidToken, httpx.HTTPError) as e:
            logger.warning(f"Failed to revoke Google tokens: {str(e)}")

        self.db.delete(credential)
        self.db.commit()
        logger.info(f"Google Calendar disconnected for user: {user.email}")
