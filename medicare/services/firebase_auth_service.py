import logging
from datetime import timedelta
from firebase_admin import auth
from typing import Optional

from medicare.errors import ConflictError

logger = logging.getLogger(__name__)


class FirebaseAuthService:
    """Service for Firebase Authentication operations"""

    async def create_user(self, email: str, password: str, name: str) -> str:
        """
        Create a new email/password user in Firebase Auth

        Returns:
            The Firebase UID, which is also the profile document ID

        Raises:
            ConflictError: an account with this email already exists
        """
        try:
            user = auth.create_user(
                email=email,
                password=password,
                display_name=name
            )
        except auth.EmailAlreadyExistsError:
            raise ConflictError("User already exists")
        return user.uid

    async def verify_id_token(self, id_token: str) -> Optional[str]:
        """
        Verify Firebase ID token from client

        Returns:
            UID if valid, None if invalid or expired
        """
        try:
            decoded_token = auth.verify_id_token(id_token)
        except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError) as e:
            logger.info("Rejected ID token: %s", e)
            return None
        return decoded_token["uid"]

    async def create_session_cookie(self, id_token: str, expires_in: int) -> str:
        """
        Exchange a verified ID token for a Firebase session cookie

        Args:
            expires_in: cookie lifetime in seconds
        """
        return auth.create_session_cookie(id_token, expires_in=timedelta(seconds=expires_in))

    async def verify_session_cookie(self, session_cookie: str) -> Optional[str]:
        """
        Verify a session cookie minted by create_session_cookie

        Returns:
            UID if valid, None if forged, expired or revoked
        """
        try:
            decoded = auth.verify_session_cookie(session_cookie, check_revoked=True)
        except (
            auth.InvalidSessionCookieError,
            auth.ExpiredSessionCookieError,
            auth.RevokedSessionCookieError,
            auth.UserDisabledError,
            ValueError,
        ) as e:
            logger.info("Rejected session cookie: %s", e)
            return None
        return decoded["uid"]

    async def delete_user(self, uid: str) -> None:
        """Delete user from Firebase Auth"""
        auth.delete_user(uid)


# Singleton instance
firebase_auth_service = FirebaseAuthService()
