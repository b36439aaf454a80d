"""
Firebase Auth Gateway

Production implementation using:
    - Identity Toolkit REST API (httpx) for email/password sign-in and sign-up
    - firebase-admin Auth for token verification, profile updates and revocation

Requirements:
    - FIREBASE_WEB_API_KEY for the REST endpoints
    - Service account credentials for firebase-admin

API Documentation:
    https://firebase.google.com/docs/reference/rest/auth

Version: 1.0.0
"""

import logging
from typing import Any

import httpx
from firebase_admin import auth as firebase_auth

from foodz.core.config import get_settings
from foodz.core.errors import AuthenticationError, StoreError
from foodz.services.auth.base import BaseAuthGateway, Identity
from foodz.services.firebase import get_firebase_app

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Provider error codes → messages shown to the user
ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "EMAIL_EXISTS": "An account with this email already exists",
    "INVALID_EMAIL": "Invalid email address",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later",
}


class FirebaseAuthGateway(BaseAuthGateway):
    """Production auth gateway backed by Firebase Authentication."""

    def __init__(self):
        super().__init__()
        settings = get_settings()

        if not settings.firebase_web_api_key:
            raise ValueError(
                "FIREBASE_WEB_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._api_key = settings.firebase_web_api_key
        self._timeout = settings.auth_request_timeout
        self._app = get_firebase_app()

        logger.info("FirebaseAuthGateway initialized")

    @property
    def provider_name(self) -> str:
        return "firebase"

    async def _call(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to an Identity Toolkit endpoint and translate provider errors."""
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, params={"key": self._api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Identity Toolkit {endpoint} unreachable: {e}")
            raise StoreError("Authentication service unavailable", detail=str(e))

        body = response.json()
        if response.status_code != 200:
            code = body.get("error", {}).get("message", "UNKNOWN")
            # Codes may carry a suffix, e.g. "WEAK_PASSWORD : Password should be..."
            code = code.split(" ")[0]
            logger.info(f"Identity Toolkit {endpoint} rejected: {code}")
            raise AuthenticationError(ERROR_MESSAGES.get(code, "Authentication failed"), detail=code)

        return body

    def _identity(self, body: dict[str, Any]) -> Identity:
        identity = Identity(
            uid=body["localId"],
            email=body.get("email", ""),
            display_name=body.get("displayName", ""),
            token=body.get("idToken"),
        )
        self._emit_identity_change(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        body = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._identity(body)

    async def sign_up(self, email: str, password: str) -> Identity:
        body = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._identity(body)

    async def sign_out(self, uid: str) -> None:
        try:
            firebase_auth.revoke_refresh_tokens(uid, app=self._app)
        except firebase_auth.UserNotFoundError:
            logger.warning(f"Sign-out for unknown user {uid}")
        except Exception as e:
            logger.error(f"Firebase revoke for {uid} failed: {e}")
            raise StoreError("Failed to log out", detail=str(e))
        self._emit_identity_change(None)

    async def update_profile(self, uid: str, display_name: str) -> None:
        try:
            firebase_auth.update_user(uid, display_name=display_name, app=self._app)
        except firebase_auth.UserNotFoundError:
            raise AuthenticationError("User not found")
        except Exception as e:
            logger.error(f"Firebase profile update for {uid} failed: {e}")
            raise StoreError("Failed to update profile", detail=str(e))

    async def verify_token(self, token: str) -> Identity:
        try:
            claims = firebase_auth.verify_id_token(token, app=self._app, check_revoked=True)
        except (
            firebase_auth.InvalidIdTokenError,
            firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError,
            firebase_auth.UserDisabledError,
        ) as e:
            raise AuthenticationError("Invalid or expired session", detail=str(e))
        except Exception as e:
            logger.error(f"Firebase token verification failed: {e}")
            raise StoreError("Authentication service unavailable", detail=str(e))

        return Identity(
            uid=claims["uid"],
            email=claims.get("email", ""),
            display_name=claims.get("name", ""),
            token=token,
        )

    async def health_check(self) -> bool:
        """Check that the Admin SDK can reach the project."""
        try:
            firebase_auth.list_users(max_results=1, app=self._app)
            return True
        except Exception as e:
            logger.error(f"Firebase Auth health check failed: {e}")
            return False
