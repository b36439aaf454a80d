"""
Mock Auth Gateway

Simulates the hosted auth provider for development.
Accounts and sessions live in memory; nothing leaves the process.

Mirrors the provider's observable rules:
    - Passwords shorter than 6 characters are rejected
    - Email addresses are unique (case-insensitive)
    - Signing out revokes every session of the user

Version: 1.0.0
"""

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional

from foodz.core.errors import AuthenticationError
from foodz.services.auth.base import BaseAuthGateway, Identity

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class _Account:
    uid: str
    email: str
    password_hash: str
    salt: str
    display_name: str = ""


class MockAuthGateway(BaseAuthGateway):
    """Mock auth gateway for development and tests."""

    def __init__(self):
        super().__init__()
        self._accounts: dict[str, _Account] = {}
        self._sessions: dict[str, str] = {}
        logger.info("MockAuthGateway initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    @staticmethod
    def _hash(password: str, salt: str) -> str:
        return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()

    def _account_by_uid(self, uid: str) -> Optional[_Account]:
        for account in self._accounts.values():
            if account.uid == uid:
                return account
        return None

    def _open_session(self, account: _Account) -> Identity:
        token = f"mock_{secrets.token_urlsafe(24)}"
        self._sessions[token] = account.uid
        identity = Identity(
            uid=account.uid,
            email=account.email,
            display_name=account.display_name,
            token=token,
        )
        self._emit_identity_change(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.strip().lower())
        if account is None or account.password_hash != self._hash(password, account.salt):
            logger.info(f"Mock sign-in rejected for {email}")
            raise AuthenticationError("Invalid email or password")

        logger.info(f"Mock sign-in for {account.email} ({account.uid})")
        return self._open_session(account)

    async def sign_up(self, email: str, password: str) -> Identity:
        key = email.strip().lower()
        if not key or "@" not in key:
            raise AuthenticationError("Invalid email address")
        if key in self._accounts:
            raise AuthenticationError("An account with this email already exists")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
            )

        salt = secrets.token_hex(8)
        account = _Account(
            uid=uuid.uuid4().hex[:28],
            email=key,
            password_hash=self._hash(password, salt),
            salt=salt,
        )
        self._accounts[key] = account

        logger.info(f"Mock account created for {key} ({account.uid})")
        return self._open_session(account)

    async def sign_out(self, uid: str) -> None:
        revoked = [token for token, owner in self._sessions.items() if owner == uid]
        for token in revoked:
            del self._sessions[token]
        logger.info(f"Mock sign-out for {uid} ({len(revoked)} sessions revoked)")
        self._emit_identity_change(None)

    async def update_profile(self, uid: str, display_name: str) -> None:
        account = self._account_by_uid(uid)
        if account is None:
            raise AuthenticationError("User not found")
        account.display_name = display_name

    async def verify_token(self, token: str) -> Identity:
        uid = self._sessions.get(token)
        account = self._account_by_uid(uid) if uid else None
        if account is None:
            raise AuthenticationError("Invalid or expired session")
        return Identity(
            uid=account.uid,
            email=account.email,
            display_name=account.display_name,
            token=token,
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
