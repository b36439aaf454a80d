"""
Auth Session Context

Process-wide authentication context combining the Auth Gateway (who is
this?) with the ``users/{uid}`` profile (what role do they have?).

Lifecycle:
    session = AuthSession(gateway, store)
    session.start()        # subscribe to identity changes
    ...
    session.stop()         # unsubscribe

Registration writes the profile document, and for restaurant accounts the
``restaurants/{uid}`` document as well. Login refuses accounts without a
profile or with a different role than the one requested, signing the
account out again before raising.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from foodz.core.errors import AuthorizationError, ValidationError
from foodz.models import RESTAURANTS, USERS, User, UserRole
from foodz.services.auth.base import BaseAuthGateway, Identity
from foodz.services.store.base import SERVER_TIMESTAMP, BaseDocumentStore

logger = logging.getLogger(__name__)

RESTAURANT_PROFILE_FIELDS = ("description", "cuisine", "address", "phone", "website")


@dataclass
class AuthResult:
    """Signed-in user with the session token to present on later requests."""
    user: User
    token: str


class AuthSession:
    """Authentication context shared by every request of the process."""

    def __init__(self, gateway: BaseAuthGateway, store: BaseDocumentStore):
        self.gateway = gateway
        self.store = store
        self.current_users: dict[str, User] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.gateway.on_identity_change(self._on_identity_change)
            logger.info(f"Auth session started ({self.gateway.provider_name})")

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Auth session stopped")

    def _on_identity_change(self, identity: Optional[Identity]) -> None:
        if identity is None:
            return
        cached = self.current_users.get(identity.uid)
        if cached is not None:
            self.current_users[identity.uid] = cached.model_copy(
                update={"email": identity.email, "display_name": identity.display_name or cached.display_name}
            )

    async def _load_profile(self, uid: str) -> Optional[User]:
        document = await self.store.get(USERS, uid)
        return User.from_document(document) if document else None

    # =========================================================================
    # REGISTRATION / LOGIN
    # =========================================================================

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        role: Union[UserRole, str],
        restaurant_info: Optional[dict[str, Any]] = None,
    ) -> AuthResult:
        """
        Create an account with its profile.

        Args:
            name: Display name of the user
            role: "client" or "restaurant"
            restaurant_info: Restaurant profile fields (name, cuisine, address, ...)
                             used for restaurant accounts

        Raises:
            ValidationError: Missing name or unknown role
            AuthenticationError: Rejected by the auth provider
        """
        if not name or not name.strip():
            raise ValidationError("Name is required")
        try:
            role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Invalid role. Options: {[r.value for r in UserRole]}")

        identity = await self.gateway.sign_up(email, password)
        await self.gateway.update_profile(identity.uid, name.strip())

        user = User(
            id=identity.uid,
            email=identity.email,
            display_name=name.strip(),
            role=role,
        )
        await self.store.set(USERS, identity.uid, {**user.to_document(), "createdAt": SERVER_TIMESTAMP})

        if role == UserRole.RESTAURANT:
            info = restaurant_info or {}
            restaurant = {
                "name": (info.get("name") or "").strip() or user.display_name,
                "ownerId": identity.uid,
                "email": identity.email,
                **{key: info.get(key) or "" for key in RESTAURANT_PROFILE_FIELDS},
                "createdAt": SERVER_TIMESTAMP,
            }
            await self.store.set(RESTAURANTS, identity.uid, restaurant)
            logger.info(f"Restaurant profile created for {identity.uid}")

        self.current_users[identity.uid] = user
        logger.info(f"Registered {role.value} account {identity.uid}")
        return AuthResult(user=user, token=identity.token or "")

    async def login(self, email: str, password: str, role: Optional[Union[UserRole, str]] = None) -> AuthResult:
        """
        Sign in, optionally requiring the account to have ``role``.

        Raises:
            AuthenticationError: Wrong credentials
            AuthorizationError: Profile missing or role mismatch (signed out again)
        """
        identity = await self.gateway.sign_in(email, password)

        user = await self._load_profile(identity.uid)
        if user is None:
            await self.gateway.sign_out(identity.uid)
            raise AuthorizationError("User account is incomplete. Please contact support.")

        if role is not None:
            expected = role.value if isinstance(role, UserRole) else str(role)
            if user.role != expected:
                await self.gateway.sign_out(identity.uid)
                raise AuthorizationError(
                    f"You're not registered as a {expected}. Please use the correct account type."
                )

        user.id = identity.uid
        self.current_users[identity.uid] = user
        logger.info(f"{user.role} {identity.uid} logged in")
        return AuthResult(user=user, token=identity.token or "")

    async def logout(self, uid: str) -> None:
        await self.gateway.sign_out(uid)
        self.current_users.pop(uid, None)
        logger.info(f"User {uid} logged out")

    # =========================================================================
    # SESSIONS
    # =========================================================================

    async def resolve(self, token: str) -> User:
        """
        Resolve a bearer token to the signed-in user with their role.

        Raises:
            AuthenticationError: Token invalid, expired or revoked
            AuthorizationError: Profile missing
        """
        identity = await self.gateway.verify_token(token)

        user = self.current_users.get(identity.uid)
        if user is None:
            user = await self._load_profile(identity.uid)
            if user is None:
                raise AuthorizationError("User account is incomplete. Please contact support.")
            user.id = identity.uid
            self.current_users[identity.uid] = user
        return user

    async def update_display_name(self, uid: str, name: str) -> User:
        if not name or not name.strip():
            raise ValidationError("Name is required")

        await self.gateway.update_profile(uid, name.strip())
        await self.store.update(USERS, uid, {"displayName": name.strip()})

        user = self.current_users.get(uid) or await self._load_profile(uid)
        if user is None:
            raise AuthorizationError("User account is incomplete. Please contact support.")
        user = user.model_copy(update={"id": uid, "display_name": name.strip()})
        self.current_users[uid] = user

        logger.info(f"Display name updated for {uid}")
        return user
