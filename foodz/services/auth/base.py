"""
Auth Gateway Abstract Base Class

Defines the interface contract for the hosted authentication provider.
Credential verification and session issuing are delegated entirely to the
provider; the application only consumes the resulting identity.

Both MockAuthGateway and FirebaseAuthGateway implement these methods.

Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """
    Authenticated identity reported by the provider.

    Attributes:
        uid: Stable user id (also the id of the users/{uid} document)
        email: Sign-in email
        display_name: Profile display name
        token: Session token (present after sign-in / sign-up)
    """
    uid: str
    email: str
    display_name: str = ""
    token: Optional[str] = None


IdentityCallback = Callable[[Optional[Identity]], None]


class BaseAuthGateway(ABC):
    """
    Abstract base class for auth gateways.

    Identity-change listeners are managed here; implementations call
    ``_emit_identity_change`` after a sign-in, sign-up or sign-out.
    """

    def __init__(self):
        self._listeners: list[IdentityCallback] = []

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g. "mock", "firebase")."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Verify credentials and open a session.

        Raises:
            AuthenticationError: Unknown account or wrong password
            StoreError: Provider unreachable
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Identity:
        """Create an account and open a session for it."""
        pass

    @abstractmethod
    async def sign_out(self, uid: str) -> None:
        """Invalidate every session of ``uid``."""
        pass

    @abstractmethod
    async def update_profile(self, uid: str, display_name: str) -> None:
        """Set the provider-side display name."""
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> Identity:
        """
        Resolve a session token to its identity.

        Raises:
            AuthenticationError: Token invalid, expired or revoked
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check provider connectivity."""
        pass

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]:
        """
        Register a listener called with the new identity (None on sign-out).

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit_identity_change(self, identity: Optional[Identity]) -> None:
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as e:
                logger.exception(f"Identity listener raised: {e}")
