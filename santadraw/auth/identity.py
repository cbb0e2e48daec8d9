"""Identity adapter over Firebase Authentication."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import asdict, dataclass
from typing import Any, Callable

from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError

from santadraw.constants import (
    ANONYMOUS_DISPLAY_NAME,
    SESSION_IDENTITY,
    SESSION_USER_ID,
)
from santadraw.errors import AuthFailure

logger = logging.getLogger(__name__)

IdentityCallback = Callable[["Identity | None"], None]


def display_name_for(
    display_name: str | None,
    email: str | None = None,
    phone_number: str | None = None,
) -> str:
    """Pick the best human-readable name for an identity."""
    return display_name or email or phone_number or ANONYMOUS_DISPLAY_NAME


@dataclass(frozen=True)
class Identity:
    """The signed-in user as the rest of the app sees it."""

    uid: str
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    photo_url: str | None = None

    @property
    def label(self) -> str:
        """Name shown to other members."""
        return display_name_for(self.display_name, self.email, self.phone_number)

    @classmethod
    def from_token(cls, claims: dict[str, Any]) -> Identity:
        """Build an identity from verified ID token claims."""
        return cls(
            uid=claims["uid"],
            display_name=claims.get("name"),
            email=claims.get("email"),
            phone_number=claims.get("phone_number"),
            photo_url=claims.get("picture"),
        )

    @classmethod
    def from_session(cls, data: dict[str, Any] | None) -> Identity | None:
        if not data or not data.get("uid"):
            return None
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})

    def to_session(self) -> dict[str, Any]:
        return asdict(self)


class IdentityAdapter:
    """Signs users in and out of a session and reports identity changes.

    The browser signs in with the Firebase SDK and posts the resulting ID
    token; the adapter verifies it server side and keeps the identity in
    ``session``.
    """

    def __init__(
        self,
        session: MutableMapping[str, Any],
        verify_id_token: Callable[[str], dict[str, Any]] | None = None,
    ) -> None:
        """Bind the adapter to a session mapping."""
        self.session = session
        self._verify = verify_id_token or auth.verify_id_token
        self._callbacks: list[IdentityCallback] = []

    def current(self) -> Identity | None:
        return Identity.from_session(self.session.get(SESSION_IDENTITY))

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]:
        """Call ``callback`` now and after every sign-in or sign-out.

        Returns a function that removes the callback.
        """
        self._callbacks.append(callback)
        callback(self.current())

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def sign_in(self, id_token: str | None) -> Identity:
        """Verify ``id_token`` and make its user the current identity."""
        if not id_token:
            raise AuthFailure()
        try:
            claims = self._verify(id_token)
        except (ValueError, FirebaseError) as e:
            logger.warning(f"Rejected ID token: {e}")
            raise AuthFailure() from e

        identity = Identity.from_token(claims)
        self.session[SESSION_USER_ID] = identity.uid
        self.session[SESSION_IDENTITY] = identity.to_session()
        self._emit(identity)
        return identity

    def sign_out(self) -> None:
        had_identity = self.current() is not None
        self.session.clear()
        if had_identity:
            self._emit(None)

    def _emit(self, identity: Identity | None) -> None:
        for callback in list(self._callbacks):
            callback(identity)
