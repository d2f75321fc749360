# hackmate/auth/auth_context.py
"""
Session-scoped identity state: the signed-in user and their profile.

An AuthContext is created by whoever owns the session (an HTTP request, a
WebSocket connection, a test) and closed by the same owner. Listeners are told
about every change of user or profile.

Profile lifecycle on sign-in: a default profile derived from the account is
published at once, then replaced by the stored `users/{uid}` document if one
exists. Profile writes are best-effort and never fail the caller.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional

from hackmate.auth.identity_provider import AuthUser, IdentityProvider
from hackmate.errors import AuthError
from hackmate.schemas.member_schema import UserProfile
from hackmate.store.document_store import SERVER_TIMESTAMP, DocumentStore
from hackmate.sync import fire_and_forget, to_model

logger = logging.getLogger("hackmate.auth")

USERS = "users"

Listener = Callable[["AuthContext"], None]


def default_profile(user: AuthUser, name: Optional[str] = None, is_guest: bool = False) -> UserProfile:
    if not name:
        if is_guest:
            name = f"Guest_{user.uid[:6]}"
        else:
            name = user.display_name or (user.email.split("@")[0] if user.email else "") or "User"
    return UserProfile(
        user_id=user.uid,
        name=name,
        email=user.email or "",
        role="developer",
        skills=[],
        online_status=True,
        availability="available",
        timezone="UTC",
        hours_worked=0,
        tasks_completed=0,
    )


class AuthContext:
    def __init__(self, provider: IdentityProvider, store: Optional[DocumentStore]) -> None:
        self._provider = provider
        self._store = store
        self._listeners: Dict[int, Listener] = {}
        self._tokens = itertools.count(1)

        self.user: Optional[AuthUser] = None
        self.user_profile: Optional[UserProfile] = None
        self.loading = True

    # ---------------- lifecycle ----------------
    async def start(self, token: Optional[str] = None) -> None:
        """Restore a session from a token, or start signed out."""
        user = None
        if token:
            try:
                user = await self._provider.verify_token(token)
            except AuthError as exc:
                logger.info("Session token rejected: %s", exc)
        await self._on_auth_state_changed(user)

    def close(self) -> None:
        self._listeners.clear()
        self.user = None
        self.user_profile = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        token = next(self._tokens)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    @property
    def token(self) -> Optional[str]:
        return self._provider.issue_token(self.user) if self.user else None

    # ---------------- sign in / out ----------------
    async def sign_in_with_email(self, email: str, password: str) -> None:
        user = await self._provider.sign_in_with_email(email, password)
        await self._on_auth_state_changed(user)

    async def sign_up_with_email(self, email: str, password: str, name: str) -> None:
        user = await self._provider.create_user_with_email(email, password)
        user = await self._provider.update_display_name(user.uid, name)
        await self._on_auth_state_changed(user)
        self._create_user_profile(user, name)

    async def sign_in_with_google(self, id_token: str) -> None:
        user = await self._provider.sign_in_with_google(id_token)
        stored = await self._on_auth_state_changed(user)
        if stored is None:
            self._create_user_profile(user, user.display_name or "User")

    async def sign_in_as_guest(self) -> None:
        user = await self._provider.sign_in_anonymously()
        await self._on_auth_state_changed(user)
        self._create_user_profile(user, "", is_guest=True)

    async def logout(self) -> None:
        if self.user is not None and self._store is not None:
            fire_and_forget(
                self._store.set(USERS, self.user.uid, {"online_status": False}, merge=True),
                "presence update",
            )
        await self._on_auth_state_changed(None)

    # ---------------- profile ----------------
    async def update_user_skills(self, skills: List[str]) -> None:
        await self.update_user_profile({"skills": skills})

    async def update_user_profile(self, updates: Dict[str, Any]) -> None:
        if self.user is None:
            return
        if self.user_profile is not None:
            self.user_profile = self.user_profile.model_copy(update=updates)
            self._publish()
        if self._store is not None:
            fire_and_forget(self._store.set(USERS, self.user.uid, updates, merge=True), "profile update")

    # ---------------- internals ----------------
    async def _on_auth_state_changed(self, user: Optional[AuthUser]) -> Optional[UserProfile]:
        self.user = user
        if user is None:
            self.user_profile = None
            self.loading = False
            self._publish()
            return None

        self.user_profile = default_profile(user)
        self.loading = False
        self._publish()

        stored = await self._load_profile(user.uid)
        if stored is not None and self.user is user:
            self.user_profile = stored
            self._publish()
        return stored

    async def _load_profile(self, uid: str) -> Optional[UserProfile]:
        if self._store is None:
            return None
        try:
            snapshot = await self._store.get(USERS, uid)
        except Exception as exc:
            # the default profile stays in place
            logger.debug("Profile lookup failed for %s: %s", uid, exc)
            return None
        return to_model(snapshot, UserProfile.model_validate)

    def _create_user_profile(self, user: AuthUser, name: str, is_guest: bool = False) -> None:
        profile = default_profile(user, name, is_guest)
        self.user_profile = profile
        self._publish()
        if self._store is not None:
            document = profile.model_dump(exclude={"created_at"})
            fire_and_forget(
                self._store.set(USERS, user.uid, {**document, "created_at": SERVER_TIMESTAMP}),
                "profile creation",
            )

    def _publish(self) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(self)
            except Exception:
                logger.exception("Auth listener raised")
