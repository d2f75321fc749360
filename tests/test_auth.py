import asyncio

import httpx
import pytest

from hackmate import config
from hackmate.auth.auth_context import AuthContext
from hackmate.auth.identity_provider import IdentityProvider, hash_password, verify_password
from hackmate.errors import EmailAlreadyRegisteredError, InvalidCredentialsError
from hackmate.sync import wait_background

PASSWORD = "Str0ng!pass"


def names(ctx):
    seen = []
    ctx.subscribe(lambda c: seen.append(c.user_profile.name if c.user_profile else None))
    return seen


def test_password_hashing():
    hashed = hash_password(PASSWORD)
    assert hashed != PASSWORD
    assert verify_password(PASSWORD, hashed)
    assert not verify_password("wrong", hashed)


def test_sign_up_publishes_profile_and_persists_it(identity, store):
    async def scenario():
        ctx = AuthContext(identity, store)
        seen = names(ctx)
        await ctx.sign_up_with_email("Ana@Example.com", PASSWORD, "Ana")
        await wait_background()
        return ctx, seen, await store.get("users", ctx.user.uid)

    ctx, seen, stored = asyncio.run(scenario())
    assert ctx.user.email == "ana@example.com"
    assert ctx.user.display_name == "Ana"
    assert ctx.loading is False
    assert seen[0] == "Ana"
    assert stored.get("name") == "Ana"
    assert stored.get("online_status") is True
    assert stored.get("created_at") is not None


def test_duplicate_email_is_rejected(identity, store):
    async def scenario():
        await AuthContext(identity, store).sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await AuthContext(identity, store).sign_up_with_email("ANA@example.com", PASSWORD, "Other")

    with pytest.raises(EmailAlreadyRegisteredError):
        asyncio.run(scenario())


def test_sign_in_replaces_default_profile_with_stored_one(identity, store):
    async def scenario():
        first = AuthContext(identity, store)
        await first.sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await wait_background()
        await first.update_user_profile({"name": "Ana B", "skills": ["python"]})
        await wait_background()

        second = AuthContext(identity, store)
        seen = names(second)
        await second.sign_in_with_email("ana@example.com", PASSWORD)
        return second, seen

    ctx, seen = asyncio.run(scenario())
    assert seen == ["Ana", "Ana B"]
    assert ctx.user_profile.skills == ["python"]


def test_wrong_password(identity, store):
    async def scenario():
        await AuthContext(identity, store).sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await AuthContext(identity, store).sign_in_with_email("ana@example.com", "Wr0ng!pass")

    with pytest.raises(InvalidCredentialsError):
        asyncio.run(scenario())


def test_guest_gets_generated_name(identity, store):
    async def scenario():
        ctx = AuthContext(identity, store)
        await ctx.sign_in_as_guest()
        await wait_background()
        return ctx, await store.get("users", ctx.user.uid)

    ctx, stored = asyncio.run(scenario())
    assert ctx.user.is_anonymous
    assert ctx.user_profile.name == f"Guest_{ctx.user.uid[:6]}"
    assert stored.get("name") == ctx.user_profile.name


def test_start_restores_session_from_token(identity, store):
    async def scenario():
        first = AuthContext(identity, store)
        await first.sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await wait_background()

        restored = AuthContext(identity, store)
        await restored.start(first.token)
        rejected = AuthContext(identity, store)
        await rejected.start("not-a-token")
        return first, restored, rejected

    first, restored, rejected = asyncio.run(scenario())
    assert restored.user == first.user
    assert restored.user_profile.name == "Ana"
    assert rejected.user is None
    assert rejected.loading is False


def test_profile_lookup_failure_keeps_default(identity, store, monkeypatch):
    async def broken_get(collection, doc_id):
        raise RuntimeError("store offline")

    async def scenario():
        ctx = AuthContext(identity, store)
        await ctx.sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await wait_background()
        monkeypatch.setattr(store, "get", broken_get)
        again = AuthContext(identity, store)
        await again.sign_in_with_email("ana@example.com", PASSWORD)
        return again

    ctx = asyncio.run(scenario())
    assert ctx.user_profile.name == "Ana"
    assert ctx.user_profile.timezone == "UTC"


def test_logout_marks_offline(identity, store):
    async def scenario():
        ctx = AuthContext(identity, store)
        await ctx.sign_up_with_email("ana@example.com", PASSWORD, "Ana")
        await wait_background()
        uid = ctx.user.uid
        await ctx.logout()
        await wait_background()
        return ctx, await store.get("users", uid)

    ctx, stored = asyncio.run(scenario())
    assert ctx.user is None
    assert ctx.user_profile is None
    assert ctx.token is None
    assert stored.get("online_status") is False
    assert stored.get("name") == "Ana"


def test_close_drops_listeners(identity, store):
    async def scenario():
        ctx = AuthContext(identity, store)
        seen = names(ctx)
        ctx.close()
        await ctx.sign_in_as_guest()
        await wait_background()
        return seen

    assert asyncio.run(scenario()) == []


# ---------------- google ----------------
def _google(claims, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id_token"] == "google-id-token"
        return httpx.Response(status_code, json=claims)

    return httpx.MockTransport(handler)


def test_google_sign_in_creates_profile(session_factory, store, monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "client-123")
    claims = {"sub": "g-1", "email": "Ana@Gmail.com", "name": "Ana G", "aud": "client-123"}
    identity = IdentityProvider(session_factory, http_transport=_google(claims))

    async def scenario():
        ctx = AuthContext(identity, store)
        await ctx.sign_in_with_google("google-id-token")
        await wait_background()
        again = AuthContext(identity, store)
        await again.sign_in_with_google("google-id-token")
        return ctx, again, await store.get("users", ctx.user.uid)

    ctx, again, stored = asyncio.run(scenario())
    assert ctx.user.email == "ana@gmail.com"
    assert again.user.uid == ctx.user.uid
    assert stored.get("name") == "Ana G"


def test_google_token_for_another_client_is_rejected(session_factory, store, monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "client-123")
    identity = IdentityProvider(session_factory, http_transport=_google({"sub": "g-1", "aud": "someone-else"}))

    with pytest.raises(InvalidCredentialsError):
        asyncio.run(AuthContext(identity, store).sign_in_with_google("google-id-token"))


def test_invalid_google_token(session_factory, store):
    identity = IdentityProvider(session_factory, http_transport=_google({"error": "invalid_token"}, 400))

    with pytest.raises(InvalidCredentialsError):
        asyncio.run(AuthContext(identity, store).sign_in_with_google("google-id-token"))
