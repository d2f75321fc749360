# hackmate/auth/identity_provider.py
"""
Identity provider: who the user is, nothing about what they do.

Accounts live in the SQL `auth_users` table (bcrypt hashes via passlib);
sessions are HS256 JWTs (python-jose). Google sign-in verifies an ID token
against Google's tokeninfo endpoint.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from starlette.concurrency import run_in_threadpool

from hackmate import config
from hackmate.errors import AuthError, EmailAlreadyRegisteredError, InvalidCredentialsError
from hackmate.models.auth_user import AuthUser as AuthUserRow

logger = logging.getLogger("hackmate.auth")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_UID_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_anonymous: bool = False


def _to_user(row: AuthUserRow) -> AuthUser:
    return AuthUser(uid=row.uid, email=row.email, display_name=row.display_name, is_anonymous=row.is_anonymous)


def _new_uid() -> str:
    return "".join(secrets.choice(_UID_ALPHABET) for _ in range(28))


# ================= HELPERS =================
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


class IdentityProvider:
    def __init__(
        self,
        session_factory: Callable,
        *,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        config.validate_auth_config()
        self._session_factory = session_factory
        self._http_transport = http_transport

    # ---------------- tokens ----------------
    def issue_token(self, user: AuthUser, minutes: int = config.ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
        exp = datetime.now(timezone.utc) + timedelta(minutes=minutes)
        return jwt.encode({"sub": user.uid, "exp": exp}, config.SECRET_KEY, algorithm=config.ALGORITHM)

    async def verify_token(self, token: str) -> AuthUser:
        try:
            data = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
            uid = str(data["sub"])
        except (JWTError, KeyError):
            raise InvalidCredentialsError("Invalid or expired token")

        user = await self.get_user(uid)
        if user is None:
            raise InvalidCredentialsError("User not found")
        return user

    # ---------------- accounts ----------------
    async def get_user(self, uid: str) -> Optional[AuthUser]:
        return await run_in_threadpool(self._get_user, uid)

    async def create_user_with_email(self, email: str, password: str) -> AuthUser:
        return await run_in_threadpool(self._create_user, email.strip().lower(), hash_password(password))

    async def sign_in_with_email(self, email: str, password: str) -> AuthUser:
        row = await run_in_threadpool(self._find_by_email, email.strip().lower())
        if row is None or not row.password_hash or not verify_password(password, row.password_hash):
            raise InvalidCredentialsError("Invalid credentials")
        return _to_user(row)

    async def sign_in_anonymously(self) -> AuthUser:
        return await run_in_threadpool(self._create_anonymous)

    async def sign_in_with_google(self, id_token: str) -> AuthUser:
        claims = await self._verify_google_token(id_token)
        return await run_in_threadpool(
            self._upsert_google_user,
            str(claims["sub"]),
            (claims.get("email") or "").lower() or None,
            claims.get("name"),
        )

    async def update_display_name(self, uid: str, display_name: str) -> AuthUser:
        return await run_in_threadpool(self._set_display_name, uid, display_name)

    # ---------------- google ----------------
    async def _verify_google_token(self, id_token: str) -> dict:
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._http_transport) as client:
                resp = await client.get(config.GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as exc:
            logger.error(f"Google token verification failed: {exc}")
            raise AuthError("Google sign-in unavailable") from exc

        if resp.status_code != 200:
            raise InvalidCredentialsError("Invalid Google token")

        claims = resp.json()
        if config.GOOGLE_CLIENT_ID and claims.get("aud") != config.GOOGLE_CLIENT_ID:
            raise InvalidCredentialsError("Google token issued for another client")
        if not claims.get("sub"):
            raise InvalidCredentialsError("Invalid Google token")
        return claims

    # ---------------- sync DB work (threadpool) ----------------
    def _get_user(self, uid: str) -> Optional[AuthUser]:
        with self._session_factory() as db:
            row = db.get(AuthUserRow, uid)
            return _to_user(row) if row else None

    def _find_by_email(self, email: str) -> Optional[AuthUserRow]:
        with self._session_factory() as db:
            row = db.execute(select(AuthUserRow).where(AuthUserRow.email == email)).scalar_one_or_none()
            if row is not None:
                db.expunge(row)
            return row

    def _create_user(self, email: str, password_hash: str) -> AuthUser:
        with self._session_factory() as db:
            exists = db.execute(select(AuthUserRow).where(AuthUserRow.email == email)).scalar_one_or_none()
            if exists:
                raise EmailAlreadyRegisteredError("Email already registered")

            row = AuthUserRow(uid=_new_uid(), email=email, password_hash=password_hash)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_user(row)

    def _create_anonymous(self) -> AuthUser:
        with self._session_factory() as db:
            row = AuthUserRow(uid=_new_uid(), is_anonymous=True)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_user(row)

    def _upsert_google_user(self, sub: str, email: Optional[str], name: Optional[str]) -> AuthUser:
        with self._session_factory() as db:
            row = db.execute(select(AuthUserRow).where(AuthUserRow.google_sub == sub)).scalar_one_or_none()
            if row is None and email:
                # link an existing email account on first Google sign-in
                row = db.execute(select(AuthUserRow).where(AuthUserRow.email == email)).scalar_one_or_none()
            if row is None:
                row = AuthUserRow(uid=_new_uid(), email=email, display_name=name)
                db.add(row)
            row.google_sub = sub
            if name and not row.display_name:
                row.display_name = name
            db.commit()
            db.refresh(row)
            return _to_user(row)

    def _set_display_name(self, uid: str, display_name: str) -> AuthUser:
        with self._session_factory() as db:
            row = db.get(AuthUserRow, uid)
            if row is None:
                raise InvalidCredentialsError("User not found")
            row.display_name = display_name
            db.commit()
            db.refresh(row)
            return _to_user(row)
